from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from agent_memory.errors import AgentMemoryError, CollaboratorError, CompressionError, ValidationError
from agent_memory.models.memory import Memory, MemoryFilter, MemorySummary, TimeWindow

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_memory_validates_role_and_importance():
    with pytest.raises(ValidationError) as ei:
        Memory(id="m", conversation_id="c", content="x", timestamp=NOW, role="tool")
    assert ei.value.field == "role"
    with pytest.raises(ValidationError):
        Memory(id="m", conversation_id="c", content="x", timestamp=NOW, importance=1.2)


def test_memory_normalises_timestamps_to_utc():
    naive = Memory(id="m", conversation_id="c", content="x", timestamp=datetime(2026, 3, 1, 12, 0))
    assert naive.timestamp == NOW

    plus_two = timezone(timedelta(hours=2))
    shifted = Memory(
        id="m", conversation_id="c", content="x", timestamp=datetime(2026, 3, 1, 14, 0, tzinfo=plus_two)
    )
    assert shifted.timestamp == NOW
    assert shifted.timestamp.tzinfo == timezone.utc


def test_time_window_order_and_contains():
    with pytest.raises(ValidationError):
        TimeWindow(NOW, NOW - timedelta(seconds=1))
    w = TimeWindow(NOW - timedelta(days=1), NOW)
    assert w.contains(NOW)
    assert not w.contains(NOW + timedelta(seconds=1))


def test_summary_requires_original_ids():
    with pytest.raises(ValidationError):
        MemorySummary(
            id="sum_" + "0" * 32,
            agent_id="a",
            conversation_id="c",
            time_window=TimeWindow(NOW, NOW),
            original_memory_ids=[],
            summary_content="",
            key_topics=[],
            important_entities=[],
            compression_ratio=1.0,
            token_count=0,
            original_token_count=0,
            created_at=NOW,
        )


def test_filter_matches():
    m = Memory(id="m", conversation_id="c", content="x", timestamp=NOW, importance=0.4)
    assert MemoryFilter().matches(m)
    assert MemoryFilter(conversation_id="c", max_importance=0.5).matches(m)
    assert not MemoryFilter(conversation_id="d").matches(m)
    assert not MemoryFilter(min_importance=0.5).matches(m)
    assert not MemoryFilter(end=NOW - timedelta(minutes=1)).matches(m)


def test_error_hierarchy_and_messages():
    e = CompressionError("boom", agent_id="a1", conversation_id="c1")
    assert isinstance(e, AgentMemoryError)
    assert str(e) == "Memory compression failed: boom (agent=a1, conversation=c1)"

    cause = OSError("socket closed")
    c = CollaboratorError("delete_memories_by_id", cause)
    assert str(c) == "delete_memories_by_id failed: socket closed"
    assert c.code == "COLLABORATOR_ERROR"
    assert c.details["operation"] == "delete_memories_by_id"
