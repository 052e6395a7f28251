from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from agent_memory.core.analyzer import CompressionAnalyzer
from agent_memory.core.config import STRATEGIES, CompressionConfig
from agent_memory.errors import CompressionError
from agent_memory.models.memory import Memory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TEXT = "Hello world, this is a test message"  # 10 tokens


def mk(i, importance=0.5, days_ago=30.0, conversation="c1", content=TEXT):
    return Memory(
        id=f"m{i}",
        conversation_id=conversation,
        content=content,
        timestamp=NOW - timedelta(days=days_ago) + timedelta(minutes=i),
        importance=importance,
    )


def analyzer():
    return CompressionAnalyzer(clock=lambda: NOW)


def test_hybrid_preserves_most_recent_and_selects_older():
    mems = [mk(i, imp) for i, imp in enumerate([0.8, 0.6, 0.4, 0.2, 0.9])]
    a = analyzer().analyze(mems, CompressionConfig(strategy="hybrid", preserve_recent_count=2))
    assert [m.importance for m in a.preserved] == [0.2, 0.9]
    assert [m.id for m in a.eligible] == ["m0", "m1", "m2"]


def test_importance_based_threshold():
    mems = [mk(i, imp) for i, imp in enumerate([0.8, 0.6, 0.4, 0.2, 0.9])]
    cfg = CompressionConfig(
        strategy="importance_based", importance_threshold=0.5, preserve_recent_count=1
    )
    a = analyzer().analyze(mems, cfg)
    assert [m.id for m in a.preserved] == ["m4"]
    assert [m.importance for m in a.eligible] == [0.4, 0.2]


def test_time_based_with_only_young_memories_selects_nothing():
    mems = [mk(i, days_ago=1) for i in range(5)]
    cfg = CompressionConfig(strategy="time_based", preserve_recent_count=0)
    a = analyzer().analyze(mems, cfg)
    assert a.eligible == []
    assert len(a.preserved) == 0
    assert a.token_analysis.total == 50


def test_token_based_marks_first_overflow_and_after():
    mems = [mk(i) for i in range(5)]
    cfg = CompressionConfig(
        strategy="token_based", max_tokens_before_compression=25, preserve_recent_count=0
    )
    a = analyzer().analyze(mems, cfg)
    assert [m.id for m in a.eligible] == ["m2", "m3", "m4"]


def test_token_based_under_budget_selects_nothing():
    mems = [mk(i) for i in range(3)]
    cfg = CompressionConfig(strategy="token_based", max_tokens_before_compression=30, preserve_recent_count=0)
    assert analyzer().analyze(mems, cfg).eligible == []


def test_hybrid_is_union_of_single_rules():
    mems = [
        mk(0, 0.9, days_ago=30),
        mk(1, 0.1, days_ago=1),
        mk(2, 0.9, days_ago=1),
        mk(3, 0.9, days_ago=1),
        mk(4, 0.2, days_ago=1),
        mk(5, 0.9, days_ago=0.5),
    ]
    base = dict(max_tokens_before_compression=35, preserve_recent_count=1, importance_threshold=0.3)
    an = analyzer()

    singles = set()
    for strategy in ("time_based", "importance_based", "token_based"):
        a = an.analyze(mems, CompressionConfig(strategy=strategy, **base))
        singles |= {m.id for m in a.eligible}

    hybrid = an.analyze(mems, CompressionConfig(strategy="hybrid", **base))
    assert {m.id for m in hybrid.eligible} == singles
    assert [m.id for m in hybrid.eligible] == ["m0", "m1", "m3", "m4"]


@pytest.mark.parametrize("strategy", STRATEGIES)
@pytest.mark.parametrize("preserve", [0, 3, 10])
def test_preserved_count_invariant(strategy, preserve):
    mems = [mk(i, 0.1 * (i % 10)) for i in range(7)]
    a = analyzer().analyze(mems, CompressionConfig(strategy=strategy, preserve_recent_count=preserve))
    assert len(a.preserved) == min(preserve, len(mems))
    assert not ({m.id for m in a.preserved} & {m.id for m in a.eligible})


def test_input_order_does_not_matter():
    mems = [mk(i, imp) for i, imp in enumerate([0.8, 0.6, 0.4, 0.2, 0.9])]
    cfg = CompressionConfig(preserve_recent_count=2)
    a = analyzer().analyze(list(reversed(mems)), cfg)
    assert [m.id for m in a.preserved] == ["m3", "m4"]
    assert [m.id for m in a.eligible] == ["m0", "m1", "m2"]


def test_token_analysis_accounting():
    mems = [mk(i, imp) for i, imp in enumerate([0.8, 0.6, 0.4, 0.2, 0.9])]
    cfg = CompressionConfig(preserve_recent_count=2, compression_ratio=0.3)
    t = analyzer().analyze(mems, cfg).token_analysis
    assert t.total == 50
    assert t.eligible == 30
    assert t.preserved == 20
    assert t.projected_savings == math.floor(30 * 0.7)


def test_empty_input():
    a = analyzer().analyze([], CompressionConfig())
    assert a.eligible == [] and a.preserved == []
    assert a.token_analysis.total == 0


class _BrokenEstimator:
    def __init__(self):
        self.error = RuntimeError("tokenizer exploded")

    def estimate_tokens(self, text, provider="openai"):
        raise self.error


def test_estimator_failure_is_wrapped():
    est = _BrokenEstimator()
    a = CompressionAnalyzer(estimator=est, clock=lambda: NOW)
    with pytest.raises(CompressionError) as ei:
        a.analyze([mk(0)], CompressionConfig(), agent_id="agent-9")
    assert ei.value.code == "COMPRESSION_ERROR"
    assert ei.value.agent_id == "agent-9"
    assert ei.value.conversation_id is None
    assert ei.value.__cause__ is est.error
    assert ei.value.details["original_error"] == "tokenizer exploded"
