from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from ..utils.json_canonical import to_jsonable

ROLES = ("user", "assistant", "system")

SUMMARY_SCHEMA_ID = "memory_summary.v1"


def as_utc(ts: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Memory:
    id: str
    conversation_id: str
    content: str
    timestamp: datetime
    role: str = "user"  # "user" | "assistant" | "system"
    importance: float = 0.5
    embedding: Optional[List[float]] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValidationError("role", self.role, f"must be one of {ROLES}")
        if not 0.0 <= float(self.importance) <= 1.0:
            raise ValidationError("importance", self.importance, "must be within [0, 1]")
        object.__setattr__(self, "importance", float(self.importance))
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))
        if self.expires_at is not None:
            object.__setattr__(self, "expires_at", as_utc(self.expires_at))
        if self.embedding is not None:
            object.__setattr__(self, "embedding", [float(x) for x in self.embedding])


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    label: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.end < self.start:
            raise ValidationError("time_window", (self.start, self.end), "end precedes start")

    def contains(self, ts: datetime) -> bool:
        return self.start <= as_utc(ts) <= self.end


@dataclass(frozen=True)
class MemorySummary:
    id: str
    agent_id: str
    conversation_id: str
    time_window: TimeWindow
    original_memory_ids: List[str]
    summary_content: str
    key_topics: List[str]
    important_entities: List[str]
    compression_ratio: float
    token_count: int
    original_token_count: int
    created_at: datetime
    embedding: Optional[List[float]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.original_memory_ids:
            raise ValidationError("original_memory_ids", self.original_memory_ids, "must not be empty")
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        if self.embedding is not None:
            object.__setattr__(self, "embedding", [float(x) for x in self.embedding])

    def to_payload(self) -> Dict[str, Any]:
        tw: Dict[str, Any] = {
            "start": self.time_window.start.isoformat(),
            "end": self.time_window.end.isoformat(),
        }
        if self.time_window.label is not None:
            tw["label"] = self.time_window.label
        return {
            "schema_id": SUMMARY_SCHEMA_ID,
            "id": self.id,
            "agent_id": self.agent_id,
            "conversation_id": self.conversation_id,
            "time_window": tw,
            "original_memory_ids": list(self.original_memory_ids),
            "summary_content": self.summary_content,
            "key_topics": list(self.key_topics),
            "important_entities": list(self.important_entities),
            "compression_ratio": float(self.compression_ratio),
            "token_count": int(self.token_count),
            "original_token_count": int(self.original_token_count),
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "created_at": self.created_at.isoformat(),
            "metadata": to_jsonable(dict(self.metadata)),
        }


@dataclass(frozen=True)
class MemoryFilter:
    conversation_id: Optional[str] = None
    role: Optional[str] = None
    min_importance: Optional[float] = None
    max_importance: Optional[float] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: Optional[int] = None
    offset: int = 0

    def matches(self, m: Memory) -> bool:
        if self.conversation_id is not None and m.conversation_id != self.conversation_id:
            return False
        if self.role is not None and m.role != self.role:
            return False
        if self.min_importance is not None and m.importance < self.min_importance:
            return False
        if self.max_importance is not None and m.importance > self.max_importance:
            return False
        if self.start is not None and m.timestamp < as_utc(self.start):
            return False
        if self.end is not None and m.timestamp > as_utc(self.end):
            return False
        return True
