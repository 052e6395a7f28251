from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .memory import Memory, utc_now

RESULT_SCHEMA_ID = "compression_result.v1"


@dataclass(frozen=True)
class TokenCountResult:
    tokens: int
    provider: str
    method: str  # "tiktoken" | "estimation"
    accuracy: str  # "high" | "medium" | "low"
    processing_time_ms: float
    cached: bool = False


@dataclass(frozen=True)
class TokenAnalysis:
    total: int
    eligible: int
    preserved: int
    projected_savings: int


@dataclass(frozen=True)
class CompressionAnalysis:
    eligible: List[Memory]
    preserved: List[Memory]
    token_analysis: TokenAnalysis


@dataclass(frozen=True)
class Context:
    messages: List[Memory]
    total_tokens: int
    relevance_score: float
    last_updated: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class CompressionInfo:
    has_compressed_data: bool
    summaries_included: int
    raw_memories_included: int
    oldest_memory_date: Optional[datetime] = None
    newest_memory_date: Optional[datetime] = None


@dataclass(frozen=True)
class EnhancedContext(Context):
    compression_info: Optional[CompressionInfo] = None


@dataclass(frozen=True)
class CompressionResult:
    agent_id: str
    strategy: str
    memories_processed: int
    memories_compressed: int
    memories_preserved: int
    original_token_count: int
    compressed_token_count: int
    compression_ratio: float
    tokens_reclaimed: int
    summaries_created: int
    processing_time_ms: float
    created_at: datetime = field(default_factory=utc_now)
    summary_ids: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "schema_id": RESULT_SCHEMA_ID,
            "agent_id": self.agent_id,
            "strategy": self.strategy,
            "memories_processed": self.memories_processed,
            "memories_compressed": self.memories_compressed,
            "memories_preserved": self.memories_preserved,
            "original_token_count": self.original_token_count,
            "compressed_token_count": self.compressed_token_count,
            "compression_ratio": self.compression_ratio,
            "tokens_reclaimed": self.tokens_reclaimed,
            "summaries_created": self.summaries_created,
            "processing_time_ms": self.processing_time_ms,
            "created_at": self.created_at.isoformat(),
            "summary_ids": list(self.summary_ids),
        }


@dataclass(frozen=True)
class CompressionStats:
    agent_id: str
    total_memories: int
    raw_memories: int
    compressed_memories: int
    summaries: int
    total_tokens: int
    raw_tokens: int
    compressed_tokens: int
    compression_ratio: float
    storage_efficiency: float  # percent of tokens saved
    last_compression_at: Optional[datetime] = None
    next_compression_eligible: Optional[datetime] = None
