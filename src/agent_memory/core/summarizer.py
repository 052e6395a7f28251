from __future__ import annotations

import logging
import math
import re
import time
import uuid
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import CompressionError
from ..models.memory import SUMMARY_SCHEMA_ID, Memory, MemorySummary, TimeWindow, utc_now
from ..utils.schema_validator import SchemaRegistry, validate_payload
from .config import CompressionConfig
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)

MIN_IMPORTANCE = 0.3
KEEP_SHARE = 0.3
MIN_KEEP = 3
MAX_TOPICS = 10
MAX_ENTITIES = 20
DEFAULT_BUCKET = "default"
MIXED_CONVERSATION = "mixed"

_ENTITY = re.compile(r"^[A-Z][a-z]")


def group_by_conversation(memories: Sequence[Memory]) -> Dict[str, List[Memory]]:
    groups: Dict[str, List[Memory]] = {}
    for m in memories:
        groups.setdefault(m.conversation_id or DEFAULT_BUCKET, []).append(m)
    return groups


def extractive_summary(memories: Sequence[Memory]) -> str:
    """Per conversation: the most important ~30% (at least 3) of memories scoring >= 0.3."""
    parts: List[str] = []
    for conversation_id, msgs in group_by_conversation(memories).items():
        keep = max(MIN_KEEP, math.ceil(len(msgs) * KEEP_SHARE))
        important = sorted(
            (m for m in msgs if m.importance >= MIN_IMPORTANCE),
            key=lambda m: -m.importance,
        )[:keep]
        if not important:
            continue
        rendered = " | ".join(f"{m.role}: {m.content}" for m in important)
        parts.append(f"[{conversation_id}] {rendered}")
    return "\n\n".join(parts)


def extract_key_topics(memories: Sequence[Memory], limit: int = MAX_TOPICS) -> List[str]:
    words = " ".join(m.content.lower() for m in memories).split()
    freq = Counter(w for w in words if len(w) > 3)
    # sorted() is stable: equal counts keep first-seen order
    ranked = sorted(freq.items(), key=lambda kv: -kv[1])
    return [w for w, _ in ranked[:limit]]


def extract_entities(memories: Sequence[Memory], limit: int = MAX_ENTITIES) -> List[str]:
    seen: Dict[str, None] = {}
    for m in memories:
        for word in m.content.split():
            if len(word) > 2 and _ENTITY.match(word):
                seen.setdefault(word, None)
    return list(seen)[:limit]


class Summarizer:
    """Folds a set of memories into one extractive MemorySummary."""

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        config: CompressionConfig = CompressionConfig(),
        provider: str = "openai",
        registry: Optional[SchemaRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.estimator = estimator or TokenEstimator.create_default()
        self.config = config
        self.provider = provider
        self.registry = registry
        self._clock = clock
        if config.summary_model != "extractive":
            logger.warning(
                "summary_model %r is not supported, using extractive summaries",
                config.summary_model,
            )

    def compress(
        self,
        memories: Sequence[Memory],
        agent_id: str,
        conversation_id: Optional[str] = None,
        time_window_label: Optional[str] = None,
    ) -> MemorySummary:
        """
        Summarize `memories` into one MemorySummary.

        Only memories with importance >= 0.3 reach the summary text. A set made
        entirely of lower-importance memories yields empty `summary_content`,
        `token_count` 0 and `compression_ratio` 0.0; callers that delete the
        originals afterwards lose that content.
        """
        if not memories:
            raise CompressionError(
                "cannot compress empty memory set", agent_id=agent_id, conversation_id=conversation_id
            )

        t0 = time.perf_counter()
        try:
            ordered = sorted(memories, key=lambda m: m.timestamp)
            original_tokens = sum(self._tokens(m.content) for m in ordered)
            window = TimeWindow(
                start=ordered[0].timestamp, end=ordered[-1].timestamp, label=time_window_label
            )

            content = extractive_summary(ordered)
            token_count = self._tokens(content)
            ratio = token_count / original_tokens if original_tokens else 1.0

            summary = MemorySummary(
                id=f"sum_{uuid.uuid4().hex}",
                agent_id=agent_id,
                conversation_id=conversation_id or ordered[0].conversation_id or MIXED_CONVERSATION,
                time_window=window,
                original_memory_ids=[m.id for m in ordered],
                summary_content=content,
                key_topics=extract_key_topics(ordered),
                important_entities=extract_entities(ordered),
                compression_ratio=float(ratio),
                token_count=token_count,
                original_token_count=original_tokens,
                created_at=self._clock(),
                metadata={
                    "compressionStrategy": self.config.strategy,
                    "originalMemoryCount": len(ordered),
                    "processingTimeMs": (time.perf_counter() - t0) * 1000.0,
                },
            )
            validate_payload(summary.to_payload(), SUMMARY_SCHEMA_ID, self.registry)
        except CompressionError:
            raise
        except Exception as e:
            raise CompressionError(
                "summarization failed", agent_id=agent_id, conversation_id=conversation_id, original=e
            ) from e

        logger.info(
            "Memory compression completed for agent %s: memories=%d ratio=%.3f tokens_saved=%d",
            agent_id,
            len(ordered),
            summary.compression_ratio,
            original_tokens - token_count,
        )
        return summary

    def _tokens(self, text: str) -> int:
        return self.estimator.estimate_tokens(text, self.provider)
