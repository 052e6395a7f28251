from __future__ import annotations

import logging
import math
import time
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Set

from ..errors import AgentMemoryError, CompressionError
from ..models.context import CompressionAnalysis, TokenAnalysis
from ..models.memory import Memory, utc_now
from .config import CompressionConfig
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)


class CompressionAnalyzer:
    """
    Splits an agent's memories into `preserved` (the most recent N, never compressed)
    and `eligible` (older candidates matching the configured strategy).
    """

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        provider: str = "openai",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.estimator = estimator or TokenEstimator.create_default()
        self.provider = provider
        self._clock = clock

    def tokens(self, memories: Sequence[Memory]) -> int:
        return sum(self.estimator.estimate_tokens(m.content, self.provider) for m in memories)

    def analyze(
        self,
        memories: Sequence[Memory],
        config: CompressionConfig = CompressionConfig(),
        agent_id: str = "unknown",
    ) -> CompressionAnalysis:
        t0 = time.perf_counter()
        try:
            ordered = sorted(memories, key=lambda m: m.timestamp)

            preserve_count = min(config.preserve_recent_count, len(ordered))
            split = len(ordered) - preserve_count
            candidates = ordered[:split]
            preserved = ordered[split:]

            eligible = self.select(candidates, config)

            total = self.tokens(ordered)
            eligible_tokens = self.tokens(eligible)
            preserved_tokens = self.tokens(preserved)
            savings = int(math.floor(eligible_tokens * (1.0 - config.compression_ratio)))
        except AgentMemoryError:
            raise
        except Exception as e:
            raise CompressionError("analysis failed", agent_id=agent_id, original=e) from e

        logger.debug(
            "Compression analysis for agent %s: total=%d eligible=%d preserved=%d (%.2f ms)",
            agent_id,
            len(ordered),
            len(eligible),
            len(preserved),
            (time.perf_counter() - t0) * 1000.0,
        )

        return CompressionAnalysis(
            eligible=eligible,
            preserved=preserved,
            token_analysis=TokenAnalysis(
                total=total,
                eligible=eligible_tokens,
                preserved=preserved_tokens,
                projected_savings=savings,
            ),
        )

    # ------------------------------------------------------------------
    # strategy rules; `candidates` is chronological

    def select(self, candidates: List[Memory], config: CompressionConfig) -> List[Memory]:
        if config.strategy == "time_based":
            picked = self.by_time(candidates, config)
        elif config.strategy == "importance_based":
            picked = self.by_importance(candidates, config)
        elif config.strategy == "token_based":
            picked = self.by_tokens(candidates, config)
        else:
            picked = (
                self.by_time(candidates, config)
                | self.by_importance(candidates, config)
                | self.by_tokens(candidates, config)
            )
        return [m for i, m in enumerate(candidates) if i in picked]

    def by_time(self, candidates: List[Memory], config: CompressionConfig) -> Set[int]:
        cutoff = self._clock() - timedelta(days=config.time_threshold_days)
        return {i for i, m in enumerate(candidates) if m.timestamp < cutoff}

    def by_importance(self, candidates: List[Memory], config: CompressionConfig) -> Set[int]:
        return {i for i, m in enumerate(candidates) if m.importance < config.importance_threshold}

    def by_tokens(self, candidates: List[Memory], config: CompressionConfig) -> Set[int]:
        # everything from the first memory that overflows the running budget onwards
        running = 0
        for i, m in enumerate(candidates):
            running += self.estimator.estimate_tokens(m.content, self.provider)
            if running > config.max_tokens_before_compression:
                return set(range(i, len(candidates)))
        return set()
