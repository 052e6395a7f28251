from __future__ import annotations

import logging
import time
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional

from ..errors import CollaboratorError, CompressionError
from ..metrics import MEMORIES_COMPRESSED, RUN_LAT, TOKENS_RECLAIMED, mark_run
from ..models.context import RESULT_SCHEMA_ID, CompressionResult, CompressionStats
from ..models.memory import Memory, MemoryFilter, MemorySummary, TimeWindow, utc_now
from ..utils.json_canonical import canonical_dumps
from ..utils.schema_validator import SchemaRegistry, validate_payload
from .analyzer import CompressionAnalyzer
from .collaborators import Embedder, MemoryStore
from .config import CompressionConfig
from .summarizer import Summarizer, group_by_conversation
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)


class CompressionOrchestrator:
    """
    End-to-end compression for one agent:
    fetch -> analyze -> per-conversation summarize/embed/insert/delete -> aggregate.

    A failing group aborts the run; groups already persisted stay persisted.
    Runs for the same agent must not overlap.
    """

    def __init__(
        self,
        store: MemoryStore,
        agent_id: str,
        embedder: Optional[Embedder] = None,
        estimator: Optional[TokenEstimator] = None,
        config: CompressionConfig = CompressionConfig(),
        provider: str = "openai",
        registry: Optional[SchemaRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.agent_id = agent_id
        self.embedder = embedder
        self.estimator = estimator or TokenEstimator.create_default()
        self.config = config
        self.provider = provider
        self.registry = registry
        self._clock = clock
        self.analyzer = CompressionAnalyzer(self.estimator, provider=provider, clock=clock)

    def _summarizer(self, config: CompressionConfig) -> Summarizer:
        return Summarizer(
            self.estimator,
            config=config,
            provider=self.provider,
            registry=self.registry,
            clock=self._clock,
        )

    async def _call(self, operation: str, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            raise CollaboratorError(operation, e) from e

    # ------------------------------------------------------------------

    async def compress_memories(self, config: Optional[CompressionConfig] = None) -> CompressionResult:
        cfg = config or self.config
        t0 = time.perf_counter()
        try:
            result = await self._run(cfg, t0)
        except Exception:
            mark_run(cfg.strategy, "error")
            logger.exception("Memory compression failed for agent %s", self.agent_id)
            raise

        RUN_LAT.labels(strategy=cfg.strategy).observe(result.processing_time_ms)
        if result.summaries_created:
            mark_run(cfg.strategy, "compressed")
            MEMORIES_COMPRESSED.inc(result.memories_compressed)
            if result.tokens_reclaimed > 0:
                TOKENS_RECLAIMED.inc(result.tokens_reclaimed)
        else:
            mark_run(cfg.strategy, "noop")

        validate_payload(result.to_payload(), RESULT_SCHEMA_ID, self.registry)
        logger.debug("compression result %s", canonical_dumps(result))
        return result

    async def _run(self, cfg: CompressionConfig, t0: float) -> CompressionResult:
        memories: List[Memory] = await self._call("fetch_memories", self.store.fetch_memories, self.agent_id)
        analysis = self.analyzer.analyze(memories, cfg, agent_id=self.agent_id)
        total = analysis.token_analysis.total

        if not analysis.eligible:
            logger.info(
                "No memories eligible for compression for agent %s (strategy=%s, memories=%d)",
                self.agent_id,
                cfg.strategy,
                len(memories),
            )
            return CompressionResult(
                agent_id=self.agent_id,
                strategy=cfg.strategy,
                memories_processed=len(memories),
                memories_compressed=0,
                memories_preserved=len(memories),
                original_token_count=total,
                compressed_token_count=total,
                compression_ratio=1.0,
                tokens_reclaimed=0,
                summaries_created=0,
                processing_time_ms=(time.perf_counter() - t0) * 1000.0,
                created_at=self._clock(),
            )

        summarizer = self._summarizer(cfg)
        compressed = 0
        reclaimed = 0
        summary_ids: List[str] = []

        for conversation_id, group in group_by_conversation(analysis.eligible).items():
            summary = summarizer.compress(group, self.agent_id, conversation_id)
            if self.embedder is not None:
                vec = await self._call("embed", self.embedder.embed, summary.summary_content)
                summary = replace(summary, embedding=list(vec))
            await self._call("insert_summary", self.store.insert_summary, summary)
            await self._call("delete_memories_by_id", self.store.delete_memories_by_id, [m.id for m in group])

            compressed += len(group)
            reclaimed += summary.original_token_count - summary.token_count
            summary_ids.append(summary.id)

        result = CompressionResult(
            agent_id=self.agent_id,
            strategy=cfg.strategy,
            memories_processed=len(memories),
            memories_compressed=compressed,
            memories_preserved=len(memories) - compressed,
            original_token_count=total,
            compressed_token_count=total - reclaimed,
            compression_ratio=(total - reclaimed) / total if total else 1.0,
            tokens_reclaimed=reclaimed,
            summaries_created=len(summary_ids),
            processing_time_ms=(time.perf_counter() - t0) * 1000.0,
            created_at=self._clock(),
            summary_ids=summary_ids,
        )
        logger.info(
            "Memory compression completed for agent %s: compressed=%d summaries=%d reclaimed=%d ratio=%.3f",
            self.agent_id,
            result.memories_compressed,
            result.summaries_created,
            result.tokens_reclaimed,
            result.compression_ratio,
        )
        return result

    async def summarize_conversation_window(
        self, conversation_id: str, time_window: TimeWindow
    ) -> MemorySummary:
        """Summarize one conversation's memories inside `time_window`. Nothing is persisted."""
        flt = MemoryFilter(conversation_id=conversation_id, start=time_window.start, end=time_window.end)
        memories = await self._call("fetch_memories", self.store.fetch_memories, self.agent_id, flt)
        if not memories:
            raise CompressionError(
                "no memories found in time window",
                agent_id=self.agent_id,
                conversation_id=conversation_id,
            )
        return self._summarizer(self.config).compress(
            memories, self.agent_id, conversation_id, time_window_label=time_window.label
        )

    async def get_compression_stats(self) -> CompressionStats:
        memories = await self._call("fetch_memories", self.store.fetch_memories, self.agent_id)
        summaries = await self._call("fetch_summaries", self.store.fetch_summaries, self.agent_id)

        raw_tokens = self.analyzer.tokens(memories)
        compressed_tokens = sum(s.token_count for s in summaries)
        original_tokens = sum(s.original_token_count for s in summaries)
        last = max((s.created_at for s in summaries), default=None)

        if original_tokens > 0:
            ratio = compressed_tokens / original_tokens
            efficiency = (original_tokens - compressed_tokens) / original_tokens * 100.0
        else:
            ratio = 0.0
            efficiency = 0.0

        return CompressionStats(
            agent_id=self.agent_id,
            total_memories=len(memories) + len(summaries),
            raw_memories=len(memories),
            compressed_memories=sum(len(s.original_memory_ids) for s in summaries),
            summaries=len(summaries),
            total_tokens=raw_tokens + compressed_tokens,
            raw_tokens=raw_tokens,
            compressed_tokens=compressed_tokens,
            compression_ratio=ratio,
            storage_efficiency=efficiency,
            last_compression_at=last,
            next_compression_eligible=(
                last + timedelta(days=self.config.time_threshold_days) if last is not None else self._clock()
            ),
        )
