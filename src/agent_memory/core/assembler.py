"""
Token-budgeted context assembly.

Candidates arrive ranked (most relevant first). Packing is first-exceeds-stop:
walk the ranking, admit while the running total stays within budget, and stop
at the first item that would overflow it. Later, smaller items are never
back-filled, so the result is always a prefix of the ranking.
"""
from __future__ import annotations

import logging
import math
import time
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from ..errors import CollaboratorError
from ..metrics import ASSEMBLE_LAT
from ..models.context import CompressionInfo, Context, EnhancedContext
from ..models.memory import Memory, MemorySummary, utc_now
from .collaborators import Embedder, MemoryStore
from .tokens import TokenEstimator

logger = logging.getLogger(__name__)

RAW_SHARE = 0.7
SUMMARY_SHARE = 0.3
SIMILARITY_WEIGHT = 0.7
IMPORTANCE_WEIGHT = 0.3
RAW_LIMIT = 50
SUMMARY_LIMIT = 20
SUMMARY_SIMILARITY = 0.8
SUMMARY_IMPORTANCE = 0.8
MAX_TOKEN_BUFFER = 0.5

Candidate = Tuple[Memory, Optional[float]]


def relevance_score(entries: Sequence[Candidate]) -> float:
    """Mean of 0.7*similarity + 0.3*importance; mean importance if any similarity is missing."""
    if not entries:
        return 0.0
    if any(sim is None for _, sim in entries):
        return sum(m.importance for m, _ in entries) / len(entries)
    blended = [SIMILARITY_WEIGHT * float(sim) + IMPORTANCE_WEIGHT * m.importance for m, sim in entries]
    return sum(blended) / len(blended)


def render_summary(summary: MemorySummary) -> Memory:
    tw = summary.time_window
    return Memory(
        id=summary.id,
        conversation_id=summary.conversation_id,
        content=f"[SUMMARY {tw.start.isoformat()}-{tw.end.isoformat()}]: {summary.summary_content}",
        timestamp=summary.created_at,
        role="system",
        importance=SUMMARY_IMPORTANCE,
        metadata={
            "summary_id": summary.id,
            "original_memory_count": len(summary.original_memory_ids),
            "similarity": SUMMARY_SIMILARITY,
        },
    )


class ContextAssembler:
    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        store: Optional[MemoryStore] = None,
        embedder: Optional[Embedder] = None,
        agent_id: Optional[str] = None,
        provider: str = "openai",
        token_buffer: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not 0.0 <= float(token_buffer) <= MAX_TOKEN_BUFFER:
            raise ValueError(f"token_buffer must be within [0, {MAX_TOKEN_BUFFER}]")
        self.estimator = estimator or TokenEstimator.create_default()
        self.store = store
        self.embedder = embedder
        self.agent_id = agent_id
        self.provider = provider
        self.token_buffer = float(token_buffer)
        self._clock = clock

    def item_tokens(self, text: str) -> int:
        n = self.estimator.estimate_tokens(text, self.provider)
        if self.token_buffer:
            n = int(math.ceil(n * (1.0 + self.token_buffer)))
        return n

    # ------------------------------------------------------------------
    # pure packing

    def pack(self, ranked: Sequence[Candidate], budget: float) -> Tuple[List[Candidate], int]:
        admitted: List[Candidate] = []
        running = 0
        for m, sim in ranked:
            n = self.item_tokens(m.content)
            if running + n > budget:
                break
            admitted.append((m, sim))
            running += n
        return admitted, running

    def pack_summaries(
        self, ranked: Sequence[MemorySummary], budget: float
    ) -> Tuple[List[Tuple[MemorySummary, Memory]], int]:
        """Render summaries as system entries and pack them; each is charged for its rendered text."""
        admitted: List[Tuple[MemorySummary, Memory]] = []
        running = 0
        for s in ranked:
            entry = render_summary(s)
            n = self.item_tokens(entry.content)
            if running + n > budget:
                break
            admitted.append((s, entry))
            running += n
        return admitted, running

    def assemble(self, ranked_candidates: Sequence[Candidate], max_tokens: int) -> Context:
        t0 = time.perf_counter()
        admitted, used = self.pack(ranked_candidates, max_tokens)
        ctx = Context(
            messages=[m for m, _ in admitted],
            total_tokens=used,
            relevance_score=relevance_score(admitted),
            last_updated=self._clock(),
        )
        ASSEMBLE_LAT.labels(mode="raw").observe((time.perf_counter() - t0) * 1000.0)
        return ctx

    # ------------------------------------------------------------------
    # collaborator-backed retrieval

    async def relevant_context(
        self, query: str, max_tokens: int, conversation_id: Optional[str] = None
    ) -> Context:
        query_embedding = await self._embed(query)
        ranked = await self._ranked(query_embedding, "memories", conversation_id, RAW_LIMIT)
        candidates: List[Candidate] = [(m, 1.0 - float(d)) for m, d in ranked]
        ctx = self.assemble(candidates, max_tokens)
        logger.debug(
            "Relevant context for agent %s: %d/%d candidates, %d tokens",
            self.agent_id,
            len(ctx.messages),
            len(candidates),
            ctx.total_tokens,
        )
        return ctx

    async def assemble_enhanced(self, query: str, max_tokens: int) -> EnhancedContext:
        t0 = time.perf_counter()
        query_embedding = await self._embed(query)
        raw_ranked = await self._ranked(query_embedding, "memories", None, RAW_LIMIT)
        summary_ranked = await self._ranked(query_embedding, "summaries", None, SUMMARY_LIMIT)

        raw, raw_tokens = self.pack(
            [(m, 1.0 - float(d)) for m, d in raw_ranked], max_tokens * RAW_SHARE
        )
        summaries, summary_tokens = self.pack_summaries(
            [s for s, _ in summary_ranked], max_tokens * SUMMARY_SHARE
        )

        messages = [m for m, _ in raw] + [entry for _, entry in summaries]

        dates: List[datetime] = [m.timestamp for m, _ in raw]
        for s, _ in summaries:
            dates.extend((s.time_window.start, s.time_window.end))

        ctx = EnhancedContext(
            messages=messages,
            total_tokens=raw_tokens + summary_tokens,
            relevance_score=relevance_score(raw),
            last_updated=self._clock(),
            compression_info=CompressionInfo(
                has_compressed_data=bool(summaries),
                summaries_included=len(summaries),
                raw_memories_included=len(raw),
                oldest_memory_date=min(dates) if dates else None,
                newest_memory_date=max(dates) if dates else None,
            ),
        )
        ASSEMBLE_LAT.labels(mode="enhanced").observe((time.perf_counter() - t0) * 1000.0)
        logger.debug(
            "Enhanced context for agent %s: raw=%d summaries=%d tokens=%d/%d",
            self.agent_id,
            len(raw),
            len(summaries),
            ctx.total_tokens,
            max_tokens,
        )
        return ctx

    async def _embed(self, text: str) -> List[float]:
        if self.embedder is None:
            raise ValueError("an embedder is required for query-time retrieval")
        try:
            return list(await self.embedder.embed(text))
        except Exception as e:
            raise CollaboratorError("embed", e) from e

    async def _ranked(
        self,
        query_embedding: Sequence[float],
        scope: str,
        conversation_id: Optional[str],
        limit: int,
    ) -> list:
        if self.store is None or self.agent_id is None:
            raise ValueError("a store and agent_id are required for query-time retrieval")
        try:
            return await self.store.fetch_ranked_candidates(
                self.agent_id, query_embedding, scope, conversation_id=conversation_id, limit=limit
            )
        except Exception as e:
            raise CollaboratorError(f"fetch_ranked_candidates[{scope}]", e) from e
