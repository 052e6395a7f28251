from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from ..core.collaborators import SCOPES, Ranked
from ..models.memory import Memory, MemoryFilter, MemorySummary


def cosine_distance(q: np.ndarray, m: np.ndarray) -> np.ndarray:
    """
    1 - cosine similarity of `q` (dim,) against each row of `m` (n, dim).
    Zero vectors get distance 1.0.
    """
    qn = np.linalg.norm(q)
    mn = np.linalg.norm(m, axis=1)
    denom = qn * mn
    sims = np.zeros(m.shape[0], dtype=np.float64)
    ok = denom > 0
    sims[ok] = (m[ok] @ q) / denom[ok]
    return 1.0 - sims


class InMemoryMemoryStore:
    """
    Dict-backed async store for tests and local runs.
    - memories/summaries are partitioned by agent, in insertion order.
    - ranking is brute-force cosine distance; items without an embedding are skipped.
    """

    def __init__(self) -> None:
        self._memories: Dict[str, Dict[str, Memory]] = {}
        self._summaries: Dict[str, Dict[str, MemorySummary]] = {}

    def add(self, agent_id: str, memory: Memory) -> Memory:
        self._memories.setdefault(agent_id, {})[memory.id] = memory
        return memory

    def add_many(self, agent_id: str, memories: Iterable[Memory]) -> None:
        for m in memories:
            self.add(agent_id, m)

    @property
    def count(self) -> int:
        return sum(len(v) for v in self._memories.values())

    # ------------------------------------------------------------------
    # MemoryStore

    async def fetch_memories(self, agent_id: str, filter: Optional[MemoryFilter] = None) -> List[Memory]:
        items = sorted(self._memories.get(agent_id, {}).values(), key=lambda m: m.timestamp)
        if filter is None:
            return items
        items = [m for m in items if filter.matches(m)]
        items = items[filter.offset:]
        if filter.limit is not None:
            items = items[: filter.limit]
        return items

    async def fetch_ranked_candidates(
        self,
        agent_id: str,
        query_embedding: Sequence[float],
        scope: str,
        conversation_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Ranked]:
        if scope not in SCOPES:
            raise ValueError(f"scope must be one of {SCOPES}")
        pool: Iterable[Union[Memory, MemorySummary]]
        if scope == "memories":
            pool = self._memories.get(agent_id, {}).values()
        else:
            pool = self._summaries.get(agent_id, {}).values()

        items = [
            it
            for it in pool
            if it.embedding is not None
            and (conversation_id is None or it.conversation_id == conversation_id)
        ]
        if not items:
            return []

        q = np.asarray(query_embedding, dtype=np.float32)
        mat = np.asarray([it.embedding for it in items], dtype=np.float32)
        if mat.shape[1] != q.shape[0]:
            raise ValueError(f"embedding dim mismatch: query={q.shape[0]} stored={mat.shape[1]}")
        dist = cosine_distance(q, mat)

        order = sorted(range(len(items)), key=lambda i: (float(dist[i]), -_importance(items[i])))
        if limit is not None:
            order = order[: max(0, int(limit))]
        return [(items[i], float(dist[i])) for i in order]

    async def insert_summary(self, summary: MemorySummary) -> None:
        self._summaries.setdefault(summary.agent_id, {})[summary.id] = summary

    async def delete_memories_by_id(self, ids: Sequence[str]) -> None:
        drop = set(ids)
        for bucket in self._memories.values():
            for mid in drop.intersection(bucket):
                del bucket[mid]

    async def fetch_summaries(self, agent_id: str) -> List[MemorySummary]:
        return sorted(self._summaries.get(agent_id, {}).values(), key=lambda s: s.created_at)


def _importance(item: Union[Memory, MemorySummary]) -> float:
    # summaries carry no importance of their own
    return item.importance if isinstance(item, Memory) else 0.0
