from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple, Union

from ..models.memory import Memory, MemoryFilter, MemorySummary

SCOPES = ("memories", "summaries")

Ranked = Tuple[Union[Memory, MemorySummary], float]


class MemoryStore(Protocol):
    """
    Persistence for one or more agents' memories and summaries.

    fetch_memories returns memories ascending by timestamp; fetch_ranked_candidates
    returns (item, distance) pairs ascending by distance, where scope selects raw
    memories or summaries.
    """

    async def fetch_memories(
        self, agent_id: str, filter: Optional[MemoryFilter] = None
    ) -> List[Memory]: ...

    async def fetch_ranked_candidates(
        self,
        agent_id: str,
        query_embedding: Sequence[float],
        scope: str,
        conversation_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Ranked]: ...

    async def insert_summary(self, summary: MemorySummary) -> None: ...

    async def delete_memories_by_id(self, ids: Sequence[str]) -> None: ...

    async def fetch_summaries(self, agent_id: str) -> List[MemorySummary]: ...


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]: ...
