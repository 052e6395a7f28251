from __future__ import annotations
from prometheus_client import Counter, Histogram

RUNS = Counter("agent_memory_compression_runs_total", "Compression runs", ["strategy", "outcome"])
MEMORIES_COMPRESSED = Counter("agent_memory_memories_compressed_total", "Memories folded into summaries")
TOKENS_RECLAIMED = Counter("agent_memory_tokens_reclaimed_total", "Estimated tokens reclaimed by compression")
RUN_LAT = Histogram("agent_memory_compression_latency_ms", "Compression run latency ms", ["strategy"])
TOKEN_COUNTS = Counter("agent_memory_token_counts_total", "Token count requests", ["method", "cached"])
ASSEMBLE_LAT = Histogram("agent_memory_assemble_latency_ms", "Context assembly latency ms", ["mode"])


def mark_run(strategy: str, outcome: str) -> None:
    RUNS.labels(strategy=strategy, outcome=outcome).inc()


def mark_token_count(method: str, cached: bool) -> None:
    TOKEN_COUNTS.labels(method=method, cached=str(bool(cached)).lower()).inc()
