from .prom import (
    ASSEMBLE_LAT,
    MEMORIES_COMPRESSED,
    RUN_LAT,
    RUNS,
    TOKEN_COUNTS,
    TOKENS_RECLAIMED,
    mark_run,
    mark_token_count,
)

__all__ = [
    "ASSEMBLE_LAT",
    "MEMORIES_COMPRESSED",
    "RUN_LAT",
    "RUNS",
    "TOKEN_COUNTS",
    "TOKENS_RECLAIMED",
    "mark_run",
    "mark_token_count",
]
