from .memory import (
    ROLES,
    SUMMARY_SCHEMA_ID,
    Memory,
    MemoryFilter,
    MemorySummary,
    TimeWindow,
    as_utc,
    utc_now,
)
from .context import (
    CompressionAnalysis,
    CompressionInfo,
    CompressionResult,
    CompressionStats,
    Context,
    EnhancedContext,
    RESULT_SCHEMA_ID,
    TokenAnalysis,
    TokenCountResult,
)

__all__ = [
    "ROLES",
    "SUMMARY_SCHEMA_ID",
    "Memory",
    "MemoryFilter",
    "MemorySummary",
    "TimeWindow",
    "as_utc",
    "utc_now",
    "CompressionAnalysis",
    "CompressionInfo",
    "CompressionResult",
    "CompressionStats",
    "Context",
    "EnhancedContext",
    "RESULT_SCHEMA_ID",
    "TokenAnalysis",
    "TokenCountResult",
]
