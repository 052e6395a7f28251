from .core import (
    CompressionAnalyzer,
    CompressionConfig,
    CompressionOrchestrator,
    ContextAssembler,
    ModelProviderConfig,
    Summarizer,
    TokenEstimator,
    TokenLimits,
)
from .errors import (
    AgentMemoryError,
    CollaboratorError,
    CompressionError,
    ConfigValidationError,
    ValidationError,
)
from .logging_config import setup_logging
from .models import (
    CompressionResult,
    CompressionStats,
    Context,
    EnhancedContext,
    Memory,
    MemoryFilter,
    MemorySummary,
    TimeWindow,
)
from .storage import InMemoryMemoryStore
from .vectorize import HashingEmbedder, SentenceTransformerEmbedder

__version__ = "0.1.0"

__all__ = [
    "AgentMemoryError",
    "CollaboratorError",
    "CompressionAnalyzer",
    "CompressionConfig",
    "CompressionError",
    "CompressionOrchestrator",
    "CompressionResult",
    "CompressionStats",
    "ConfigValidationError",
    "Context",
    "ContextAssembler",
    "EnhancedContext",
    "HashingEmbedder",
    "InMemoryMemoryStore",
    "Memory",
    "MemoryFilter",
    "MemorySummary",
    "ModelProviderConfig",
    "SentenceTransformerEmbedder",
    "Summarizer",
    "TimeWindow",
    "TokenEstimator",
    "TokenLimits",
    "ValidationError",
    "setup_logging",
]
