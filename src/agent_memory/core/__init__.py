from .analyzer import CompressionAnalyzer
from .assembler import ContextAssembler, relevance_score, render_summary
from .collaborators import Embedder, MemoryStore
from .config import (
    DEFAULT_PROVIDER_MULTIPLIERS,
    CompressionConfig,
    ModelProviderConfig,
    TokenLimits,
    validate_compression_config,
    validate_provider_config,
)
from .orchestrator import CompressionOrchestrator
from .summarizer import Summarizer, extract_entities, extract_key_topics, extractive_summary
from .token_cache import BoundedTTLCache
from .tokens import TokenEstimator, heuristic_tokens

__all__ = [
    "BoundedTTLCache",
    "CompressionAnalyzer",
    "CompressionConfig",
    "CompressionOrchestrator",
    "ContextAssembler",
    "DEFAULT_PROVIDER_MULTIPLIERS",
    "Embedder",
    "MemoryStore",
    "ModelProviderConfig",
    "Summarizer",
    "TokenEstimator",
    "TokenLimits",
    "extract_entities",
    "extract_key_topics",
    "extractive_summary",
    "heuristic_tokens",
    "relevance_score",
    "render_summary",
    "validate_compression_config",
    "validate_provider_config",
]
