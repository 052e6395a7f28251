"""
Provider-aware token counting.

Three strategies:
  - fast:    character heuristic, always.
  - precise: exact subword count where one exists (openai family, via tiktoken),
             heuristic otherwise.
  - hybrid:  exact only for short texts (< 1000 chars) on API-capable openai
             providers, heuristic otherwise.

Counting never raises: unknown providers and tokenizer failures degrade to the
heuristic with a logged warning.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import tiktoken

from ..metrics import mark_token_count
from ..models.context import TokenCountResult
from .config import DEFAULT_PROVIDER_MULTIPLIERS, TOKEN_STRATEGIES, ModelProviderConfig, TokenLimits
from .token_cache import BoundedTTLCache

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 3.5
HYBRID_EXACT_MAX_CHARS = 1000
CACHE_KEY_PREFIX_CHARS = 50
DEFAULT_CACHE_CAPACITY = 1000
DEFAULT_MAX_CACHE_AGE_MS = 300_000
EXACT_ENCODING_MODEL = "gpt-3.5-turbo"

# provider kinds with an exact tokenizer
EXACT_PROVIDERS = ("openai",)

CacheKey = Tuple[int, str, Optional[str], str]


def heuristic_tokens(text: str, multiplier: float = 1.0) -> int:
    if not text:
        return 0
    base = math.ceil(len(text) / CHARS_PER_TOKEN)
    return int(math.ceil(base * float(multiplier)))


class TokenEstimator:
    def __init__(
        self,
        providers: Iterable[ModelProviderConfig] = (),
        default_strategy: str = "hybrid",
        multipliers: Mapping[str, float] = DEFAULT_PROVIDER_MULTIPLIERS,
        encoder: Optional[Any] = None,
        cache: Optional[BoundedTTLCache] = None,
    ):
        if default_strategy not in TOKEN_STRATEGIES:
            raise ValueError(f"default_strategy must be one of {TOKEN_STRATEGIES}")
        if "custom" not in multipliers:
            raise ValueError("multipliers must define a 'custom' fallback")

        self.default_strategy = default_strategy
        self.multipliers: Mapping[str, float] = dict(multipliers)
        self._providers: Dict[str, ModelProviderConfig] = {}
        for p in providers:
            self._providers[p.name] = p
        self._encoder = encoder
        if cache is None:
            cache = BoundedTTLCache(
                capacity=DEFAULT_CACHE_CAPACITY, default_max_age_ms=DEFAULT_MAX_CACHE_AGE_MS
            )
        self._cache: BoundedTTLCache[TokenCountResult] = cache

        logger.info(
            "TokenEstimator initialized with %d providers (strategy=%s): %s",
            len(self._providers),
            default_strategy,
            [(p.name, p.provider) for p in self._providers.values()],
        )

    @classmethod
    def create_default(cls) -> "TokenEstimator":
        return cls([], "hybrid")

    @classmethod
    def create_with_openai(cls) -> "TokenEstimator":
        provider = ModelProviderConfig(
            name="default-openai",
            provider="openai",
            model=EXACT_ENCODING_MODEL,
            token_limits=TokenLimits(context=4000, output=1000),
            token_multiplier=1.0,
        )
        return cls([provider], "fast")

    # ------------------------------------------------------------------
    # providers

    def get_provider_info(self, name: str) -> Optional[ModelProviderConfig]:
        return self._providers.get(name)

    def is_provider_available(self, name: str) -> bool:
        return name in self._providers

    def multiplier_for(self, cfg: ModelProviderConfig) -> float:
        if cfg.token_multiplier is not None:
            return float(cfg.token_multiplier)
        return float(self.multipliers.get(cfg.provider, self.multipliers["custom"]))

    # ------------------------------------------------------------------
    # counting

    def estimate_tokens(self, text: str, provider_name: str = "openai") -> int:
        """Heuristic count. `provider_name` may be a registered config name or a provider kind."""
        cfg = self._providers.get(provider_name)
        if cfg is not None:
            return heuristic_tokens(text, self.multiplier_for(cfg))
        mult = self.multipliers.get(provider_name, self.multipliers["custom"])
        return heuristic_tokens(text, mult)

    def count_tokens(
        self,
        text: str,
        provider: Optional[str] = None,
        strategy: Optional[str] = None,
        use_cache: bool = True,
        max_cache_age_ms: float = DEFAULT_MAX_CACHE_AGE_MS,
    ) -> TokenCountResult:
        t0 = time.perf_counter()
        strategy = strategy or self.default_strategy
        if strategy not in TOKEN_STRATEGIES:
            logger.warning("Unknown token counting strategy %r, using estimation", strategy)
            strategy = "fast"

        key: CacheKey = (len(text), text[:CACHE_KEY_PREFIX_CHARS], provider, strategy)
        if use_cache:
            hit = self._cache.get(key, max_cache_age_ms)
            if hit is not None:
                mark_token_count(hit.method, True)
                return replace(hit, cached=True)

        if provider is not None:
            cfg = self._providers.get(provider)
            if cfg is None:
                logger.warning(
                    "Provider %r not found, falling back to estimation (text_length=%d)",
                    provider,
                    len(text),
                )
                result = self._estimation(text, "openai", self.multipliers["openai"], t0)
            else:
                result = self._count_for_provider(text, cfg, strategy, t0)
        elif self._providers:
            first = next(iter(self._providers.values()))
            result = self._count_for_provider(text, first, strategy, t0)
        else:
            result = self._estimation(text, "openai", self.multipliers["openai"], t0)

        if use_cache:
            self._cache.put(key, result)
        mark_token_count(result.method, False)
        return result

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Token counting cache cleared")

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # internals

    def _count_for_provider(
        self, text: str, cfg: ModelProviderConfig, strategy: str, t0: float
    ) -> TokenCountResult:
        mult = self.multiplier_for(cfg)
        has_exact = cfg.provider in EXACT_PROVIDERS

        if strategy == "precise":
            use_exact = has_exact
        elif strategy == "hybrid":
            use_exact = has_exact and cfg.api_capable and len(text) < HYBRID_EXACT_MAX_CHARS
        else:
            use_exact = False

        if use_exact:
            try:
                return self._exact(text, cfg, mult, t0)
            except Exception as e:
                logger.warning(
                    "Exact token counting failed for provider %r, falling back to estimation: %s",
                    cfg.name,
                    e,
                )
        return self._estimation(text, cfg.provider, mult, t0)

    def _exact_encoder(self) -> Any:
        if self._encoder is None:
            self._encoder = tiktoken.encoding_for_model(EXACT_ENCODING_MODEL)
        return self._encoder

    def _exact(
        self, text: str, cfg: ModelProviderConfig, mult: float, t0: float
    ) -> TokenCountResult:
        n = len(self._exact_encoder().encode(text))
        return TokenCountResult(
            tokens=int(math.ceil(n * mult)),
            provider=cfg.provider,
            method="tiktoken",
            accuracy="high" if cfg.provider == "openai" else "medium",
            processing_time_ms=(time.perf_counter() - t0) * 1000.0,
            cached=False,
        )

    def _estimation(self, text: str, provider_kind: str, mult: float, t0: float) -> TokenCountResult:
        return TokenCountResult(
            tokens=heuristic_tokens(text, mult),
            provider=provider_kind,
            method="estimation",
            accuracy="medium",
            processing_time_ms=(time.perf_counter() - t0) * 1000.0,
            cached=False,
        )
