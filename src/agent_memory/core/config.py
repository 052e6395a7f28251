from __future__ import annotations

import os
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from ..errors import ConfigValidationError

STRATEGIES = ("time_based", "importance_based", "token_based", "hybrid")
PROVIDERS = ("openai", "anthropic", "deepseek", "google", "meta", "custom")
TOKEN_STRATEGIES = ("fast", "precise", "hybrid")

# Relative token density per provider kind, openai = 1.0.
DEFAULT_PROVIDER_MULTIPLIERS: Mapping[str, float] = MappingProxyType(
    {
        "openai": 1.0,
        "anthropic": 1.15,
        "deepseek": 0.85,
        "google": 1.1,
        "meta": 1.25,
        "custom": 1.2,
    }
)

ENV_PREFIX = "AGENT_MEMORY_"


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def validate_compression_config(cfg: "CompressionConfig") -> List[str]:
    errors: List[str] = []
    if cfg.strategy not in STRATEGIES:
        errors.append(f"strategy must be one of {STRATEGIES}, got {cfg.strategy!r}")
    if not _is_number(cfg.max_tokens_before_compression) or cfg.max_tokens_before_compression <= 0:
        errors.append("max_tokens_before_compression must be > 0")
    if not _is_number(cfg.compression_ratio) or not 0.1 <= cfg.compression_ratio <= 0.9:
        errors.append("compression_ratio must be within [0.1, 0.9]")
    if not _is_number(cfg.time_threshold_days) or cfg.time_threshold_days <= 0:
        errors.append("time_threshold_days must be > 0")
    if not _is_number(cfg.importance_threshold) or not 0.0 <= cfg.importance_threshold <= 1.0:
        errors.append("importance_threshold must be within [0, 1]")
    if not isinstance(cfg.preserve_recent_count, int) or isinstance(cfg.preserve_recent_count, bool) \
            or cfg.preserve_recent_count < 0:
        errors.append("preserve_recent_count must be an integer >= 0")
    if not isinstance(cfg.summary_model, str) or not cfg.summary_model.strip():
        errors.append("summary_model must be a non-empty string")
    return errors


@dataclass(frozen=True)
class CompressionConfig:
    strategy: str = "hybrid"
    max_tokens_before_compression: int = 3000
    compression_ratio: float = 0.3  # target share of the original size
    time_threshold_days: float = 7
    importance_threshold: float = 0.3
    preserve_recent_count: int = 50
    summary_model: str = "extractive"

    def __post_init__(self) -> None:
        errors = validate_compression_config(self)
        if errors:
            raise ConfigValidationError("CompressionConfig", errors)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "CompressionConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in values if k not in known)
        if unknown:
            raise ConfigValidationError("CompressionConfig", [f"unknown field {k!r}" for k in unknown])
        return cls(**dict(values))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompressionConfig":
        env = os.environ if environ is None else environ
        values: dict = {}
        casts = {
            "strategy": str,
            "max_tokens_before_compression": int,
            "compression_ratio": float,
            "time_threshold_days": float,
            "importance_threshold": float,
            "preserve_recent_count": int,
            "summary_model": str,
        }
        errors: List[str] = []
        for name, cast in casts.items():
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[name] = cast(raw)
            except ValueError:
                errors.append(f"{ENV_PREFIX + name.upper()}={raw!r} is not a valid {cast.__name__}")
        if errors:
            raise ConfigValidationError("CompressionConfig", errors)
        return cls(**values)


@dataclass(frozen=True)
class TokenLimits:
    context: int = 4000
    output: int = 1000


def validate_provider_config(cfg: "ModelProviderConfig") -> List[str]:
    errors: List[str] = []
    if not isinstance(cfg.name, str) or not cfg.name:
        errors.append("name must be a non-empty string")
    if cfg.provider not in PROVIDERS:
        errors.append(f"provider must be one of {PROVIDERS}, got {cfg.provider!r}")
    if cfg.token_limits.context <= 0 or cfg.token_limits.output <= 0:
        errors.append("token_limits must be positive")
    if cfg.token_multiplier is not None and (
        not _is_number(cfg.token_multiplier) or cfg.token_multiplier <= 0
    ):
        errors.append("token_multiplier must be > 0")
    return errors


@dataclass(frozen=True)
class ModelProviderConfig:
    name: str
    provider: str
    token_limits: TokenLimits = TokenLimits()
    # None -> the provider kind's value from the multiplier table
    token_multiplier: Optional[float] = None
    model: str = "default"
    api_key: Optional[str] = None

    def __post_init__(self) -> None:
        errors = validate_provider_config(self)
        if errors:
            raise ConfigValidationError("ModelProviderConfig", errors)

    @property
    def api_capable(self) -> bool:
        return bool(self.api_key)
