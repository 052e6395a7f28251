from __future__ import annotations

import pytest

from agent_memory.core.config import ModelProviderConfig
from agent_memory.core.token_cache import BoundedTTLCache
from agent_memory.core.tokens import TokenEstimator, heuristic_tokens

TEXT = "Hello world, this is a test message"


class SplitEncoder:
    def encode(self, text):
        return text.split()


class BrokenEncoder:
    def encode(self, text):
        raise RuntimeError("encoder unavailable")


def _openai(name="gpt", api_key=None):
    return ModelProviderConfig(name=name, provider="openai", api_key=api_key)


def test_reference_counts_per_provider():
    est = TokenEstimator.create_default()
    assert len(TEXT) == 35
    assert est.estimate_tokens(TEXT, "openai") == 10
    assert est.estimate_tokens(TEXT, "anthropic") == 12
    assert est.estimate_tokens(TEXT, "deepseek") == 9


def test_heuristic_empty_text_is_zero():
    assert heuristic_tokens("", 1.25) == 0
    assert TokenEstimator.create_default().estimate_tokens("") == 0


def test_unknown_provider_name_uses_custom_multiplier():
    est = TokenEstimator.create_default()
    assert est.estimate_tokens(TEXT, "nobody") == 12


def test_explicit_multiplier_overrides_table():
    p = ModelProviderConfig(name="claude", provider="anthropic", token_multiplier=2.0)
    est = TokenEstimator([p])
    assert est.estimate_tokens(TEXT, "claude") == 20


def test_injected_multiplier_table():
    est = TokenEstimator(multipliers={"openai": 1.0, "custom": 3.0})
    assert est.estimate_tokens(TEXT, "meta") == 30


def test_multiplier_table_requires_custom():
    with pytest.raises(ValueError):
        TokenEstimator(multipliers={"openai": 1.0})


def test_fast_strategy_always_estimates():
    est = TokenEstimator([_openai(api_key="k")], "fast", encoder=SplitEncoder())
    r = est.count_tokens(TEXT)
    assert r.method == "estimation"
    assert r.tokens == 10
    assert r.accuracy == "medium"


def test_precise_uses_exact_for_openai():
    est = TokenEstimator([_openai()], "precise", encoder=SplitEncoder())
    r = est.count_tokens(TEXT, "gpt")
    assert r.method == "tiktoken"
    assert r.accuracy == "high"
    assert r.tokens == 7


def test_precise_estimates_for_other_families():
    p = ModelProviderConfig(name="claude", provider="anthropic")
    est = TokenEstimator([p], "precise", encoder=SplitEncoder())
    r = est.count_tokens(TEXT, "claude")
    assert r.method == "estimation"
    assert r.provider == "anthropic"
    assert r.tokens == 12


def test_hybrid_exact_only_for_short_text_with_api_key():
    with_key = TokenEstimator([_openai("a", api_key="sk-test")], "hybrid", encoder=SplitEncoder())
    no_key = TokenEstimator([_openai("b")], "hybrid", encoder=SplitEncoder())

    assert with_key.count_tokens(TEXT, "a").method == "tiktoken"
    assert no_key.count_tokens(TEXT, "b").method == "estimation"

    long_text = "word " * 200
    assert len(long_text) >= 1000
    assert with_key.count_tokens(long_text, "a").method == "estimation"


def test_exact_failure_degrades_to_estimation():
    est = TokenEstimator([_openai()], "precise", encoder=BrokenEncoder())
    r = est.count_tokens(TEXT, "gpt")
    assert r.method == "estimation"
    assert r.tokens == 10


def test_unknown_provider_falls_back_to_openai_estimation():
    est = TokenEstimator([_openai()], "precise", encoder=SplitEncoder())
    r = est.count_tokens(TEXT, "missing")
    assert r.provider == "openai"
    assert r.method == "estimation"
    assert r.tokens == 10


def test_first_registered_provider_is_default():
    p = ModelProviderConfig(name="ds", provider="deepseek")
    est = TokenEstimator([p, _openai()], "fast")
    r = est.count_tokens(TEXT)
    assert r.provider == "deepseek"
    assert r.tokens == 9


def test_unknown_strategy_estimates():
    est = TokenEstimator([_openai(api_key="k")], "precise", encoder=SplitEncoder())
    r = est.count_tokens(TEXT, "gpt", strategy="bogus")
    assert r.method == "estimation"


def test_invalid_default_strategy_rejected():
    with pytest.raises(ValueError):
        TokenEstimator(default_strategy="bogus")


def test_repeat_count_is_served_from_cache():
    est = TokenEstimator.create_default()
    first = est.count_tokens(TEXT)
    second = est.count_tokens(TEXT)
    assert first.cached is False
    assert second.cached is True
    assert second.tokens == first.tokens
    assert est.cache_size == 1


def test_cache_bypass_and_clear():
    est = TokenEstimator.create_default()
    est.count_tokens(TEXT, use_cache=False)
    assert est.cache_size == 0
    est.count_tokens(TEXT)
    est.clear_cache()
    assert est.cache_size == 0
    assert est.count_tokens(TEXT).cached is False


def test_cache_entries_expire():
    now = [0.0]
    cache = BoundedTTLCache(capacity=10, clock=lambda: now[0])
    est = TokenEstimator(cache=cache)
    est.count_tokens(TEXT)
    now[0] = 301.0
    assert est.count_tokens(TEXT).cached is False
    now[0] = 302.0
    assert est.count_tokens(TEXT, max_cache_age_ms=5_000).cached is True
    now[0] = 310.0
    assert est.count_tokens(TEXT, max_cache_age_ms=5_000).cached is False


def test_cache_key_includes_strategy():
    est = TokenEstimator([_openai()], "fast", encoder=SplitEncoder())
    est.count_tokens(TEXT, "gpt", strategy="fast")
    assert est.count_tokens(TEXT, "gpt", strategy="precise").cached is False
    assert est.cache_size == 2


def test_provider_registry_helpers():
    est = TokenEstimator.create_with_openai()
    assert est.default_strategy == "fast"
    assert est.is_provider_available("default-openai")
    assert not est.is_provider_available("anthropic")
    info = est.get_provider_info("default-openai")
    assert info is not None and info.provider == "openai"
    assert est.get_provider_info("nope") is None
