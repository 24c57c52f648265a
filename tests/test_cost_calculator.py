"""Tests for the cost calculator."""

from __future__ import annotations

import pytest

from ats_scanner.logging.cost_calculator import MODEL_PRICING, calculate_cost, usage_metadata


class TestCostCalculator:
    def test_haiku_cost(self):
        # 1M input + 1M output for Haiku: $1.00 + $5.00
        cost = calculate_cost([("claude-haiku-4-5-20251001", 1_000_000, 1_000_000)])
        assert cost == pytest.approx(6.00)

    def test_sonnet_cost(self):
        cost = calculate_cost([("claude-sonnet-4-5-20250929", 1_000_000, 1_000_000)])
        assert cost == pytest.approx(18.00)

    def test_small_token_count(self):
        cost = calculate_cost([("claude-haiku-4-5-20251001", 500, 200)])
        expected = (500 / 1_000_000) * 1.00 + (200 / 1_000_000) * 5.00
        assert cost == pytest.approx(expected)

    def test_unknown_model_is_free(self):
        assert calculate_cost([("some-other-model", 1_000_000, 1_000_000)]) == 0.0

    def test_empty(self):
        assert calculate_cost([]) == 0.0

    def test_every_model_priced(self):
        for pricing in MODEL_PRICING.values():
            assert pricing["input"] > 0
            assert pricing["output"] > pricing["input"]


class TestUsageMetadata:
    def test_flattens_summary(self):
        meta = usage_metadata(
            {
                "input": 1_000_000,
                "output": 0,
                "calls": [("claude-sonnet-4-5-20250929", 1_000_000, 0)],
            }
        )
        assert meta == {
            "llm_calls": 1,
            "input_tokens": 1_000_000,
            "output_tokens": 0,
            "estimated_cost_usd": 3.0,
        }

    def test_empty_summary(self):
        assert usage_metadata({})["llm_calls"] == 0
