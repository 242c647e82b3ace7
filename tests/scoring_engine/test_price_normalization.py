"""
Tests for the price normalization engine.
"""

import pytest

from scoring_engine import PriceLabel, normalize_prices


def snaps(*prices):
    return [{"price": p} for p in prices]


class TestNormalizePrices:
    """Current price percentile within the observed range."""

    def test_worked_example(self):
        position = normalize_prices(snaps("10", "20", "15"))
        assert position.percentile == 50
        assert position.label == PriceLabel.NEUTRAL

    def test_no_snapshots_is_neutral(self):
        position = normalize_prices([])
        assert position.percentile == 50
        assert position.label == PriceLabel.NEUTRAL

    def test_unmoved_price_is_neutral(self):
        assert normalize_prices(snaps("7.50")).percentile == 50
        assert normalize_prices(snaps("7.50", "7.50", "7.50")).percentile == 50

    def test_current_at_minimum_is_cheap(self):
        position = normalize_prices(snaps("20", "30", "10"))
        assert position.percentile == 0
        assert position.label == PriceLabel.CHEAP

    def test_current_at_maximum_is_expensive(self):
        position = normalize_prices(snaps("10", "15", "20"))
        assert position.percentile == 100
        assert position.label == PriceLabel.EXPENSIVE

    def test_current_is_last_element_not_latest_timestamp(self):
        rows = [
            {"price": "10", "recorded_at": "2024-01-03"},
            {"price": "20", "recorded_at": "2024-01-01"},
        ]
        assert normalize_prices(rows).percentile == 100

    @pytest.mark.parametrize("current,label", [
        ("13", PriceLabel.CHEAP),      # 30
        ("13.1", PriceLabel.NEUTRAL),  # 31
        ("17", PriceLabel.EXPENSIVE),  # 70
        ("16.9", PriceLabel.NEUTRAL),  # 69
    ])
    def test_label_boundaries(self, current, label):
        assert normalize_prices(snaps("10", "20", current)).label == label

    def test_half_percent_rounds_up(self):
        # (11 - 10) / (210 - 10) * 100 = 0.5 -> 1
        assert normalize_prices(snaps("10", "210", "11")).percentile == 1
        assert normalize_prices(snaps("0", "200", "1")).percentile == 1
