"""Tests for market-cap classification."""

import pytest
from market_analytics.models.analytics import MarketCapType
from market_analytics.models.market import MarketData, Ohlc
from market_analytics.services.market_cap import (
    classify,
    classify_symbols,
    estimate_market_cap,
    group_by_segment,
    segment_name,
)


def _quote(symbol: str, last: float) -> MarketData:
    return MarketData(
        symbol=symbol, last_price=last, ohlc=Ohlc(open=last, high=last, low=last, close=last)
    )


class TestClassify:
    @pytest.mark.parametrize(
        "market_cap, expected",
        [
            (50_000_000_001, MarketCapType.LARGE_CAP),
            (50_000_000_000, MarketCapType.LARGE_CAP),
            (49_999_999_999, MarketCapType.MID_CAP),
            (10_000_000_000, MarketCapType.MID_CAP),
            (9_999_999_999, MarketCapType.SMALL_CAP),
            (0, MarketCapType.SMALL_CAP),
        ],
    )
    def test_thresholds_are_inclusive(self, market_cap, expected):
        assert classify(market_cap) == expected

    def test_segment_names(self):
        assert segment_name(MarketCapType.LARGE_CAP) == "Large Cap"
        assert segment_name(MarketCapType.MID_CAP) == "Mid Cap"
        assert segment_name(MarketCapType.SMALL_CAP) == "Small Cap"
        assert segment_name(MarketCapType.MICRO_CAP) == "Micro Cap"
        assert segment_name(None) == "Unknown"


class TestEstimateMarketCap:
    def test_price_times_placeholder_shares(self):
        assert estimate_market_cap(_quote("A", 60.0)) == 60_000_000_000.0

    def test_custom_multiplier(self):
        assert estimate_market_cap(_quote("A", 2.0), shares_multiplier=100) == 200.0

    def test_zero_price_has_no_market_cap(self):
        assert estimate_market_cap(_quote("A", 0.0)) is None


class TestClassifySymbols:
    def test_numeric_classification(self):
        data = {"BIG": _quote("BIG", 60.0), "MID": _quote("MID", 20.0), "SML": _quote("SML", 1.0)}
        result = classify_symbols(["BIG", "MID", "SML"], data)
        assert result == {"BIG": "Large Cap", "MID": "Mid Cap", "SML": "Small Cap"}

    def test_external_label_wins(self):
        data = {"BIG": _quote("BIG", 60.0)}
        result = classify_symbols(["BIG"], data, {"SMALL_CAP": ["BIG"]})
        assert result == {"BIG": "Small Cap"}

    def test_micro_cap_only_from_external_source(self):
        data = {"TINY": _quote("TINY", 0.5)}
        assert classify_symbols(["TINY"], data) == {"TINY": "Small Cap"}
        assert classify_symbols(["TINY"], data, {"MICRO_CAP": ["TINY"]}) == {
            "TINY": "Micro Cap"
        }

    def test_unknown_external_label_wins_over_estimate(self):
        data = {"BIG": _quote("BIG", 60.0)}
        result = classify_symbols(["BIG"], data, {"UNKNOWN": ["BIG"]})
        assert result == {"BIG": "Unknown"}

    @pytest.mark.parametrize("label", ["NANO_CAP", "MEGA", ""])
    def test_unrecognised_external_label_is_unknown(self, label):
        data = {"T": _quote("T", 60.0)}
        assert classify_symbols(["T"], data, {label: ["T"]}) == {"T": "Unknown"}

    def test_estimate_only_for_symbols_outside_groups(self):
        data = {"BIG": _quote("BIG", 60.0), "MID": _quote("MID", 20.0)}
        result = classify_symbols(["BIG", "MID"], data, {"SMALL_CAP": ["BIG"]})
        assert result == {"BIG": "Small Cap", "MID": "Mid Cap"}

    def test_segments_are_limited_to_known_names(self):
        data = {"A": _quote("A", 60.0), "B": _quote("B", 1.0)}
        groups = {"NANO_CAP": ["A"], "MICRO_CAP": ["B"]}
        assert set(classify_symbols(["A", "B"], data, groups).values()) <= {
            "Large Cap",
            "Mid Cap",
            "Small Cap",
            "Micro Cap",
            "Unknown",
        }

    def test_zero_price_is_unknown(self):
        data = {"ZERO": _quote("ZERO", 0.0)}
        assert classify_symbols(["ZERO"], data) == {"ZERO": "Unknown"}

    def test_symbol_without_data_or_label_is_omitted(self):
        assert classify_symbols(["GHOST"], {}) == {}

    def test_group_by_segment(self):
        groups = group_by_segment({"A": "Large Cap", "B": "Small Cap", "C": "Large Cap"})
        assert groups == {"Large Cap": ["A", "C"], "Small Cap": ["B"]}
