"""Tests for the weighted allocation engine."""

import pytest
from market_analytics.models.market import MarketData, Ohlc
from market_analytics.services.allocation import (
    calculate_market_caps,
    calculate_market_values,
    calculate_total_value,
    compute_allocations,
    compute_industry_allocations,
    map_industries_to_sectors,
)


@pytest.fixture
def sectors():
    return {
        "Technology": ["INFY", "TCS", "WIPRO"],
        "Financial Services": ["HDFC", "ICICI"],
        "Energy": ["RELIANCE"],
    }


@pytest.fixture
def values():
    return {
        "INFY": 300.0,
        "TCS": 500.0,
        "WIPRO": 100.0,
        "HDFC": 400.0,
        "ICICI": 200.0,
        "RELIANCE": 500.0,
    }


class TestComputeAllocations:
    def test_weights_and_values(self, sectors, values):
        total = calculate_total_value(values)
        rows = compute_allocations(sectors, values, total, top_n=5)

        assert [r.name for r in rows] == ["Technology", "Financial Services", "Energy"]
        tech = rows[0]
        assert tech.value == 900.0
        assert tech.weight_percentage == 45.0
        assert tech.stock_count == 3
        assert tech.top_stocks == ["TCS", "INFY", "WIPRO"]

    def test_weights_sum_to_100(self, sectors, values):
        rows = compute_allocations(sectors, values, calculate_total_value(values), 5)
        assert sum(r.weight_percentage for r in rows) == pytest.approx(100.0, abs=0.05)

    def test_top_n_truncates(self, sectors, values):
        rows = compute_allocations(sectors, values, 2000.0, top_n=2)
        assert rows[0].top_stocks == ["TCS", "INFY"]

    def test_top_stocks_ties_keep_encounter_order(self):
        rows = compute_allocations({"X": ["B", "A", "C"]}, {"A": 1.0, "B": 1.0, "C": 1.0}, 3.0, 2)
        assert rows[0].top_stocks == ["B", "A"]

    def test_missing_symbol_contributes_zero(self):
        rows = compute_allocations({"X": ["A", "GHOST"]}, {"A": 50.0}, 100.0, 5)
        assert rows[0].value == 50.0
        assert rows[0].weight_percentage == 50.0
        assert rows[0].stock_count == 2

    def test_zero_total_gives_zero_weights(self, sectors):
        rows = compute_allocations(sectors, {}, 0.0, 5)
        assert all(r.weight_percentage == 0.0 for r in rows)

    def test_empty_category_dropped(self, values):
        rows = compute_allocations({"Empty": [], "X": ["INFY"]}, values, 300.0, 5)
        assert [r.name for r in rows] == ["X"]
        assert all(r.stock_count > 0 for r in rows)

    def test_empty_input(self):
        assert compute_allocations({}, {}, 0, 5) == []

    def test_rounding(self):
        rows = compute_allocations({"X": ["A"], "Y": ["B"]}, {"A": 1.0, "B": 2.0}, 3.0, 5)
        assert [r.weight_percentage for r in rows] == [66.67, 33.33]

    def test_idempotent(self, sectors, values):
        first = compute_allocations(sectors, values, 2000.0, 5)
        second = compute_allocations(sectors, values, 2000.0, 5)
        assert first == second


class TestIndustryParentSector:
    def test_majority_vote(self):
        sectors = {"Tech": ["A", "B"], "Finance": ["C"]}
        industries = {"Software": ["A", "B", "C"]}
        assert map_industries_to_sectors(industries, sectors) == {"Software": "Tech"}

    def test_tie_goes_to_first_sector(self):
        sectors = {"Finance": ["C"], "Tech": ["A"]}
        industries = {"Mixed": ["A", "C"]}
        assert map_industries_to_sectors(industries, sectors) == {"Mixed": "Finance"}

    def test_no_sector_is_unknown(self):
        assert map_industries_to_sectors({"Orphan": ["Z"]}, {"Tech": ["A"]}) == {
            "Orphan": "Unknown"
        }

    def test_industry_rows_carry_parent(self, values):
        sectors = {"Technology": ["INFY", "TCS"], "Financial Services": ["HDFC"]}
        industries = {"IT Services": ["INFY", "TCS"], "Banks": ["HDFC"]}
        rows = compute_industry_allocations(industries, sectors, values, 1200.0, 3)
        by_name = {r.name: r for r in rows}
        assert by_name["IT Services"].parent_sector == "Technology"
        assert by_name["Banks"].parent_sector == "Financial Services"
        assert by_name["IT Services"].weight_percentage == 66.67


class TestValueHelpers:
    def test_market_caps_skip_non_positive_prices(self):
        data = {
            "A": MarketData(symbol="A", last_price=10.0),
            "B": MarketData(symbol="B", last_price=0.0),
        }
        assert calculate_market_caps(data) == {"A": 10_000_000_000.0}

    def test_market_values(self):
        data = {
            "A": MarketData(symbol="A", last_price=10.0, ohlc=Ohlc(open=9, close=9)),
            "B": MarketData(symbol="B", last_price=5.0),
        }
        values = calculate_market_values(data, {"A": 3, "B": 0, "C": 10})
        assert values == {"A": 30.0}
