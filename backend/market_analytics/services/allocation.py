"""Weighted allocation engine.

For each category (sector, industry or market-cap segment):
    value  = round2(Σ symbol_value)          missing symbols contribute 0
    weight = round2(value / total * 100)      0 when total <= 0
Rows are sorted by weight descending; empty categories are dropped.
"""

import logging
from collections import Counter

from market_analytics.models.analytics import UNKNOWN, WeightedAllocation
from market_analytics.models.market import MarketData
from market_analytics.services.market_cap import (
    DEFAULT_SHARES_MULTIPLIER,
    estimate_market_cap,
)
from market_analytics.services.rounding import round2

logger = logging.getLogger(__name__)


def calculate_market_caps(
    market_data: dict[str, MarketData],
    shares_multiplier: float = DEFAULT_SHARES_MULTIPLIER,
) -> dict[str, float]:
    """Estimated market cap per symbol, skipping symbols without a positive price."""
    caps = {}
    for symbol, datum in market_data.items():
        market_cap = estimate_market_cap(datum, shares_multiplier)
        if market_cap is not None:
            caps[symbol] = market_cap
    return caps


def calculate_market_values(
    market_data: dict[str, MarketData], symbol_to_quantity: dict[str, float]
) -> dict[str, float]:
    """Holding value (last price * quantity) for every held symbol with data."""
    values = {}
    for symbol, quantity in symbol_to_quantity.items():
        datum = market_data.get(symbol)
        if datum is None or quantity <= 0:
            continue
        values[symbol] = datum.last_price * quantity
    return values


def calculate_total_value(symbol_to_value: dict[str, float]) -> float:
    return sum(symbol_to_value.values())


def _top_symbols(
    symbols: list[str], symbol_to_value: dict[str, float], top_n: int
) -> list[str]:
    # sorted() is stable, so equal values keep their encounter order
    ranked = sorted(symbols, key=lambda s: symbol_to_value.get(s, 0.0), reverse=True)
    return ranked[:top_n]


def compute_allocations(
    category_to_symbols: dict[str, list[str]],
    symbol_to_value: dict[str, float],
    total_value: float,
    top_n: int,
) -> list[WeightedAllocation]:
    rows = []
    for category, symbols in category_to_symbols.items():
        if not symbols:
            continue
        category_value = sum(symbol_to_value.get(s, 0.0) for s in symbols)
        weight = category_value / total_value * 100 if total_value > 0 else 0.0
        rows.append(
            WeightedAllocation(
                name=category,
                value=round2(category_value),
                weight_percentage=round2(weight),
                stock_count=len(symbols),
                top_stocks=_top_symbols(symbols, symbol_to_value, top_n),
            )
        )
    rows.sort(key=lambda r: r.weight_percentage, reverse=True)
    logger.debug(f"Computed {len(rows)} allocation rows over total {total_value}")
    return rows


def map_industries_to_sectors(
    industry_to_symbols: dict[str, list[str]],
    sector_to_symbols: dict[str, list[str]],
) -> dict[str, str]:
    """Parent sector of each industry by majority vote of its members.

    Ties go to the sector that comes first in ``sector_to_symbols``.
    Industries whose members have no sector map to "Unknown".
    """
    symbol_to_sector = {}
    sector_order = {}
    for position, (sector, symbols) in enumerate(sector_to_symbols.items()):
        sector_order[sector] = position
        for symbol in symbols:
            symbol_to_sector.setdefault(symbol, sector)

    parents = {}
    for industry, symbols in industry_to_symbols.items():
        votes = Counter(
            symbol_to_sector[s] for s in symbols if s in symbol_to_sector
        )
        if not votes:
            parents[industry] = UNKNOWN
            continue
        parents[industry] = min(
            votes, key=lambda sector: (-votes[sector], sector_order[sector])
        )
    return parents


def compute_industry_allocations(
    industry_to_symbols: dict[str, list[str]],
    sector_to_symbols: dict[str, list[str]],
    symbol_to_value: dict[str, float],
    total_value: float,
    top_n: int,
) -> list[WeightedAllocation]:
    parents = map_industries_to_sectors(industry_to_symbols, sector_to_symbols)
    rows = compute_allocations(industry_to_symbols, symbol_to_value, total_value, top_n)
    for row in rows:
        row.parent_sector = parents.get(row.name, UNKNOWN)
    return rows
