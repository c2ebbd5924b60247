"""Sector heatmap engine.

Per-stock metrics, computed only when open > 0 and close > 0:
    performance    = (last - close) / close * 100
    change_percent = (last - open) / open * 100

Simple mode averages them over a sector's valid stocks. Weighted mode weights
each stock by its holding value (last * quantity):
    Σ(metric_i * value_i) / Σ(value_i)
"""

import logging
from dataclasses import dataclass

from market_analytics.models.analytics import SectorPerformance, StockDetail
from market_analytics.models.market import MarketData
from market_analytics.services.rounding import round2

logger = logging.getLogger(__name__)

# (lower bound, color), checked top-down with a strict ">"
PERFORMANCE_COLORS = [
    (3.0, "#006400"),
    (1.0, "#32CD32"),
    (0.0, "#90EE90"),
    (-1.0, "#FFA07A"),
    (-3.0, "#FF4500"),
]
WORST_COLOR = "#8B0000"


@dataclass(frozen=True)
class SectorMetrics:
    performance: float
    change_percent: float
    weightage: float = 0.0


def performance_color(performance: float) -> str:
    for bound, color in PERFORMANCE_COLORS:
        if performance > bound:
            return color
    return WORST_COLOR


def sector_code(sector_name: str | None) -> str:
    if not sector_name:
        return "UNKN"
    return sector_name[:4].upper()


def stock_metrics(datum: MarketData) -> tuple[float, float] | None:
    """(performance, change_percent) for a stock, or None if its OHLC is unusable."""
    if not datum.has_valid_ohlc:
        return None
    performance = (datum.last_price - datum.ohlc.close) / datum.ohlc.close * 100
    change_percent = (datum.last_price - datum.ohlc.open) / datum.ohlc.open * 100
    return performance, change_percent


def _weightage(sector_value: float | None, total_value: float | None) -> float:
    if total_value is None or total_value <= 0 or sector_value is None:
        return 0.0
    return sector_value / total_value * 100


def sector_metrics(
    stocks: list[MarketData],
    sector_value: float | None = None,
    total_value: float | None = None,
) -> SectorMetrics:
    """Simple average over the sector's stocks with valid OHLC."""
    total_performance = 0.0
    total_change = 0.0
    valid = 0
    for datum in stocks:
        metrics = stock_metrics(datum)
        if metrics is None:
            continue
        total_performance += metrics[0]
        total_change += metrics[1]
        valid += 1

    logger.debug(f"Sector metrics from {valid} valid stocks out of {len(stocks)}")
    return SectorMetrics(
        performance=round2(total_performance / valid) if valid else 0.0,
        change_percent=round2(total_change / valid) if valid else 0.0,
        weightage=round2(_weightage(sector_value, total_value)),
    )


def weighted_sector_metrics(
    stocks: list[MarketData],
    quantities: list[float],
    total_value: float | None = None,
) -> SectorMetrics:
    """Value-weighted average; the sector's full value drives its weightage."""
    sector_value = 0.0
    weighted_value = 0.0
    weighted_performance = 0.0
    weighted_change = 0.0
    for datum, quantity in zip(stocks, quantities):
        value = datum.last_price * quantity
        sector_value += value
        metrics = stock_metrics(datum)
        if metrics is None:
            continue
        weighted_value += value
        weighted_performance += metrics[0] * value
        weighted_change += metrics[1] * value

    if weighted_value > 0:
        performance = weighted_performance / weighted_value
        change_percent = weighted_change / weighted_value
    else:
        performance = change_percent = 0.0
    return SectorMetrics(
        performance=round2(performance),
        change_percent=round2(change_percent),
        weightage=round2(_weightage(sector_value, total_value)),
    )


def price_change(datum: MarketData) -> tuple[float, float]:
    """Unrounded (change, change percent) against the previous close.

    Both are 0 when the stock has no usable previous close.
    """
    previous_close = datum.ohlc.close if datum.ohlc is not None else 0.0
    if previous_close <= 0:
        return 0.0, 0.0
    change = datum.last_price - previous_close
    return change, change / previous_close * 100


def build_stock_detail(symbol: str, datum: MarketData, quantity: float) -> StockDetail:
    """Detail row for one holding; a stock without OHLC shows zero change."""
    change, change_percent = price_change(datum)
    change_percent = round2(change_percent)
    return StockDetail(
        symbol=symbol,
        name=symbol,
        price=round2(datum.last_price),
        change=round2(change),
        change_percent=change_percent,
        quantity=quantity,
        value=round2(datum.last_price * quantity),
        color=performance_color(change_percent),
    )


def build_stock_details(
    symbols: list[str], stocks: list[MarketData], quantities: list[float]
) -> list[StockDetail]:
    """Detail rows sorted by value descending, each weighted within the sector."""
    details = [
        build_stock_detail(s, d, q) for s, d, q in zip(symbols, stocks, quantities)
    ]
    sector_total = sum(d.value for d in details)
    for detail in details:
        detail.weight = round2(detail.value / sector_total * 100) if sector_total > 0 else 0.0
    details.sort(key=lambda d: d.value, reverse=True)
    return details


def create_sector_performance(
    sector_name: str, metrics: SectorMetrics, stock_count: int
) -> SectorPerformance:
    return SectorPerformance(
        sector_name=sector_name,
        sector_code=sector_code(sector_name),
        performance=metrics.performance,
        change_percent=metrics.change_percent,
        weightage=metrics.weightage,
        color=performance_color(metrics.performance),
        stock_count=stock_count,
    )


def rank_sectors(sectors: list[SectorPerformance]) -> list[SectorPerformance]:
    """Sort by performance descending and number ranks from 1."""
    ranked = sorted(sectors, key=lambda s: s.performance, reverse=True)
    for rank, sector in enumerate(ranked, start=1):
        sector.performance_rank = rank
    return ranked


def build_simple_heatmap(
    sector_to_symbols: dict[str, list[str]],
    market_data: dict[str, MarketData],
    symbol_to_value: dict[str, float] | None = None,
) -> list[SectorPerformance]:
    """Index heatmap; ``symbol_to_value`` (e.g. market caps) drives weightage."""
    values = symbol_to_value or {}
    total_value = sum(values.values()) if values else None
    sectors = []
    for sector_name, symbols in sector_to_symbols.items():
        members = [s for s in symbols if s in market_data]
        if not members:
            continue
        stocks = [market_data[s] for s in members]
        sector_value = sum(values.get(s, 0.0) for s in members) if values else None
        metrics = sector_metrics(stocks, sector_value, total_value)
        sector = create_sector_performance(sector_name, metrics, len(members))
        if sector_value is not None:
            sector.total_value = round2(sector_value)
        sectors.append(sector)
    return rank_sectors(sectors)


def build_weighted_heatmap(
    sector_to_symbols: dict[str, list[str]],
    market_data: dict[str, MarketData],
    symbol_to_quantity: dict[str, float],
    include_stocks: bool = True,
) -> list[SectorPerformance]:
    """Portfolio heatmap weighted by holding value, with per-stock detail rows."""
    held = {
        s: d for s, d in market_data.items() if symbol_to_quantity.get(s, 0.0) > 0
    }
    total_value = sum(d.last_price * symbol_to_quantity[s] for s, d in held.items())
    sectors = []
    for sector_name, symbols in sector_to_symbols.items():
        members = [s for s in symbols if s in held]
        if not members:
            continue
        stocks = [held[s] for s in members]
        quantities = [symbol_to_quantity[s] for s in members]
        metrics = weighted_sector_metrics(stocks, quantities, total_value)
        sector = create_sector_performance(sector_name, metrics, len(members))
        details = build_stock_details(members, stocks, quantities)
        sector.total_value = round2(
            sum(d.last_price * q for d, q in zip(stocks, quantities))
        )
        sector.total_return_amount = round2(
            sum(price_change(d)[0] * q for d, q in zip(stocks, quantities))
        )
        if include_stocks:
            sector.stocks = details
        sectors.append(sector)
    logger.debug(f"Built weighted heatmap with {len(sectors)} sectors")
    return rank_sectors(sectors)
