"""Top gainers/losers and per-sector movement aggregation."""

import logging

from market_analytics.config import DEFAULT_MOVERS_LIMIT, SECTOR_MOVERS_LIMIT
from market_analytics.models.analytics import SectorMovement, StockMovement, UNKNOWN
from market_analytics.models.market import MarketData
from market_analytics.services.heatmap import stock_metrics
from market_analytics.services.rounding import round2

logger = logging.getLogger(__name__)


def compute_performance(
    market_data: dict[str, MarketData],
) -> tuple[dict[str, float], dict[str, float]]:
    """Per-symbol (performance, change percent) for data with valid OHLC."""
    performance: dict[str, float] = {}
    change_percent: dict[str, float] = {}
    for symbol, datum in market_data.items():
        metrics = stock_metrics(datum)
        if metrics is None:
            continue
        performance[symbol], change_percent[symbol] = metrics
    logger.debug(
        f"Calculated performance for {len(performance)} of {len(market_data)} stocks"
    )
    return performance, change_percent


def top_gainer_symbols(
    symbols: list[str], performance: dict[str, float], limit: int
) -> list[str]:
    gainers = [s for s in symbols if performance.get(s, 0.0) > 0]
    gainers.sort(key=lambda s: performance[s], reverse=True)
    return gainers[:limit]


def top_loser_symbols(
    symbols: list[str], performance: dict[str, float], limit: int
) -> list[str]:
    losers = [s for s in symbols if performance.get(s, 0.0) < 0]
    losers.sort(key=lambda s: performance[s])
    return losers[:limit]


def create_stock_movement(
    symbol: str,
    datum: MarketData,
    change_percent: float,
    sector: str = UNKNOWN,
    quantity: float | None = None,
    total_value: float | None = None,
) -> StockMovement:
    movement = StockMovement(
        symbol=symbol,
        company_name=symbol,
        last_price=round2(datum.last_price),
        ohlc=datum.ohlc,
        change_amount=round2(datum.last_price - datum.ohlc.close),
        change_percent=round2(change_percent),
        sector=sector,
    )
    if quantity is not None:
        market_value = datum.last_price * quantity
        movement.quantity = quantity
        movement.market_value = round2(market_value)
        movement.weight_percentage = (
            round2(market_value / total_value * 100) if total_value else 0.0
        )
    return movement


def compute_movers(
    market_data: dict[str, MarketData],
    limit: int = DEFAULT_MOVERS_LIMIT,
    symbol_to_sector: dict[str, str] | None = None,
    symbol_to_quantity: dict[str, float] | None = None,
) -> tuple[list[StockMovement], list[StockMovement]]:
    """Top ``limit`` gainers (best first) and losers (worst first).

    Unchanged stocks appear in neither list. With ``symbol_to_quantity`` each
    movement also carries its holding value and share of the portfolio.
    """
    if not market_data:
        return [], []

    performance, change_percent = compute_performance(market_data)
    sectors = symbol_to_sector or {}
    total_value = None
    if symbol_to_quantity is not None:
        total_value = sum(
            datum.last_price * symbol_to_quantity.get(symbol, 0.0)
            for symbol, datum in market_data.items()
        )

    def movements(symbols: list[str]) -> list[StockMovement]:
        return [
            create_stock_movement(
                symbol,
                market_data[symbol],
                change_percent[symbol],
                sector=sectors.get(symbol, UNKNOWN),
                quantity=(
                    symbol_to_quantity.get(symbol, 0.0)
                    if symbol_to_quantity is not None
                    else None
                ),
                total_value=total_value,
            )
            for symbol in symbols
        ]

    symbols = list(performance)
    gainers = movements(top_gainer_symbols(symbols, performance, limit))
    losers = movements(top_loser_symbols(symbols, performance, limit))
    logger.debug(f"Found {len(gainers)} gainers and {len(losers)} losers")
    return gainers, losers


def compute_sector_movements(
    sector_to_symbols: dict[str, list[str]],
    performance: dict[str, float],
    change_percent: dict[str, float],
    symbol_to_value: dict[str, float] | None = None,
    limit: int = SECTOR_MOVERS_LIMIT,
) -> list[SectorMovement]:
    """Per-sector average change and the sector's own top gainers/losers.

    With ``symbol_to_value`` the average is weighted by holding value and each
    sector reports its share of the total as ``market_cap_weight``.
    """
    total_value = sum(symbol_to_value.values()) if symbol_to_value else 0.0
    movements = []
    for sector_name, symbols in sector_to_symbols.items():
        if symbol_to_value is None:
            changes = [change_percent[s] for s in symbols if s in change_percent]
            average = sum(changes) / len(changes) if changes else 0.0
            weight = None
        else:
            sector_value = sum(symbol_to_value.get(s, 0.0) for s in symbols)
            weighted = sum(
                change_percent[s] * symbol_to_value.get(s, 0.0)
                for s in symbols
                if s in change_percent
            )
            average = weighted / sector_value if sector_value > 0 else 0.0
            weight = round2(sector_value / total_value * 100) if total_value > 0 else 0.0

        movements.append(
            SectorMovement(
                sector_name=sector_name,
                average_change_percent=round2(average),
                stock_count=len(symbols),
                market_cap_weight=weight,
                top_gainer_symbols=top_gainer_symbols(symbols, performance, limit),
                top_loser_symbols=top_loser_symbols(symbols, performance, limit),
                stock_performance={
                    s: round2(performance[s]) for s in symbols if s in performance
                },
            )
        )

    movements.sort(key=lambda m: m.average_change_percent, reverse=True)
    logger.debug(f"Generated sector movements for {len(movements)} sectors")
    return movements
