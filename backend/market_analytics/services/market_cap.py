"""Market-cap segment classification.

Thresholds are inclusive on the lower bound of each higher tier:
    market_cap >= 50B -> Large Cap
    market_cap >= 10B -> Mid Cap
    otherwise         -> Small Cap

Micro Cap is only ever assigned by an external classification source.
"""

import logging

from market_analytics.models.analytics import MarketCapType, UNKNOWN
from market_analytics.models.market import MarketData
from market_analytics.services.rounding import round2

logger = logging.getLogger(__name__)

LARGE_CAP_THRESHOLD = 50_000_000_000.0
MID_CAP_THRESHOLD = 10_000_000_000.0

# Placeholder share count: market cap is approximated as price * 1B shares
# until a real shares-outstanding source is available.
DEFAULT_SHARES_MULTIPLIER = 1_000_000_000.0


def classify(market_cap: float) -> MarketCapType:
    if market_cap >= LARGE_CAP_THRESHOLD:
        return MarketCapType.LARGE_CAP
    if market_cap >= MID_CAP_THRESHOLD:
        return MarketCapType.MID_CAP
    return MarketCapType.SMALL_CAP


def segment_name(cap_type: MarketCapType | None) -> str:
    if cap_type is None:
        return UNKNOWN
    return cap_type.display_name


def _parse_label(label: str | None) -> MarketCapType | None:
    """Map an external label ("LARGE_CAP", "Large Cap", ...) to a segment."""
    if not label:
        return None
    key = label.strip().upper().replace(" ", "_")
    try:
        return MarketCapType(key)
    except ValueError:
        return None


def estimate_market_cap(
    datum: MarketData, shares_multiplier: float = DEFAULT_SHARES_MULTIPLIER
) -> float | None:
    """Estimated market cap, or None when the last price is not positive."""
    if datum.last_price <= 0:
        return None
    return round2(datum.last_price * shares_multiplier)


def classify_symbols(
    symbols: list[str],
    market_data: dict[str, MarketData],
    external_groups: dict[str, list[str]] | None = None,
    shares_multiplier: float = DEFAULT_SHARES_MULTIPLIER,
) -> dict[str, str]:
    """Assign each symbol a segment name.

    A symbol found in ``external_groups`` takes that group's label, or
    "Unknown" when the label names no known segment. Only symbols outside
    every external group are classified from their estimated market cap.
    Those without market data are left out; a datum without a positive price
    maps to "Unknown".
    """
    external: dict[str, str] = {}
    for label, members in (external_groups or {}).items():
        name = segment_name(_parse_label(label))
        for symbol in members:
            external.setdefault(symbol, name)

    result: dict[str, str] = {}
    for symbol in symbols:
        if symbol in external:
            result[symbol] = external[symbol]
            continue
        datum = market_data.get(symbol)
        if datum is None:
            continue
        market_cap = estimate_market_cap(datum, shares_multiplier)
        result[symbol] = (
            segment_name(classify(market_cap)) if market_cap is not None else UNKNOWN
        )

    logger.debug(f"Classified {len(result)} of {len(symbols)} symbols by market cap")
    return result


def group_by_segment(symbol_to_segment: dict[str, str]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for symbol, segment in symbol_to_segment.items():
        groups.setdefault(segment, []).append(symbol)
    return groups
