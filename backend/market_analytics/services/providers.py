"""Analytics providers.

A universe resolves an identifier (index symbol or portfolio UUID) into an
immutable snapshot: its symbols, their market data and their sector, industry
and market-cap groupings. Providers turn a snapshot into one analytics result
using the engines; they never perform I/O themselves.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from market_analytics.config import (
    DEFAULT_MOVERS_LIMIT,
    INDUSTRY_TOP_STOCKS,
    SECTOR_TOP_STOCKS,
    SEGMENT_TOP_STOCKS,
    USE_FALLBACK_CLASSIFIER,
)
from market_analytics.models.analytics import (
    AnalyticsRequest,
    AnalyticsType,
    GainerLoser,
    Heatmap,
    MarketCapAllocation,
    SectorAllocation,
    TimeFrameRequest,
)
from market_analytics.models.database import async_session_factory
from market_analytics.models.market import MarketData
from market_analytics.services.allocation import (
    calculate_market_caps,
    calculate_market_values,
    calculate_total_value,
    compute_allocations,
    compute_industry_allocations,
)
from market_analytics.services.heatmap import build_simple_heatmap, build_weighted_heatmap
from market_analytics.services.market_cap import classify_symbols, group_by_segment
from market_analytics.services.market_data import (
    MarketDataService,
    NseIndicesService,
    market_data_service,
    nse_indices_service,
)
from market_analytics.services.movers import (
    compute_movers,
    compute_performance,
    compute_sector_movements,
)
from market_analytics.services.portfolio import (
    PortfolioService,
    parse_portfolio_id,
    portfolio_service,
)
from market_analytics.services.security import (
    SecurityClassifier,
    prefix_sector_classifier,
    security_details_service,
)

logger = logging.getLogger(__name__)


def default_classifier() -> SecurityClassifier:
    if USE_FALLBACK_CLASSIFIER:
        logger.warning("Using the prefix heuristic sector classifier")
        return prefix_sector_classifier
    return security_details_service


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Everything the engines need for one identifier, fetched once."""

    index_symbol: str | None = None
    portfolio_id: str | None = None
    symbols: tuple[str, ...] = ()
    market_data: dict[str, MarketData] = field(default_factory=dict)
    sector_groups: dict[str, list[str]] = field(default_factory=dict)
    industry_groups: dict[str, list[str]] = field(default_factory=dict)
    market_cap_groups: dict[str, list[str]] = field(default_factory=dict)
    symbol_to_quantity: dict[str, float] | None = None
    time_frame: TimeFrameRequest | None = None

    @property
    def is_empty(self) -> bool:
        return not self.market_data

    @property
    def weighted(self) -> bool:
        return self.symbol_to_quantity is not None

    @property
    def envelope(self) -> dict:
        """Identifier fields shared by every result object."""
        return {"index_symbol": self.index_symbol, "portfolio_id": self.portfolio_id}

    def symbol_values(self) -> dict[str, float]:
        """Holding values for a portfolio, estimated market caps for an index."""
        if self.weighted:
            return calculate_market_values(self.market_data, self.symbol_to_quantity)
        return calculate_market_caps(self.market_data)


class Universe:
    """Resolves identifiers to snapshots. Subclasses supply ``resolve``."""

    def __init__(
        self,
        market_data: MarketDataService = market_data_service,
        classifier: SecurityClassifier | None = None,
    ):
        self.market_data = market_data
        self.classifier = classifier or default_classifier()

    async def resolve(self, identifier: str) -> tuple[list[str], dict[str, float] | None]:
        raise NotImplementedError

    def empty_snapshot(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> AnalyticsSnapshot:
        raise NotImplementedError

    def _fetch_market_data(
        self, symbols: list[str], time_frame: TimeFrameRequest | None
    ) -> dict[str, MarketData]:
        if time_frame is not None:
            return self.market_data.get_historical_data(
                symbols, time_frame.from_date, time_frame.to_date, time_frame.time_frame
            )
        return self.market_data.get_ohlc_data(symbols)

    def _classify(self, symbols: list[str]) -> tuple[dict, dict, dict]:
        return (
            self.classifier.group_by_sector(symbols),
            self.classifier.group_by_industry(symbols),
            self.classifier.group_by_market_cap_type(symbols),
        )

    async def build_snapshot(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> AnalyticsSnapshot:
        empty = self.empty_snapshot(identifier, time_frame)
        symbols, quantities = await self.resolve(identifier)
        if not symbols:
            logger.warning(f"No symbols found for {identifier}")
            return empty

        market_data = await asyncio.to_thread(self._fetch_market_data, symbols, time_frame)
        if not market_data:
            logger.warning(f"No market data available for {identifier}")
            return empty

        priced = [s for s in symbols if s in market_data]
        sectors, industries, market_caps = await asyncio.to_thread(self._classify, priced)
        logger.info(
            f"Snapshot for {identifier}: {len(priced)} of {len(symbols)} symbols priced, "
            f"{len(sectors)} sectors"
        )
        return AnalyticsSnapshot(
            index_symbol=empty.index_symbol,
            portfolio_id=empty.portfolio_id,
            symbols=tuple(priced),
            market_data={s: market_data[s] for s in priced},
            sector_groups=sectors,
            industry_groups=industries,
            market_cap_groups=market_caps,
            symbol_to_quantity=(
                {s: quantities[s] for s in priced} if quantities is not None else None
            ),
            time_frame=time_frame,
        )


class IndexUniverse(Universe):
    """An index's constituents; analytics are unweighted or market-cap weighted."""

    def __init__(self, indices: NseIndicesService = nse_indices_service, **kwargs):
        super().__init__(**kwargs)
        self.indices = indices

    async def resolve(self, identifier: str) -> tuple[list[str], None]:
        symbols = await asyncio.to_thread(self.indices.get_index_symbols, identifier)
        return list(dict.fromkeys(symbols)), None

    def empty_snapshot(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> AnalyticsSnapshot:
        return AnalyticsSnapshot(index_symbol=identifier, time_frame=time_frame)


class PortfolioUniverse(Universe):
    """A stored portfolio's holdings; analytics are weighted by holding value."""

    def __init__(
        self,
        session_factory=async_session_factory,
        portfolios: PortfolioService = portfolio_service,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.session_factory = session_factory
        self.portfolios = portfolios

    async def resolve(self, identifier: str) -> tuple[list[str], dict[str, float]]:
        portfolio_id = parse_portfolio_id(identifier)
        if portfolio_id is None:
            return [], {}
        try:
            async with self.session_factory() as session:
                quantities = await self.portfolios.get_symbol_quantities(
                    session, portfolio_id
                )
        except Exception as e:
            logger.error(f"Failed to load holdings for portfolio {identifier}: {e}")
            return [], {}
        held = {s: q for s, q in quantities.items() if q > 0}
        return list(held), held

    def empty_snapshot(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> AnalyticsSnapshot:
        return AnalyticsSnapshot(
            portfolio_id=identifier, symbol_to_quantity={}, time_frame=time_frame
        )


class AnalyticsProvider:
    """Produces one analytics type for the identifiers of one universe."""

    analytics_type: AnalyticsType

    def __init__(self, universe: Universe):
        self.universe = universe

    async def generate(self, identifier: str, request: AnalyticsRequest | None = None):
        time_frame = request.time_frame if request is not None else None
        snapshot = await self.universe.build_snapshot(identifier, time_frame)
        return self.compute(snapshot, request)

    def compute(self, snapshot: AnalyticsSnapshot, request: AnalyticsRequest | None = None):
        raise NotImplementedError


class SectorHeatmapProvider(AnalyticsProvider):
    analytics_type = AnalyticsType.SECTOR_HEATMAP

    def compute(self, snapshot, request=None) -> Heatmap:
        if snapshot.is_empty:
            return Heatmap(**snapshot.envelope, timestamp=datetime.now())
        if snapshot.weighted:
            sectors = build_weighted_heatmap(
                snapshot.sector_groups, snapshot.market_data, snapshot.symbol_to_quantity
            )
        else:
            sectors = build_simple_heatmap(
                snapshot.sector_groups, snapshot.market_data, snapshot.symbol_values()
            )
        logger.info(f"Generated heatmap with {len(sectors)} sectors")
        return Heatmap(**snapshot.envelope, timestamp=datetime.now(), sectors=sectors)


class TopMoversProvider(AnalyticsProvider):
    analytics_type = AnalyticsType.TOP_MOVERS

    def compute(self, snapshot, request=None) -> GainerLoser:
        if snapshot.is_empty:
            return GainerLoser(**snapshot.envelope, timestamp=datetime.now())
        limit = request.effective_movers_limit if request is not None else DEFAULT_MOVERS_LIMIT
        symbol_to_sector = {
            symbol: sector
            for sector, members in snapshot.sector_groups.items()
            for symbol in members
        }
        gainers, losers = compute_movers(
            snapshot.market_data,
            limit,
            symbol_to_sector=symbol_to_sector,
            symbol_to_quantity=snapshot.symbol_to_quantity,
        )
        performance, change_percent = compute_performance(snapshot.market_data)
        sector_movements = compute_sector_movements(
            snapshot.sector_groups,
            performance,
            change_percent,
            symbol_to_value=snapshot.symbol_values() if snapshot.weighted else None,
        )
        logger.info(f"Found {len(gainers)} gainers and {len(losers)} losers")
        return GainerLoser(
            **snapshot.envelope,
            timestamp=datetime.now(),
            top_gainers=gainers,
            top_losers=losers,
            sector_movements=sector_movements,
        )


class SectorAllocationProvider(AnalyticsProvider):
    analytics_type = AnalyticsType.SECTOR_ALLOCATION

    def compute(self, snapshot, request=None) -> SectorAllocation:
        if snapshot.is_empty:
            return SectorAllocation(**snapshot.envelope, timestamp=datetime.now())
        values = snapshot.symbol_values()
        total = calculate_total_value(values)
        sector_weights = compute_allocations(
            snapshot.sector_groups, values, total, SECTOR_TOP_STOCKS
        )
        industry_weights = compute_industry_allocations(
            snapshot.industry_groups,
            snapshot.sector_groups,
            values,
            total,
            INDUSTRY_TOP_STOCKS,
        )
        return SectorAllocation(
            **snapshot.envelope,
            timestamp=datetime.now(),
            sector_weights=sector_weights,
            industry_weights=industry_weights,
        )


class MarketCapAllocationProvider(AnalyticsProvider):
    analytics_type = AnalyticsType.MARKET_CAP_ALLOCATION

    def compute(self, snapshot, request=None) -> MarketCapAllocation:
        if snapshot.is_empty:
            return MarketCapAllocation(**snapshot.envelope, timestamp=datetime.now())
        values = snapshot.symbol_values()
        symbol_to_segment = classify_symbols(
            list(snapshot.symbols), snapshot.market_data, snapshot.market_cap_groups
        )
        segments = compute_allocations(
            group_by_segment(symbol_to_segment),
            values,
            calculate_total_value(values),
            SEGMENT_TOP_STOCKS,
        )
        return MarketCapAllocation(
            **snapshot.envelope, timestamp=datetime.now(), segments=segments
        )


PROVIDER_CLASSES = [
    SectorHeatmapProvider,
    TopMoversProvider,
    SectorAllocationProvider,
    MarketCapAllocationProvider,
]
