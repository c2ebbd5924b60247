"""Analytics facades for indices and portfolios."""

import asyncio
import logging
from datetime import datetime

from market_analytics.config import DEFAULT_MOVERS_LIMIT
from market_analytics.models.analytics import (
    AnalyticsRequest,
    AnalyticsResponse,
    AnalyticsType,
    GainerLoser,
    Heatmap,
    MarketCapAllocation,
    SectorAllocation,
    TimeFrameRequest,
)
from market_analytics.services.providers import (
    PROVIDER_CLASSES,
    AnalyticsProvider,
    IndexUniverse,
    PortfolioUniverse,
    Universe,
)

logger = logging.getLogger(__name__)

# Response field filled by each analytics type
_RESPONSE_FIELDS = {
    AnalyticsType.SECTOR_HEATMAP: "heatmap",
    AnalyticsType.TOP_MOVERS: "movers",
    AnalyticsType.SECTOR_ALLOCATION: "sector_allocation",
    AnalyticsType.MARKET_CAP_ALLOCATION: "market_cap_allocation",
}


class AnalyticsFactory:
    """Registry of providers keyed by analytics type."""

    def __init__(self, providers: list[AnalyticsProvider] | None = None):
        self._providers: dict[AnalyticsType, AnalyticsProvider] = {}
        for provider in providers or []:
            self.register(provider)

    @classmethod
    def for_universe(cls, universe: Universe) -> "AnalyticsFactory":
        return cls([provider_cls(universe) for provider_cls in PROVIDER_CLASSES])

    def register(self, provider: AnalyticsProvider) -> None:
        self._providers[provider.analytics_type] = provider

    def get_provider(self, analytics_type: AnalyticsType) -> AnalyticsProvider:
        provider = self._providers.get(analytics_type)
        if provider is None:
            raise ValueError(f"No provider registered for {analytics_type.value}")
        return provider

    @property
    def types(self) -> list[AnalyticsType]:
        return list(self._providers)


def _requested_types(request: AnalyticsRequest) -> list[AnalyticsType]:
    flags = {
        AnalyticsType.SECTOR_HEATMAP: request.include_heatmap,
        AnalyticsType.TOP_MOVERS: request.include_movers,
        AnalyticsType.SECTOR_ALLOCATION: request.include_sector_allocation,
        AnalyticsType.MARKET_CAP_ALLOCATION: request.include_market_cap_allocation,
    }
    return [t for t, enabled in flags.items() if enabled]


class AnalyticsFacade:
    """Entry point for every analytics type over one kind of identifier."""

    identifier_field: str

    def __init__(self, universe: Universe, factory: AnalyticsFactory | None = None):
        self.universe = universe
        self.factory = factory or AnalyticsFactory.for_universe(universe)

    def _request(self, time_frame: TimeFrameRequest | None, **kwargs) -> AnalyticsRequest:
        return AnalyticsRequest(time_frame=time_frame, **kwargs)

    async def generate_analytics(
        self,
        analytics_type: AnalyticsType,
        identifier: str,
        request: AnalyticsRequest | None = None,
    ):
        provider = self.factory.get_provider(analytics_type)
        logger.info(f"Generating {analytics_type.value} for {identifier}")
        return await provider.generate(identifier, request)

    async def generate_sector_heatmap(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> Heatmap:
        return await self.generate_analytics(
            AnalyticsType.SECTOR_HEATMAP, identifier, self._request(time_frame)
        )

    async def get_top_gainers_losers(
        self,
        identifier: str,
        limit: int = DEFAULT_MOVERS_LIMIT,
        time_frame: TimeFrameRequest | None = None,
    ) -> GainerLoser:
        return await self.generate_analytics(
            AnalyticsType.TOP_MOVERS,
            identifier,
            self._request(time_frame, movers_limit=limit),
        )

    async def calculate_sector_allocations(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> SectorAllocation:
        return await self.generate_analytics(
            AnalyticsType.SECTOR_ALLOCATION, identifier, self._request(time_frame)
        )

    async def calculate_market_cap_allocations(
        self, identifier: str, time_frame: TimeFrameRequest | None = None
    ) -> MarketCapAllocation:
        return await self.generate_analytics(
            AnalyticsType.MARKET_CAP_ALLOCATION, identifier, self._request(time_frame)
        )

    async def calculate_advanced_analytics(
        self, identifier: str, request: AnalyticsRequest
    ) -> AnalyticsResponse:
        """Compute every requested analytics type from a single snapshot.

        Market data and classifications are fetched once; the requested
        engines then run concurrently against that snapshot.
        """
        response = AnalyticsResponse(
            comparison_index_symbol=request.comparison_index_symbol,
            start_date=request.time_frame.from_date if request.time_frame else None,
            end_date=request.time_frame.to_date if request.time_frame else None,
            timestamp=datetime.now(),
            **{self.identifier_field: identifier},
        )
        types = [t for t in _requested_types(request) if t in self.factory.types]
        if not types:
            logger.info(f"No analytics requested for {identifier}")
            return response

        snapshot = await self.universe.build_snapshot(identifier, request.time_frame)
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self.factory.get_provider(t).compute, snapshot, request)
                for t in types
            )
        )
        for analytics_type, result in zip(types, results):
            setattr(response, _RESPONSE_FIELDS[analytics_type], result)
        logger.info(
            f"Advanced analytics for {identifier}: {[t.value for t in types]}"
        )
        return response


class IndexAnalyticsFacade(AnalyticsFacade):
    identifier_field = "index_symbol"

    def __init__(self, universe: Universe | None = None, **kwargs):
        super().__init__(universe or IndexUniverse(), **kwargs)


class PortfolioAnalyticsFacade(AnalyticsFacade):
    identifier_field = "portfolio_id"

    def __init__(self, universe: Universe | None = None, **kwargs):
        super().__init__(universe or PortfolioUniverse(), **kwargs)


# Global instances
index_analytics_facade = IndexAnalyticsFacade()
portfolio_analytics_facade = PortfolioAnalyticsFacade()
