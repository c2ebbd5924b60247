"""Tests for analytics universes and providers."""

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from market_analytics.models.analytics import AnalyticsRequest, TimeFrameRequest
from market_analytics.models.database import Base
from market_analytics.models.market import MarketData, Ohlc, TimeFrame
from market_analytics.services.portfolio import PortfolioService
from market_analytics.services.providers import (
    IndexUniverse,
    MarketCapAllocationProvider,
    PortfolioUniverse,
    SectorAllocationProvider,
    SectorHeatmapProvider,
    TopMoversProvider,
)
from market_analytics.services.security import SecurityClassifier


def _quote(symbol: str, last: float, base: float) -> MarketData:
    return MarketData(
        symbol=symbol,
        last_price=last,
        ohlc=Ohlc(open=base, high=max(last, base), low=min(last, base), close=base),
    )


QUOTES = {
    "INFY": _quote("INFY", 110.0, 100.0),
    "TCS": _quote("TCS", 95.0, 100.0),
    "HDFC": _quote("HDFC", 52.0, 50.0),
}

DETAILS = {
    "INFY": {"sector": "IT", "industry": "Software", "marketCapType": "LARGE_CAP"},
    "TCS": {"sector": "IT", "industry": "Software"},
    "HDFC": {"sector": "Finance", "industry": "Banks", "marketCapType": "MID_CAP"},
}


class FakeMarketData:
    def __init__(self, quotes=None):
        self.quotes = QUOTES if quotes is None else quotes
        self.calls = []

    def get_ohlc_data(self, symbols, refresh=False):
        self.calls.append(("ohlc", list(symbols)))
        return {s: self.quotes[s] for s in symbols if s in self.quotes}

    def get_historical_data(self, symbols, from_date, to_date, time_frame=TimeFrame.DAY):
        self.calls.append(("historical", list(symbols), from_date, to_date, time_frame))
        return {s: self.quotes[s] for s in symbols if s in self.quotes}


class FakeIndices:
    def __init__(self, symbols):
        self.symbols = symbols

    def get_index_symbols(self, index_symbol):
        return list(self.symbols)


class StaticClassifier(SecurityClassifier):
    def get_security_details(self, symbols):
        return {s: DETAILS[s] for s in symbols if s in DETAILS}


@pytest.fixture
def market_data():
    return FakeMarketData()


@pytest.fixture
def index_universe(market_data):
    return IndexUniverse(
        indices=FakeIndices(["INFY", "TCS", "HDFC", "INFY", "NODATA"]),
        market_data=market_data,
        classifier=StaticClassifier(),
    )


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def portfolio_id(session_factory):
    service = PortfolioService()
    async with session_factory() as session:
        p = await service.create_portfolio(session, "Core")
        await service.add_holding(session, p.id, "INFY", 1)
        await service.add_holding(session, p.id, "TCS", 2)
        await service.add_holding(session, p.id, "HDFC", 10)
        await service.add_holding(session, p.id, "ZERO", 0)
    return p.id


@pytest.fixture
def portfolio_universe(session_factory, market_data):
    return PortfolioUniverse(
        session_factory=session_factory,
        market_data=market_data,
        classifier=StaticClassifier(),
    )


class TestIndexUniverse:
    @pytest.mark.asyncio
    async def test_snapshot(self, index_universe, market_data):
        snapshot = await index_universe.build_snapshot("NIFTY 50")
        assert snapshot.index_symbol == "NIFTY 50"
        assert snapshot.portfolio_id is None
        assert snapshot.symbols == ("INFY", "TCS", "HDFC")
        assert snapshot.sector_groups == {"IT": ["INFY", "TCS"], "Finance": ["HDFC"]}
        assert snapshot.market_cap_groups == {
            "LARGE_CAP": ["INFY"],
            "UNKNOWN": ["TCS"],
            "MID_CAP": ["HDFC"],
        }
        assert snapshot.weighted is False
        assert market_data.calls[0] == ("ohlc", ["INFY", "TCS", "HDFC", "NODATA"])

    @pytest.mark.asyncio
    async def test_time_frame_uses_historical_data(self, index_universe, market_data):
        time_frame = TimeFrameRequest(
            from_date=date(2024, 1, 1), to_date=date(2024, 3, 31), time_frame=TimeFrame.WEEK
        )
        snapshot = await index_universe.build_snapshot("NIFTY 50", time_frame)
        assert snapshot.time_frame == time_frame
        assert market_data.calls[0][0] == "historical"
        assert market_data.calls[0][2:] == (date(2024, 1, 1), date(2024, 3, 31), TimeFrame.WEEK)

    @pytest.mark.asyncio
    async def test_no_constituents(self, market_data):
        universe = IndexUniverse(
            indices=FakeIndices([]), market_data=market_data, classifier=StaticClassifier()
        )
        snapshot = await universe.build_snapshot("EMPTY")
        assert snapshot.is_empty
        assert snapshot.index_symbol == "EMPTY"
        assert market_data.calls == []

    @pytest.mark.asyncio
    async def test_no_market_data(self):
        universe = IndexUniverse(
            indices=FakeIndices(["INFY"]),
            market_data=FakeMarketData(quotes={}),
            classifier=StaticClassifier(),
        )
        assert (await universe.build_snapshot("NIFTY 50")).is_empty


class TestPortfolioUniverse:
    @pytest.mark.asyncio
    async def test_snapshot_weighted_by_quantity(self, portfolio_universe, portfolio_id):
        snapshot = await portfolio_universe.build_snapshot(portfolio_id)
        assert snapshot.portfolio_id == portfolio_id
        assert snapshot.weighted is True
        assert snapshot.symbol_to_quantity == {"INFY": 1, "TCS": 2, "HDFC": 10}
        assert snapshot.symbol_values() == {"INFY": 110.0, "TCS": 190.0, "HDFC": 520.0}

    @pytest.mark.asyncio
    async def test_invalid_id_gives_empty_snapshot(self, portfolio_universe, market_data):
        snapshot = await portfolio_universe.build_snapshot("not-a-uuid")
        assert snapshot.is_empty
        assert snapshot.portfolio_id == "not-a-uuid"
        assert market_data.calls == []


class TestIndexProviders:
    @pytest.mark.asyncio
    async def test_heatmap(self, index_universe):
        heatmap = await SectorHeatmapProvider(index_universe).generate("NIFTY 50")
        assert heatmap.index_symbol == "NIFTY 50"
        assert [s.sector_name for s in heatmap.sectors] == ["Finance", "IT"]
        finance, it = heatmap.sectors
        assert finance.performance == 4.0
        assert it.performance == 2.5
        assert it.weightage == 79.77
        assert finance.weightage == 20.23
        assert it.stocks == []

    @pytest.mark.asyncio
    async def test_movers(self, index_universe):
        movers = await TopMoversProvider(index_universe).generate(
            "NIFTY 50", AnalyticsRequest(movers_limit=1)
        )
        assert [m.symbol for m in movers.top_gainers] == ["INFY"]
        assert [m.symbol for m in movers.top_losers] == ["TCS"]
        assert movers.top_gainers[0].sector == "IT"
        assert movers.top_gainers[0].market_value is None
        assert [s.sector_name for s in movers.sector_movements] == ["Finance", "IT"]
        assert movers.sector_movements[1].average_change_percent == 2.5

    @pytest.mark.asyncio
    async def test_sector_allocation(self, index_universe):
        allocation = await SectorAllocationProvider(index_universe).generate("NIFTY 50")
        assert [r.name for r in allocation.sector_weights] == ["IT", "Finance"]
        assert allocation.sector_weights[0].weight_percentage == 79.77
        assert allocation.sector_weights[0].top_stocks == ["INFY", "TCS"]
        software = allocation.industry_weights[0]
        assert software.name == "Software"
        assert software.parent_sector == "IT"

    @pytest.mark.asyncio
    async def test_market_cap_allocation(self, index_universe):
        allocation = await MarketCapAllocationProvider(index_universe).generate("NIFTY 50")
        segments = {s.name: s for s in allocation.segments}
        # TCS has no marketCapType, so the classifier files it under UNKNOWN
        assert segments["Large Cap"].top_stocks == ["INFY"]
        assert segments["Large Cap"].weight_percentage == 42.8
        assert segments["Unknown"].top_stocks == ["TCS"]
        assert segments["Unknown"].weight_percentage == 36.96
        assert segments["Mid Cap"].top_stocks == ["HDFC"]
        assert segments["Mid Cap"].weight_percentage == 20.23

    @pytest.mark.asyncio
    async def test_empty_index(self, market_data):
        universe = IndexUniverse(
            indices=FakeIndices([]), market_data=market_data, classifier=StaticClassifier()
        )
        heatmap = await SectorHeatmapProvider(universe).generate("EMPTY")
        assert heatmap.sectors == []
        assert heatmap.index_symbol == "EMPTY"


class TestPortfolioProviders:
    @pytest.mark.asyncio
    async def test_weighted_heatmap(self, portfolio_universe, portfolio_id):
        heatmap = await SectorHeatmapProvider(portfolio_universe).generate(portfolio_id)
        by_name = {s.sector_name: s for s in heatmap.sectors}
        # (10 * 110 - 5 * 190) / 300
        assert by_name["IT"].performance == 0.5
        assert by_name["IT"].weightage == 36.59
        assert by_name["Finance"].weightage == 63.41
        assert by_name["IT"].total_value == 300.0
        assert [d.symbol for d in by_name["IT"].stocks] == ["TCS", "INFY"]

    @pytest.mark.asyncio
    async def test_movers_carry_holding_values(self, portfolio_universe, portfolio_id):
        movers = await TopMoversProvider(portfolio_universe).generate(portfolio_id)
        assert [m.symbol for m in movers.top_gainers] == ["INFY", "HDFC"]
        infy = movers.top_gainers[0]
        assert infy.symbol == "INFY"
        assert infy.market_value == 110.0
        assert infy.weight_percentage == 13.41
        it = next(m for m in movers.sector_movements if m.sector_name == "IT")
        assert it.market_cap_weight == 36.59

    @pytest.mark.asyncio
    async def test_sector_allocation_by_holding_value(self, portfolio_universe, portfolio_id):
        allocation = await SectorAllocationProvider(portfolio_universe).generate(portfolio_id)
        assert [(r.name, r.value) for r in allocation.sector_weights] == [
            ("Finance", 520.0),
            ("IT", 300.0),
        ]
        total = sum(r.weight_percentage for r in allocation.sector_weights)
        assert total == pytest.approx(100.0, abs=0.05)

    @pytest.mark.asyncio
    async def test_unknown_portfolio_is_empty(self, portfolio_universe):
        allocation = await SectorAllocationProvider(portfolio_universe).generate(
            "5d1c4c0e-8b7a-4b8e-9a35-2f2d8a6b9c10"
        )
        assert allocation.sector_weights == []
        assert allocation.portfolio_id == "5d1c4c0e-8b7a-4b8e-9a35-2f2d8a6b9c10"
