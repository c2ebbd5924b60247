"""Analytics result objects produced by the engines and returned by the API."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from market_analytics.config import DEFAULT_MOVERS_LIMIT
from market_analytics.models.market import Ohlc, TimeFrame

UNKNOWN = "Unknown"


class AnalyticsType(str, Enum):
    SECTOR_HEATMAP = "SECTOR_HEATMAP"
    TOP_MOVERS = "TOP_MOVERS"
    SECTOR_ALLOCATION = "SECTOR_ALLOCATION"
    MARKET_CAP_ALLOCATION = "MARKET_CAP_ALLOCATION"


class MarketCapType(str, Enum):
    LARGE_CAP = "LARGE_CAP"
    MID_CAP = "MID_CAP"
    SMALL_CAP = "SMALL_CAP"
    MICRO_CAP = "MICRO_CAP"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class WeightedAllocation(BaseModel):
    """One sector, industry or market-cap segment row of an allocation."""

    name: str
    value: float
    weight_percentage: float
    stock_count: int
    top_stocks: list[str]
    parent_sector: str | None = None


class SectorAllocation(BaseModel):
    index_symbol: str | None = None
    portfolio_id: str | None = None
    timestamp: datetime
    sector_weights: list[WeightedAllocation] = []
    industry_weights: list[WeightedAllocation] = []


class MarketCapAllocation(BaseModel):
    index_symbol: str | None = None
    portfolio_id: str | None = None
    timestamp: datetime
    segments: list[WeightedAllocation] = []


class StockDetail(BaseModel):
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    quantity: float
    value: float
    weight: float = 0.0
    color: str


class SectorPerformance(BaseModel):
    sector_name: str
    sector_code: str
    performance: float
    change_percent: float
    weightage: float = 0.0
    color: str
    stock_count: int = 0
    performance_rank: int = 0
    total_value: float = 0.0
    total_return_amount: float = 0.0
    stocks: list[StockDetail] = []


class Heatmap(BaseModel):
    index_symbol: str | None = None
    portfolio_id: str | None = None
    timestamp: datetime
    sectors: list[SectorPerformance] = []


class StockMovement(BaseModel):
    symbol: str
    company_name: str
    last_price: float
    ohlc: Ohlc | None = None
    change_amount: float
    change_percent: float
    sector: str = UNKNOWN
    quantity: float | None = None
    market_value: float | None = None
    weight_percentage: float | None = None


class SectorMovement(BaseModel):
    sector_name: str
    average_change_percent: float
    stock_count: int
    market_cap_weight: float | None = None
    top_gainer_symbols: list[str] = []
    top_loser_symbols: list[str] = []
    stock_performance: dict[str, float] = {}


class GainerLoser(BaseModel):
    index_symbol: str | None = None
    portfolio_id: str | None = None
    timestamp: datetime
    top_gainers: list[StockMovement] = []
    top_losers: list[StockMovement] = []
    sector_movements: list[SectorMovement] = []


class TimeFrameRequest(BaseModel):
    from_date: date
    to_date: date
    time_frame: TimeFrame = TimeFrame.DAY


class AnalyticsRequest(BaseModel):
    """Combined request: which analytics to compute and how."""

    comparison_index_symbol: str | None = None
    include_heatmap: bool = True
    include_movers: bool = True
    include_sector_allocation: bool = True
    include_market_cap_allocation: bool = True
    movers_limit: int = DEFAULT_MOVERS_LIMIT
    time_frame: TimeFrameRequest | None = None

    @property
    def effective_movers_limit(self) -> int:
        return self.movers_limit if self.movers_limit > 0 else DEFAULT_MOVERS_LIMIT


class AnalyticsResponse(BaseModel):
    index_symbol: str | None = None
    portfolio_id: str | None = None
    comparison_index_symbol: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    heatmap: Heatmap | None = None
    movers: GainerLoser | None = None
    sector_allocation: SectorAllocation | None = None
    market_cap_allocation: MarketCapAllocation | None = None
