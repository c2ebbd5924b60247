"""Market data models shared by the upstream clients and the analytics engines."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel


class TimeFrame(str, Enum):
    """Candle interval accepted by the historical data endpoint."""

    ONE_MINUTE = "1m"
    THREE_MINUTES = "3m"
    FIVE_MINUTES = "5m"
    TEN_MINUTES = "10m"
    FIFTEEN_MINUTES = "15m"
    THIRTY_MINUTES = "30m"
    HOUR = "1H"
    FOUR_HOURS = "4H"
    DAY = "1D"
    WEEK = "1W"
    MONTH = "1M"
    YEAR = "1Y"


class Ohlc(BaseModel):
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0


class DataPoint(BaseModel):
    timestamp: datetime
    ohlc: Ohlc
    volume: int = 0
    trades: int | None = None


class MarketData(BaseModel):
    """A quote for one symbol, either live or collapsed from historical candles."""

    symbol: str
    instrument_token: int = 0
    last_price: float = 0.0
    ohlc: Ohlc | None = None
    timestamp: datetime | None = None
    time_frame: TimeFrame | None = None
    from_date: date | None = None
    to_date: date | None = None
    historical: bool = False
    data_points: list[DataPoint] = []

    @property
    def has_valid_ohlc(self) -> bool:
        """True when open and previous close are usable as denominators."""
        return self.ohlc is not None and self.ohlc.open > 0 and self.ohlc.close > 0

    @classmethod
    def from_data_points(
        cls,
        symbol: str,
        data_points: list[DataPoint],
        time_frame: TimeFrame | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> "MarketData":
        """Collapse historical candles into a single quote over the window.

        The first candle is the reference: its open and close become the
        quote's open and previous close. The latest candle's close becomes the
        last price, so performance measures the move across the whole window.
        """
        points = sorted(data_points, key=lambda p: p.timestamp)
        if not points:
            return cls(
                symbol=symbol,
                time_frame=time_frame,
                from_date=from_date,
                to_date=to_date,
                historical=True,
            )
        first, latest = points[0], points[-1]
        window = Ohlc(
            open=first.ohlc.open,
            high=max(p.ohlc.high for p in points),
            low=min(p.ohlc.low for p in points),
            close=first.ohlc.close,
        )
        return cls(
            symbol=symbol,
            last_price=latest.ohlc.close,
            ohlc=window,
            timestamp=latest.timestamp,
            time_frame=time_frame,
            from_date=from_date,
            to_date=to_date,
            historical=True,
            data_points=points,
        )
