"""Market data and index constituent clients for the upstream REST APIs."""

import logging
from datetime import date
from typing import Any

import httpx

from market_analytics.config import (
    HTTP_TIMEOUT,
    MARKET_DATA_API_URL,
    MARKET_DATA_HISTORICAL_PATH,
    MARKET_DATA_OHLC_PATH,
    NSE_INDICES_API_URL,
    NSE_INDICES_PATH,
)
from market_analytics.models.market import DataPoint, MarketData, Ohlc, TimeFrame

logger = logging.getLogger(__name__)


def clean_symbol(symbol: str) -> str:
    """Strip an exchange prefix: "NSE:INFY" -> "INFY"."""
    if not symbol:
        return symbol
    prefix, sep, rest = symbol.partition(":")
    if sep and prefix and rest:
        return rest
    return symbol


def _parse_ohlc(raw: dict[str, Any] | None) -> Ohlc | None:
    if not raw:
        return None
    return Ohlc(
        open=float(raw.get("open") or 0),
        high=float(raw.get("high") or 0),
        low=float(raw.get("low") or 0),
        close=float(raw.get("close") or 0),
    )


def _parse_data_point(raw: dict[str, Any]) -> DataPoint:
    return DataPoint(
        timestamp=raw.get("time") or raw.get("timestamp"),
        ohlc=Ohlc(
            open=float(raw.get("open") or 0),
            high=float(raw.get("high") or 0),
            low=float(raw.get("low") or 0),
            close=float(raw.get("close") or 0),
        ),
        volume=int(raw.get("volume") or 0),
        trades=raw.get("trades"),
    )


class MarketDataService:
    """Fetches live OHLC quotes and historical candles."""

    def __init__(self, base_url: str = MARKET_DATA_API_URL, timeout: float = HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_ohlc_data(
        self, symbols: list[str], refresh: bool = False
    ) -> dict[str, MarketData]:
        """Get the latest quote for each symbol.

        Returns dict mapping symbol -> MarketData, keyed by the symbol without
        its exchange prefix. Upstream failures are logged and yield {}.
        """
        if not symbols:
            return {}
        try:
            resp = httpx.get(
                f"{self.base_url}{MARKET_DATA_OHLC_PATH}",
                params={
                    "symbols": ",".join(symbols),
                    "refresh": str(refresh).lower(),
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
            if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
                payload = payload["data"]
            if not isinstance(payload, dict):
                return {}

            result = {}
            for raw_symbol, item in payload.items():
                if not item:
                    continue
                symbol = clean_symbol(raw_symbol)
                result[symbol] = MarketData(
                    symbol=symbol,
                    instrument_token=int(item.get("instrumentToken") or 0),
                    last_price=float(item.get("lastPrice") or 0),
                    ohlc=_parse_ohlc(item.get("ohlc")),
                    timestamp=item.get("timestamp"),
                )
            logger.info(f"Fetched OHLC data for {len(result)} of {len(symbols)} symbols")
            return result
        except Exception as e:
            logger.error(f"Failed to fetch OHLC data: {e}")
            return {}

    def get_historical_data(
        self,
        symbols: list[str],
        from_date: date,
        to_date: date,
        time_frame: TimeFrame = TimeFrame.DAY,
    ) -> dict[str, MarketData]:
        """Get candles between two dates, collapsed to one quote per symbol.

        Only the window's first and last candles are requested (START_END).
        """
        if not symbols:
            return {}
        try:
            resp = httpx.get(
                f"{self.base_url}{MARKET_DATA_HISTORICAL_PATH}",
                params={
                    "symbols": ",".join(symbols),
                    "from": from_date.isoformat(),
                    "to": to_date.isoformat(),
                    "interval": time_frame.value,
                    "instrumentType": "STOCK",
                    "filterType": "START_END",
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json().get("data") or {}

            result = {}
            for raw_symbol, item in data.items():
                points = ((item or {}).get("data") or {}).get("dataPoints") or []
                points = [p for p in points if p.get("time") or p.get("timestamp")]
                if not points:
                    continue
                symbol = clean_symbol(raw_symbol)
                result[symbol] = MarketData.from_data_points(
                    symbol,
                    [_parse_data_point(p) for p in points],
                    time_frame=time_frame,
                    from_date=from_date,
                    to_date=to_date,
                )
            logger.info(
                f"Fetched historical data for {len(result)} of {len(symbols)} symbols"
            )
            return result
        except Exception as e:
            logger.error(f"Failed to fetch historical data: {e}")
            return {}


class NseIndicesService:
    """Resolves an index symbol (e.g. "NIFTY 50") to its constituent symbols."""

    def __init__(self, base_url: str = NSE_INDICES_API_URL, timeout: float = HTTP_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_index_constituents(self, index_symbol: str) -> list[dict[str, Any]]:
        """Returns list of {symbol, companyName, industry, ...} rows."""
        try:
            resp = httpx.get(
                f"{self.base_url}{NSE_INDICES_PATH}/{index_symbol}",
                timeout=self.timeout,
            )
            resp.raise_for_status()
            rows = resp.json().get("data") or []
            # The index itself is listed alongside its constituents
            return [r for r in rows if r.get("symbol") and r["symbol"] != index_symbol]
        except Exception as e:
            logger.error(f"Failed to fetch constituents for {index_symbol}: {e}")
            return []

    def get_index_symbols(self, index_symbol: str) -> list[str]:
        symbols = [r["symbol"] for r in self.get_index_constituents(index_symbol)]
        logger.info(f"Found {len(symbols)} symbols for index {index_symbol}")
        return symbols


# Global instances
market_data_service = MarketDataService()
nse_indices_service = NseIndicesService()
