"""Security classification: sector, industry and market-cap type per symbol."""

import logging
from typing import Any

import httpx

from market_analytics.config import HTTP_TIMEOUT, SECURITY_API_PATH, SECURITY_API_URL
from market_analytics.models.analytics import UNKNOWN
from market_analytics.services.cache import CacheService, security_cache

logger = logging.getLogger(__name__)

UNKNOWN_MARKET_CAP = "UNKNOWN"


class SecurityClassifier:
    """Groups symbols using per-symbol metadata {sector, industry, marketCapType}.

    Subclasses supply ``get_security_details``. Symbols without metadata, or
    with an empty field, land in the "Unknown" group.
    """

    def get_security_details(self, symbols: list[str]) -> dict[str, dict[str, Any]]:
        raise NotImplementedError

    def _group_by(
        self, symbols: list[str], field: str, default: str
    ) -> dict[str, list[str]]:
        if not symbols:
            return {}
        details = self.get_security_details(symbols)
        groups: dict[str, list[str]] = {}
        for symbol in symbols:
            label = (details.get(symbol) or {}).get(field) or default
            groups.setdefault(label, []).append(symbol)
        logger.debug(f"Grouped {len(symbols)} symbols into {len(groups)} {field} groups")
        return groups

    def group_by_sector(self, symbols: list[str]) -> dict[str, list[str]]:
        return self._group_by(symbols, "sector", UNKNOWN)

    def group_by_industry(self, symbols: list[str]) -> dict[str, list[str]]:
        return self._group_by(symbols, "industry", UNKNOWN)

    def group_by_market_cap_type(self, symbols: list[str]) -> dict[str, list[str]]:
        return self._group_by(symbols, "marketCapType", UNKNOWN_MARKET_CAP)

    def get_sector_map(self, symbols: list[str]) -> dict[str, str]:
        return {
            symbol: sector
            for sector, members in self.group_by_sector(symbols).items()
            for symbol in members
        }


class SecurityDetailsService(SecurityClassifier):
    """Fetches security metadata from the securities API, memoized per symbol."""

    def __init__(
        self,
        base_url: str = SECURITY_API_URL,
        timeout: float = HTTP_TIMEOUT,
        cache: CacheService = security_cache,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache

    def _fetch(self, symbols: list[str]) -> dict[str, dict[str, Any]]:
        resp = httpx.post(
            f"{self.base_url}{SECURITY_API_PATH}",
            json={"symbols": symbols},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        payload = resp.json()
        if isinstance(payload, dict):
            payload = payload.get("data") or []
        details = {}
        for item in payload:
            symbol = item.get("symbol")
            if symbol and symbol not in details:
                details[symbol] = item.get("metadata") or {}
        return details

    def _fetch_one_by_one(self, symbols: list[str]) -> dict[str, dict[str, Any]]:
        details = {}
        for symbol in symbols:
            try:
                details.update(self._fetch([symbol]))
            except Exception as e:
                logger.warning(f"Failed to fetch security details for {symbol}: {e}")
        logger.info(f"Fallback retrieval got {len(details)} of {len(symbols)} symbols")
        return details

    def get_security_details(self, symbols: list[str]) -> dict[str, dict[str, Any]]:
        """Returns dict mapping symbol -> metadata for the symbols found.

        A failed bulk lookup is retried symbol by symbol to keep partial results.
        """
        if not symbols:
            return {}
        details = self.cache.get_many(symbols)
        missing = [s for s in symbols if s not in details]
        if not missing:
            return details

        try:
            fetched = self._fetch(missing)
        except Exception as e:
            logger.error(f"Failed to fetch security details for {len(missing)} symbols: {e}")
            fetched = self._fetch_one_by_one(missing)

        not_found = [s for s in missing if s not in fetched]
        if not_found:
            logger.warning(f"No security details for symbols: {not_found}")
        self.cache.set_many(fetched)
        details.update(fetched)
        return details


# Well-known prefixes -> (sector, industry)
_KNOWN_PREFIXES = [
    (("INFO", "TCS", "WIPRO", "INFY"), ("Information Technology", "IT Services")),
    (("HDFC", "ICICI", "SBI", "PNB"), ("Financial Services", "Banks")),
    (("RELIANCE", "ONGC"), ("Energy", "Oil & Gas")),
    (("BHARTI", "IDEA"), ("Telecommunication", "Telecom Services")),
    (("ITC", "HUL"), ("Consumer Goods", "FMCG")),
]

# Initial-letter ranges used when no prefix matches
_LETTER_SECTORS = [
    ("A", "E", "Technology"),
    ("F", "J", "Financial Services"),
    ("K", "O", "Healthcare"),
    ("P", "T", "Consumer Goods"),
]


class PrefixSectorClassifier(SecurityClassifier):
    """Demo classifier that guesses sectors from symbol names.

    For offline use and demos only; it knows nothing about real companies and
    never reports a market-cap type.
    """

    def classify(self, symbol: str) -> dict[str, Any]:
        upper = symbol.upper()
        for prefixes, (sector, industry) in _KNOWN_PREFIXES:
            if upper.startswith(prefixes):
                return {"sector": sector, "industry": industry}
        first = upper[:1]
        for low, high, sector in _LETTER_SECTORS:
            if low <= first <= high:
                return {"sector": sector, "industry": sector}
        return {"sector": "Industrial", "industry": "Industrial"}

    def get_security_details(self, symbols: list[str]) -> dict[str, dict[str, Any]]:
        return {symbol: self.classify(symbol) for symbol in symbols if symbol}


# Global instances
security_details_service = SecurityDetailsService()
prefix_sector_classifier = PrefixSectorClassifier()
