"""Application configuration."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
DB_PATH = BASE_DIR / "data" / "market_analytics.db"
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{DB_PATH}"

# Upstream market data API
MARKET_DATA_API_URL = os.getenv("MARKET_DATA_API_URL", "http://localhost:8092")
MARKET_DATA_OHLC_PATH = "/api/v1/market-data/ohlc"
MARKET_DATA_HISTORICAL_PATH = "/api/v1/market-data/historical-data"

# Upstream index constituents API
NSE_INDICES_API_URL = os.getenv("NSE_INDICES_API_URL", "http://localhost:8092")
NSE_INDICES_PATH = "/api/v1/nse-indices"

# Upstream security metadata API
SECURITY_API_URL = os.getenv("SECURITY_API_URL", "http://localhost:8092")
SECURITY_API_PATH = "/api/v1/securities/details"

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
SECURITY_CACHE_TTL = 3600  # seconds

# Prefix heuristic classifier, demo use only
USE_FALLBACK_CLASSIFIER = os.getenv("USE_FALLBACK_CLASSIFIER", "").lower() in ("1", "true", "yes")

# Analytics defaults
DEFAULT_MOVERS_LIMIT = 5
SECTOR_TOP_STOCKS = 5
INDUSTRY_TOP_STOCKS = 3
SEGMENT_TOP_STOCKS = 5
SECTOR_MOVERS_LIMIT = 3

# Ensure data directory exists (only needed for local SQLite, skip if DATABASE_URL is overridden)
if not os.getenv("DATABASE_URL"):
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
