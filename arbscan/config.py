import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    # Source ids, in the order results are reported (ccxt ids or "jbex")
    exchanges: Tuple[str, ...] = tuple(
        e for e in os.getenv("EXCHANGES", "binance,bybit,poloniex,whitebit,jbex").replace(" ", "").split(",") if e
    )

    # Arbitrage scanning defaults
    min_profit_pct: float = float(os.getenv("MIN_PROFIT_PCT", "0.1"))  # percent
    pairs_cache_ttl_seconds: int = int(os.getenv("PAIRS_CACHE_TTL", "3600"))  # 1 hour

    # Fetching
    retry_attempts: int = int(os.getenv("RETRY_ATTEMPTS", "3"))
    retry_delay_ms: int = int(os.getenv("RATE_LIMIT_DELAY", "200"))
    api_timeout_ms: int = int(os.getenv("API_TIMEOUT", "5000"))
    fetch_deadline_seconds: float = float(os.getenv("FETCH_DEADLINE", "0"))  # 0 = no deadline
    concurrency: int = int(os.getenv("CONCURRENCY", "16"))

    # Cache
    cache_backend: str = os.getenv("CACHE_BACKEND", "sqlite")
    cache_db_path: str = os.getenv("CACHE_DB_PATH", ".cache/arbscan_cache.sqlite3")

    # JBEX is not in ccxt and is reached over its public REST API
    jbex_api_url: str = os.getenv("JBEX_API_URL", "https://api.jbex.com")
    jbex_api_key: str = os.getenv("JBEX_API_KEY", "")

    @property
    def fetch_deadline(self) -> Optional[float]:
        return self.fetch_deadline_seconds if self.fetch_deadline_seconds > 0 else None


def exchange_credentials(exchange_id: str) -> Dict[str, str]:
    # Optional keys for private endpoints (public tickers do not need them)
    prefix = exchange_id.upper()
    creds: Dict[str, str] = {}
    key = os.getenv(f"{prefix}_API_KEY")
    secret = os.getenv(f"{prefix}_API_SECRET")
    if key and secret:
        creds.update({"apiKey": key, "secret": secret})
        password = os.getenv(f"{prefix}_API_PASSPHRASE")
        if password:
            creds["password"] = password
    return creds


settings = Settings()
