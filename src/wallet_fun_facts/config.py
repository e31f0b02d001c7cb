import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # API Keys
    nansen_api_key: str
    coingecko_api_key: Optional[str] = None
    coinmarketcap_api_key: Optional[str] = None

    # API URLs
    nansen_base_url: str = "https://api.nansen.ai"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coinmarketcap_base_url: str = "https://pro-api.coinmarketcap.com"

    # HTTP settings
    request_timeout: float = 30.0
    rate_limit_delay: float = 1.0  # seconds between ATH price batches
    ath_batch_size: int = 5
    max_transaction_pages: int = 50

    # ATH cache settings
    ath_cache_ttl_hours: float = 24.0
    ath_cache_max_entries: int = 1000

    # Logging
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        nansen_key = os.getenv("NANSEN_API_KEY")
        if not nansen_key:
            raise ValueError(
                "NANSEN_API_KEY environment variable is required")

        return cls(
            nansen_api_key=nansen_key,
            coingecko_api_key=os.getenv("COINGECKO_API_KEY") or None,
            coinmarketcap_api_key=os.getenv("COINMARKETCAP_API_KEY") or None,
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
            rate_limit_delay=float(os.getenv("RATE_LIMIT_DELAY", "1.0")),
            ath_batch_size=int(os.getenv("ATH_BATCH_SIZE", "5")),
            max_transaction_pages=int(
                os.getenv("MAX_TRANSACTION_PAGES", "50")),
            ath_cache_ttl_hours=float(
                os.getenv("ATH_CACHE_TTL_HOURS", "24")),
            ath_cache_max_entries=int(
                os.getenv("ATH_CACHE_MAX_ENTRIES", "1000")),
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        )
