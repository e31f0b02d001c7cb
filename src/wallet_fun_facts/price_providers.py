"""
Price providers with ordered fallback.

Each provider wraps one price API and answers with 0.0 (or an empty
AthRecord) when it cannot help. PriceService asks the providers in order and
keeps the first positive answer.

Historical and current prices are part of the provider interface, but only
the ATH lookups are used by a fun fact today.
"""

import time
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

import requests

from .api_clients import CoinGeckoClient, CoinMarketCapClient
from .config import Config
from .exceptions import UpstreamError
from .models import AthRecord

logger = logging.getLogger(__name__)

# Failures a provider absorbs and reports as "no price"
PROVIDER_ERRORS = (UpstreamError, requests.RequestException,
                   ValueError, TypeError, AttributeError)

# Nansen chain names -> CoinGecko asset platform ids
COINGECKO_PLATFORMS = {
    "ethereum": "ethereum",
    "polygon": "polygon-pos",
    "bnb": "binance-smart-chain",
    "bsc": "binance-smart-chain",
    "arbitrum": "arbitrum-one",
    "optimism": "optimistic-ethereum",
    "avalanche": "avalanche",
    "base": "base",
    "linea": "linea",
    "scroll": "scroll",
    "zksync": "zksync",
    "blast": "blast",
    "fantom": "fantom",
}

# CoinGecko coin ids -> CoinMarketCap symbols
COINMARKETCAP_SYMBOLS = {
    "ethereum": "ETH",
    "bitcoin": "BTC",
    "binance-coin": "BNB",
    "usd-coin": "USDC",
    "tether": "USDT",
    "wrapped-bitcoin": "WBTC",
    "dai": "DAI",
    "chainlink": "LINK",
    "uniswap": "UNI",
    "matic-network": "MATIC",
}


@dataclass(frozen=True)
class TokenRef:
    chain: str
    address: str

    @property
    def key(self) -> str:
        return self.address.lower()


class PriceProvider(ABC):
    """Common interface of the price APIs."""

    name: str = "provider"

    @abstractmethod
    def get_historical_price(self, coin_id: str, date: datetime) -> float:
        """USD price of ``coin_id`` on ``date``, or 0.0 if unavailable."""

    @abstractmethod
    def get_current_price(self, coin_id: str) -> float:
        """Current USD price of ``coin_id``, or 0.0 if unavailable."""

    @abstractmethod
    def get_ath_price(self, chain: str, address: str, days: int) -> AthRecord:
        """Highest USD price of a token over the last ``days`` days."""

    def batch_get_ath_prices(self, tokens: Sequence[TokenRef],
                             days: int) -> Dict[str, AthRecord]:
        """ATH records keyed by lower-cased token address."""
        return {token.key: self.get_ath_price(token.chain, token.address, days)
                for token in tokens}


class CoinGeckoPriceProvider(PriceProvider):
    """CoinGecko free tier: rate limited, but the only source of ATH data."""

    name = "CoinGecko"

    def __init__(self, client: CoinGeckoClient, batch_size: int = 5,
                 batch_delay: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self._sleep = sleep

    def get_historical_price(self, coin_id: str, date: datetime) -> float:
        try:
            return self.client.get_historical_price(coin_id, date)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[{self.name}] Failed to get historical price for {coin_id}: {e}")
            return 0.0

    def get_current_price(self, coin_id: str) -> float:
        try:
            return self.client.get_current_price(coin_id)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[{self.name}] Failed to get current price for {coin_id}: {e}")
            return 0.0

    def get_ath_price(self, chain: str, address: str, days: int) -> AthRecord:
        platform = COINGECKO_PLATFORMS.get((chain or "").lower())
        if platform is None:
            logger.debug(f"[{self.name}] No platform for chain '{chain}'")
            return AthRecord()

        try:
            series = self.client.get_market_chart(platform, address, days)
            return ath_from_series(series)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[{self.name}] Failed to get ATH for {address}: {e}")
            return AthRecord()

    def batch_get_ath_prices(self, tokens: Sequence[TokenRef],
                             days: int) -> Dict[str, AthRecord]:
        """Fetch ATH prices in small concurrent batches with a pause in between."""
        results: Dict[str, AthRecord] = {}
        batches = [tokens[i:i + self.batch_size]
                   for i in range(0, len(tokens), self.batch_size)]

        for index, batch in enumerate(batches):
            if index > 0 and self.batch_delay > 0:
                self._sleep(self.batch_delay)

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                records = list(executor.map(
                    lambda t: self.get_ath_price(t.chain, t.address, days), batch))
            for token, record in zip(batch, records):
                results[token.key] = record

            logger.debug(
                f"[{self.name}] ATH batch {index + 1}/{len(batches)} done")

        return results


class CoinMarketCapPriceProvider(PriceProvider):
    """CoinMarketCap: needs an API key, symbol based, no ATH support."""

    name = "CoinMarketCap"

    def __init__(self, client: CoinMarketCapClient):
        self.client = client

    @staticmethod
    def coin_id_to_symbol(coin_id: str) -> Optional[str]:
        return COINMARKETCAP_SYMBOLS.get(coin_id.lower())

    def get_historical_price(self, coin_id: str, date: datetime) -> float:
        symbol = self.coin_id_to_symbol(coin_id)
        if not self.client.enabled or not symbol:
            return 0.0
        try:
            return self.client.get_historical_price(symbol, date)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[{self.name}] Failed to get historical price for {symbol}: {e}")
            return 0.0

    def get_current_price(self, coin_id: str) -> float:
        symbol = self.coin_id_to_symbol(coin_id)
        if not self.client.enabled or not symbol:
            return 0.0
        try:
            return self.client.get_current_price(symbol)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[{self.name}] Failed to get current price for {symbol}: {e}")
            return 0.0

    def get_ath_price(self, chain: str, address: str, days: int) -> AthRecord:
        return AthRecord()


def ath_from_series(series: List[List[float]]) -> AthRecord:
    """Pick the highest price out of a [[timestamp_ms, price], ...] series."""
    best_price = 0.0
    best_ts: Optional[float] = None

    for point in series:
        if not isinstance(point, (list, tuple)) or len(point) < 2 or point[1] is None:
            continue
        price = float(point[1])
        if price > best_price:
            best_price = price
            best_ts = float(point[0])

    if best_ts is None:
        return AthRecord()
    return AthRecord(
        ath_price=best_price,
        ath_date=datetime.fromtimestamp(best_ts / 1000, tz=timezone.utc),
    )


class PriceService:
    """Asks each provider in order until one returns a usable price."""

    def __init__(self, providers: Sequence[PriceProvider]):
        self.providers = list(providers)

    def get_historical_price(self, coin_id: str, date: datetime) -> float:
        for provider in self.providers:
            price = provider.get_historical_price(coin_id, date)
            if price > 0:
                logger.debug(f"Historical price of {coin_id} from {provider.name}: {price:.2f}")
                return price

        logger.warning(f"All providers failed for historical price of {coin_id}")
        return 0.0

    def get_current_price(self, coin_id: str) -> float:
        for provider in self.providers:
            price = provider.get_current_price(coin_id)
            if price > 0:
                logger.debug(f"Current price of {coin_id} from {provider.name}: {price:.2f}")
                return price

        logger.warning(f"All providers failed for current price of {coin_id}")
        return 0.0

    def get_ath_price(self, chain: str, address: str, days: int) -> AthRecord:
        for provider in self.providers:
            record = provider.get_ath_price(chain, address, days)
            if record.is_known:
                return record
        return AthRecord()

    def batch_get_ath_prices(self, tokens: Sequence[TokenRef],
                             days: int = 365) -> Dict[str, AthRecord]:
        """ATH records for every token; unpriced tokens move down the chain."""
        results: Dict[str, AthRecord] = {}
        remaining = list(tokens)

        for provider in self.providers:
            if not remaining:
                break
            fetched = provider.batch_get_ath_prices(remaining, days)
            priced = {key: record for key, record in fetched.items()
                      if record.is_known}
            results.update(priced)
            remaining = [t for t in remaining if t.key not in results]
            logger.debug(
                f"{provider.name} priced {len(priced)} ATHs, {len(remaining)} left")

        for token in remaining:
            results.setdefault(token.key, AthRecord())
        return results


def build_price_service(config: Config) -> PriceService:
    """Default provider chain: CoinGecko, then CoinMarketCap when a key is set."""
    providers: List[PriceProvider] = [
        CoinGeckoPriceProvider(
            CoinGeckoClient(config),
            batch_size=config.ath_batch_size,
            batch_delay=config.rate_limit_delay,
        ),
    ]

    cmc_client = CoinMarketCapClient(config)
    if cmc_client.enabled:
        providers.append(CoinMarketCapPriceProvider(cmc_client))
        logger.info("CoinMarketCap price provider enabled")

    return PriceService(providers)
