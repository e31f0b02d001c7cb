import logging
from typing import Optional, List, Dict, Any, Callable, TypeVar
from datetime import datetime, timezone
import requests

from .config import Config
from .exceptions import APIResponseError, MalformedResponseError
from .models import (
    Holding,
    Label,
    Page,
    PnlSummary,
    ScreenedToken,
    Transaction,
)

# Set up logging
logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_iso(dt: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _json_or_raise(response: requests.Response, source: str) -> Any:
    if not response.ok:
        raise APIResponseError(
            f"{source} API error: {response.reason or 'HTTP error'}",
            source=source, status_code=response.status_code)
    try:
        return response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"{source} returned invalid JSON", source=source,
            status_code=response.status_code) from e


class NansenClient:
    """Client for the Nansen profiler and token screener API."""

    SOURCE = "nansen"

    def __init__(self, config: Config):
        self.config = config
        self.base_url = config.nansen_base_url.rstrip("/")
        self.headers = {
            "apiKey": config.nansen_api_key,
            "Content-Type": "application/json",
        }

    def _make_request(self, path: str, payload: Dict[str, Any]) -> Any:
        """POST a JSON body to the Nansen API and return the parsed JSON."""
        url = f"{self.base_url}{path}"
        logger.debug(f"POST {url}")

        response = requests.post(url, json=payload, headers=self.headers,
                                 timeout=self.config.request_timeout)
        return _json_or_raise(response, self.SOURCE)

    def _parse_page(self, data: Any, parser: Callable[[Dict[str, Any]], T]) -> Page[T]:
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            raise MalformedResponseError(
                "Expected an object with a 'data' list", source=self.SOURCE)

        pagination = data.get("pagination") or {}
        if not isinstance(pagination, dict):
            raise MalformedResponseError(
                "Expected a pagination object", source=self.SOURCE)

        try:
            page = int(pagination.get("page", 1))
            per_page = int(pagination.get("per_page", len(data["data"])))
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"Invalid pagination: {pagination!r}", source=self.SOURCE) from e

        return Page(
            data=[parser(item) for item in data["data"]],
            page=page,
            per_page=per_page,
            is_last_page=bool(pagination.get("is_last_page", True)),
        )

    def get_current_balance(self, address: str, chain: str = "all",
                            hide_spam_token: bool = True,
                            filters: Optional[Dict[str, Any]] = None,
                            page: int = 1, per_page: int = 100,
                            order_by: Optional[List[Dict[str, str]]] = None) -> Page[Holding]:
        """Get current token balances of a wallet."""
        payload: Dict[str, Any] = {
            "address": address,
            "chain": chain,
            "hide_spam_token": hide_spam_token,
            "pagination": {"page": page, "per_page": per_page},
        }
        if filters:
            payload["filters"] = filters
        if order_by:
            payload["order_by"] = order_by

        data = self._make_request(
            "/api/v1/profiler/address/current-balance", payload)
        return self._parse_page(data, Holding.from_api)

    def get_transactions(self, address: str, chain: str,
                         date_from: datetime, date_to: datetime,
                         hide_spam_token: bool = True,
                         filters: Optional[Dict[str, Any]] = None,
                         page: int = 1, per_page: int = 100,
                         order_by: Optional[List[Dict[str, str]]] = None) -> Page[Transaction]:
        """Get one page of wallet transactions."""
        payload: Dict[str, Any] = {
            "address": address,
            "chain": chain,
            "date": {"from": to_iso(date_from), "to": to_iso(date_to)},
            "hide_spam_token": hide_spam_token,
            "pagination": {"page": page, "per_page": per_page},
        }
        if filters:
            payload["filters"] = filters
        if order_by:
            payload["order_by"] = order_by

        data = self._make_request(
            "/api/v1/profiler/address/transactions", payload)
        return self._parse_page(data, Transaction.from_api)

    def get_all_transactions(self, address: str, chain: str,
                             date_from: datetime, date_to: datetime,
                             hide_spam_token: bool = True,
                             filters: Optional[Dict[str, Any]] = None,
                             per_page: int = 100,
                             order_by: Optional[List[Dict[str, str]]] = None) -> List[Transaction]:
        """Fetch every page of transactions until the API reports the last page.

        The pagination object carries no reliable total, so paging stops on
        ``is_last_page`` (or on an empty page, or at max_transaction_pages).
        """
        transactions: List[Transaction] = []
        page = 1

        while True:
            result = self.get_transactions(
                address, chain, date_from, date_to,
                hide_spam_token=hide_spam_token, filters=filters,
                page=page, per_page=per_page, order_by=order_by)
            transactions.extend(result.data)
            logger.debug(
                f"Fetched transactions page {page}: {len(result.data)} rows, "
                f"last_page={result.is_last_page}")

            if result.is_last_page or not result.data:
                break
            if page >= self.config.max_transaction_pages:
                logger.warning(
                    f"Stopped paging transactions for {address} after {page} pages")
                break
            page += 1

        return transactions

    def get_labels(self, address: str, chain: str = "all",
                   page: int = 1, records_per_page: int = 100) -> List[Label]:
        """Get wallet labels. The endpoint answers with a bare array."""
        payload = {
            "parameters": {"chain": chain, "address": address},
            "pagination": {"page": page, "recordsPerPage": records_per_page},
        }
        data = self._make_request(
            "/api/beta/profiler/address/labels", payload)
        if data is None:
            return []
        if not isinstance(data, list):
            raise MalformedResponseError(
                "Expected a list of labels", source=self.SOURCE)
        return [Label.from_api(item) for item in data]

    def get_pnl_summary(self, address: str, date_from: datetime,
                        date_to: datetime, chain: str = "all") -> Optional[PnlSummary]:
        """Get the realized P&L summary, or None if the wallet has none."""
        payload = {
            "address": address,
            "chain": chain,
            "date": {"from": to_iso(date_from), "to": to_iso(date_to)},
        }
        data = self._make_request(
            "/api/v1/profiler/address/pnl-summary", payload)
        if not data:
            return None
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Expected a P&L summary object", source=self.SOURCE)
        return PnlSummary.from_api(data)

    def screen_tokens(self, chains: List[str], date_from: datetime,
                      date_to: datetime, watchlist: List[str],
                      liquidity_from: float, liquidity_to: float,
                      page: int = 1, per_page: int = 100,
                      order_by: str = "liquidity",
                      order: str = "asc") -> List[ScreenedToken]:
        """Screen a watchlist of tokens by liquidity."""
        payload = {
            "chains": chains,
            "date": {"from": to_iso(date_from), "to": to_iso(date_to)},
            "watchlistFilter": watchlist,
            "filters": {
                "liquidity": {"from": liquidity_from, "to": liquidity_to},
            },
            "pagination": {"page": page, "per_page": per_page},
            "order": {"orderBy": order_by, "order": order},
        }
        data = self._make_request("/api/v1/token-screener", payload)
        if not isinstance(data, dict):
            raise MalformedResponseError(
                "Expected a token screener object", source=self.SOURCE)

        body = data.get("data") or {}
        items = body.get("items") if isinstance(body, dict) else None
        if items is None:
            items = []
        if not isinstance(body, dict) or not isinstance(items, list):
            raise MalformedResponseError(
                "Expected 'data.items' to be a list", source=self.SOURCE)
        return [ScreenedToken.from_api(item) for item in items]


class CoinGeckoClient:
    """Client for CoinGecko API."""

    SOURCE = "coingecko"

    def __init__(self, config: Config):
        self.config = config
        self.base_url = config.coingecko_base_url.rstrip("/")
        self.api_key = config.coingecko_api_key

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make a request to CoinGecko API."""
        url = f"{self.base_url}/{endpoint}"
        headers = {}

        if self.api_key:
            headers["x-cg-pro-api-key"] = self.api_key

        if params is None:
            params = {}

        response = requests.get(url, params=params, headers=headers,
                                timeout=self.config.request_timeout)
        return _json_or_raise(response, self.SOURCE)

    def get_historical_price(self, coin_id: str, date: datetime) -> float:
        """USD price of a coin on a given day (0.0 if CoinGecko has none)."""
        data = self._make_request(
            f"coins/{coin_id}/history",
            {"date": date.strftime("%d-%m-%Y"), "localization": "false"})
        price = (((data or {}).get("market_data") or {})
                 .get("current_price") or {}).get("usd")
        return float(price) if price else 0.0

    def get_current_price(self, coin_id: str) -> float:
        """Current USD price of a coin (0.0 if unknown)."""
        data = self._make_request(
            "simple/price", {"ids": coin_id, "vs_currencies": "usd"})
        price = ((data or {}).get(coin_id) or {}).get("usd")
        return float(price) if price else 0.0

    def get_market_chart(self, platform: str, contract_address: str,
                         days: int) -> List[List[float]]:
        """Price series [[timestamp_ms, price], ...] for a token contract."""
        data = self._make_request(
            f"coins/{platform}/contract/{contract_address.lower()}/market_chart",
            {"vs_currency": "usd", "days": days})
        prices = (data or {}).get("prices")
        if prices is None:
            return []
        if not isinstance(prices, list):
            raise MalformedResponseError(
                "Expected a list of prices", source=self.SOURCE)
        return prices


class CoinMarketCapClient:
    """Client for CoinMarketCap API (requires an API key)."""

    SOURCE = "coinmarketcap"

    def __init__(self, config: Config):
        self.config = config
        self.base_url = config.coinmarketcap_base_url.rstrip("/")
        self.api_key = config.coinmarketcap_api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/{endpoint}"
        headers = {"X-CMC_PRO_API_KEY": self.api_key or "",
                   "Accept": "application/json"}

        response = requests.get(url, params=params, headers=headers,
                                timeout=self.config.request_timeout)
        return _json_or_raise(response, self.SOURCE)

    @staticmethod
    def _usd_price(quote_entry: Any) -> float:
        # v2 endpoints return a list per symbol
        if isinstance(quote_entry, list):
            quote_entry = quote_entry[0] if quote_entry else {}
        usd = (((quote_entry or {}).get("quote") or {}).get("USD")) or {}
        price = usd.get("price")
        return float(price) if price else 0.0

    def get_current_price(self, symbol: str) -> float:
        data = self._make_request(
            "v2/cryptocurrency/quotes/latest", {"symbol": symbol})
        return self._usd_price(((data or {}).get("data") or {}).get(symbol))

    def get_historical_price(self, symbol: str, date: datetime) -> float:
        data = self._make_request(
            "v2/cryptocurrency/quotes/historical",
            {"symbol": symbol, "time_start": to_iso(date), "count": 1,
             "interval": "daily"})
        entry = ((data or {}).get("data") or {}).get(symbol)
        if isinstance(entry, list):
            entry = entry[0] if entry else {}
        quotes = (entry or {}).get("quotes") or []
        if not quotes:
            return 0.0
        return self._usd_price(quotes[0])
