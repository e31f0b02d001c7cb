"""
Shared fixtures and record builders for the fun fact tests.
"""

from decimal import Decimal
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from wallet_fun_facts.api_clients import NansenClient
from wallet_fun_facts.cache import AthCache
from wallet_fun_facts.config import Config
from wallet_fun_facts.constants import NATIVE_ETH_ADDRESS
from wallet_fun_facts.models import (
    Holding,
    Label,
    Page,
    TokenTransfer,
    Transaction,
)
from wallet_fun_facts.price_providers import PriceService

WALLET = "0x6313d7948d3491096ffe00dea2d246d588b4d4fc"
TOKEN_A = "0x" + "a" * 40
TOKEN_B = "0x" + "b" * 40
TOKEN_C = "0x" + "c" * 40


def make_holding(token_address: str, value_usd: float, balance: str = "1",
                 chain: str = "ethereum", price_usd: float = 0.0,
                 symbol: str = "TKN") -> Holding:
    return Holding(
        token_address=token_address,
        chain=chain,
        symbol=symbol,
        balance=Decimal(balance),
        value_usd=value_usd,
        price_usd=price_usd,
    )


def make_transfer(token_address: str, price_usd: Optional[float] = None,
                  value_usd: Optional[float] = None) -> TokenTransfer:
    return TokenTransfer(token_address=token_address,
                         price_usd=price_usd, value_usd=value_usd)


def make_tx(volume_usd: float, sent: Optional[List[TokenTransfer]] = None,
            received: Optional[List[TokenTransfer]] = None) -> Transaction:
    return Transaction(
        timestamp=None,
        chain="ethereum",
        method="swap",
        volume_usd=volume_usd,
        tokens_sent=sent or [],
        tokens_received=received or [],
    )


def eth_leg(price_usd: float) -> TokenTransfer:
    return make_transfer(NATIVE_ETH_ADDRESS, price_usd=price_usd)


def page(items) -> Page:
    return Page(data=list(items), page=1, per_page=100, is_last_page=True)


@pytest.fixture
def config():
    return Config(
        nansen_api_key="test-key",
        rate_limit_delay=0.0,
        max_transaction_pages=5,
    )


@pytest.fixture
def nansen():
    """A NansenClient double with empty answers by default."""
    client = MagicMock(spec=NansenClient)
    client.get_current_balance.return_value = page([])
    client.get_all_transactions.return_value = []
    client.get_labels.return_value = []
    client.get_pnl_summary.return_value = None
    client.screen_tokens.return_value = []
    return client


@pytest.fixture
def prices():
    service = MagicMock(spec=PriceService)
    service.batch_get_ath_prices.return_value = {}
    return service


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return AthCache(clock=clock)


def labels(*names: str, category: str = "behavioral") -> List[Label]:
    return [Label(label=name, category=category) for name in names]
