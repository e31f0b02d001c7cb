"""
ETH benchmark: did the wallet's token buys beat simply holding ETH?

Historical ETH prices are read from the price fields embedded in the
transaction records themselves, so this analysis makes no price API calls.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

from .analyzers import UPSTREAM_ERRORS
from .api_clients import NansenClient
from .constants import (
    BENCHMARK_MIN_PRICE_COVERAGE,
    BENCHMARK_MIN_VOLUME_USD,
    BENCHMARK_MONTHS,
    ETH_BENCHMARK,
    ETH_BENCHMARK_FALLBACK,
    NATIVE_ETH_ADDRESS,
    ZERO_ADDRESS,
)
from .models import EthBenchmarkFact, FunFactResult, TokenTransfer, Transaction
from .utils import subtract_months

logger = logging.getLogger(__name__)


def _native_price(transfers: Iterable[TokenTransfer]) -> Optional[float]:
    for transfer in transfers:
        if (transfer.token_address == NATIVE_ETH_ADDRESS
                and transfer.price_usd is not None and transfer.price_usd > 0):
            return transfer.price_usd
    return None


def eth_price_from_transaction(tx: Transaction) -> float:
    """Implied ETH price at the time of a transaction, or 0.0.

    Looks at an ETH leg in tokens_sent, then in tokens_received, and finally
    estimates from the volume and the first received token's price/value.
    """
    price = _native_price(tx.tokens_sent)
    if price:
        return price

    price = _native_price(tx.tokens_received)
    if price:
        return price

    if tx.volume_usd > 0 and tx.tokens_received:
        received = tx.tokens_received[0]
        if (received.value_usd is not None and received.value_usd > 0
                and received.price_usd is not None and received.price_usd > 0):
            # Rough estimate only
            return received.price_usd * (tx.volume_usd / received.value_usd)

    return 0.0


def purchased_token_addresses(buys: Iterable[Transaction]) -> Set[str]:
    """Unique non-native token addresses received across all buys."""
    tokens = set()
    for tx in buys:
        for transfer in tx.tokens_received:
            address = transfer.token_address
            if address and address not in (NATIVE_ETH_ADDRESS, ZERO_ADDRESS):
                tokens.add(address)
    return tokens


def current_eth_price(address: str, nansen: NansenClient) -> float:
    """Current ETH price read off the wallet's own ethereum balance entries."""
    balances = nansen.get_current_balance(
        address, chain="ethereum", hide_spam_token=False, per_page=10).data

    for balance in balances:
        if balance.token_address == NATIVE_ETH_ADDRESS and balance.price_usd > 0:
            return balance.price_usd
    return 0.0


def current_portfolio_value(address: str, nansen: NansenClient,
                            token_addresses: Set[str]) -> float:
    """Current USD value of the purchased tokens still held.

    Tokens sold since contribute nothing. A failed lookup counts as 0.
    """
    try:
        balances = nansen.get_current_balance(
            address, chain="all", hide_spam_token=True, per_page=100).data
    except UPSTREAM_ERRORS as e:
        logger.warning(f"Portfolio value lookup failed for {address}: {e}")
        return 0.0

    return sum(b.value_usd for b in balances if b.token_address in token_addresses)


def analyze_eth_benchmark(address: str, nansen: NansenClient,
                          now: Optional[datetime] = None) -> FunFactResult[EthBenchmarkFact]:
    """Compare the current value of tokens bought in the last 6 months with
    the value the same USD would have today had it been put into ETH."""
    now = now or datetime.now(timezone.utc)
    fallback = FunFactResult.fail(ETH_BENCHMARK, ETH_BENCHMARK_FALLBACK)

    try:
        transactions = nansen.get_all_transactions(
            address,
            chain="ethereum",
            date_from=subtract_months(now, BENCHMARK_MONTHS),
            date_to=now,
            hide_spam_token=True,
            filters={"volume_usd": {"min": BENCHMARK_MIN_VOLUME_USD}},
            per_page=100,
            order_by=[{"field": "block_timestamp", "direction": "ASC"}],
        )
    except UPSTREAM_ERRORS as e:
        logger.warning(f"[ETH Benchmark] Transaction lookup failed for {address}: {e}")
        return fallback

    if not transactions:
        return fallback

    buys: List[Transaction] = [tx for tx in transactions if tx.is_buy]
    if not buys:
        return fallback
    logger.info(f"[ETH Benchmark] {len(buys)} buys out of {len(transactions)} transactions")

    usd_spent = 0.0
    eth_equivalent = 0.0
    priced = 0
    for tx in buys:
        usd_spent += tx.volume_usd
        eth_price = eth_price_from_transaction(tx)
        if eth_price > 0:
            eth_equivalent += tx.volume_usd / eth_price
            priced += 1

    logger.info(f"[ETH Benchmark] {priced}/{len(buys)} buys carry ETH price data")
    if eth_equivalent == 0 or priced < len(buys) * BENCHMARK_MIN_PRICE_COVERAGE:
        return fallback

    purchased = purchased_token_addresses(buys)

    try:
        eth_price_now = current_eth_price(address, nansen)
    except UPSTREAM_ERRORS as e:
        logger.warning(f"[ETH Benchmark] Current ETH price lookup failed: {e}")
        return fallback

    if eth_price_now <= 0:
        logger.info("[ETH Benchmark] No current ETH price in balance data")
        return fallback

    eth_equivalent_value = eth_equivalent * eth_price_now
    portfolio_value = current_portfolio_value(address, nansen, purchased)

    performance = (portfolio_value - eth_equivalent_value) / eth_equivalent_value * 100
    logger.info(
        f"[ETH Benchmark] spent ${usd_spent:.2f} ({eth_equivalent:.4f} ETH), "
        f"now ${portfolio_value:.2f} vs ${eth_equivalent_value:.2f} in ETH")

    return FunFactResult.ok(ETH_BENCHMARK, EthBenchmarkFact(
        portfolio_value=portfolio_value,
        eth_equivalent_value=eth_equivalent_value,
        performance_percent=performance,
        status="OUTPERFORMED" if performance >= 0 else "UNDERPERFORMED",
        usd_spent=usd_spent,
        eth_equivalent=eth_equivalent,
        buy_count=len(buys),
        priced_count=priced,
    ))
