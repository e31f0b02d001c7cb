"""
Portfolio at ATH: what the current holdings would be worth if every token
traded at its one-year all-time high.
"""

import logging
from typing import Dict, List

from .analyzers import UPSTREAM_ERRORS
from .api_clients import NansenClient
from .cache import AthCache
from .constants import (
    ATH_LOOKBACK_DAYS,
    NATIVE_TOKEN_ADDRESSES,
    PORTFOLIO_ATH,
    PORTFOLIO_ATH_FALLBACK,
    TOP_HOLDINGS_COUNT,
)
from .models import AthRecord, FunFactResult, Holding, PortfolioAthFact
from .price_providers import PriceService, TokenRef

logger = logging.getLogger(__name__)


def _is_priceable(holding: Holding) -> bool:
    return (bool(holding.token_address)
            and holding.token_address not in NATIVE_TOKEN_ADDRESSES
            and bool(holding.chain)
            and holding.value_usd > 0)


def resolve_ath_prices(holdings: List[Holding], prices: PriceService,
                       cache: AthCache) -> Dict[str, AthRecord]:
    """ATH records for the holdings, served from cache where possible.

    Misses are fetched in one batch and positive results written back.
    """
    ath_prices: Dict[str, AthRecord] = {}
    to_fetch: Dict[str, TokenRef] = {}

    for holding in holdings:
        key = holding.token_address
        if key in ath_prices or key in to_fetch:
            continue
        cached = cache.get(key)
        if cached is not None:
            ath_prices[key] = cached
        else:
            to_fetch[key] = TokenRef(chain=holding.chain, address=key)

    logger.info(
        f"[Portfolio ATH] cache hits {len(ath_prices)}, fetching {len(to_fetch)}")

    if to_fetch:
        fetched = prices.batch_get_ath_prices(list(to_fetch.values()), ATH_LOOKBACK_DAYS)
        for key, record in fetched.items():
            ath_prices[key] = record
            if record.is_known:
                cache.set(key, record.ath_price, record.ath_date)

    logger.debug(f"[Portfolio ATH] cache stats: {cache.stats()}")
    return ath_prices


def analyze_portfolio_ath(address: str, nansen: NansenClient,
                          prices: PriceService, cache: AthCache) -> FunFactResult[PortfolioAthFact]:
    """Potential gain of the top 30 holdings at their all-time highs.

    Tokens without a known ATH count at their current value, so they neither
    add nor remove potential gain.
    """
    fallback = FunFactResult.fail(PORTFOLIO_ATH, PORTFOLIO_ATH_FALLBACK)

    try:
        holdings = nansen.get_current_balance(
            address,
            chain="all",
            hide_spam_token=True,
            per_page=TOP_HOLDINGS_COUNT,
            order_by=[{"field": "value_usd", "direction": "DESC"}],
        ).data
    except UPSTREAM_ERRORS as e:
        logger.warning(f"[Portfolio ATH] Balance lookup failed for {address}: {e}")
        return fallback

    if not holdings:
        return fallback

    token_holdings = [h for h in holdings if _is_priceable(h)]
    if not token_holdings:
        return fallback

    current_value = sum(h.value_usd for h in token_holdings)
    ath_prices = resolve_ath_prices(token_holdings, prices, cache)

    ath_value = 0.0
    priced = 0
    for holding in token_holdings:
        record = ath_prices.get(holding.token_address)
        if record is not None and record.is_known:
            ath_value += float(holding.balance) * record.ath_price
            priced += 1
        else:
            ath_value += holding.value_usd

    if priced == 0 or current_value <= 0:
        return fallback

    gain = (ath_value - current_value) / current_value * 100
    logger.info(
        f"[Portfolio ATH] {priced}/{len(token_holdings)} tokens priced, "
        f"${current_value:.2f} -> ${ath_value:.2f}")

    return FunFactResult.ok(PORTFOLIO_ATH, PortfolioAthFact(
        current_value=current_value,
        ath_value=ath_value,
        potential_gain_percent=gain,
        tokens_priced=priced,
        tokens_total=len(token_holdings),
    ))
