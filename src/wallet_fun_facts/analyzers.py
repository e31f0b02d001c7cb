"""
Single-call fun facts: P&L, labels, smart money and rugged projects.

Every analyzer returns a FunFactResult and never raises for upstream
failures; those become the analyzer's fallback.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests

from .api_clients import NansenClient
from .constants import (
    LABEL_PRIORITY,
    LABELS,
    LIQUIDITY_THRESHOLD_USD,
    NATIVE_TOKEN_ADDRESSES,
    PNL,
    PNL_FALLBACK,
    PNL_MIN_PERCENT,
    PNL_MIN_USD,
    RUGGED_MIN_HOLDING_USD,
    RUGGED_PROJECTS,
    SCREENER_CHAINS,
    SMART_MONEY,
    SMART_MONEY_CATEGORY,
    SMART_MONEY_KEYWORDS,
    SMART_MONEY_PRIORITY,
)
from .exceptions import UpstreamError
from .models import (
    FunFactResult,
    Label,
    LabelFact,
    PnlFact,
    RuggedProjectsFact,
    RuggedToken,
    SmartMoneyFact,
)
from .utils import subtract_months

logger = logging.getLogger(__name__)

# Failures turned into a fallback result inside an analyzer
UPSTREAM_ERRORS = (UpstreamError, requests.RequestException)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def analyze_pnl(address: str, nansen: NansenClient, years: int = 1,
                now: Optional[datetime] = None) -> FunFactResult[PnlFact]:
    """Realized profit/loss over the past ``years`` years."""
    now = now or _utcnow()
    try:
        summary = nansen.get_pnl_summary(
            address, date_from=subtract_months(now, 12 * years), date_to=now)
    except UPSTREAM_ERRORS as e:
        logger.warning(f"P&L lookup failed for {address}: {e}")
        return FunFactResult.fail(PNL, PNL_FALLBACK)

    if summary is None:
        return FunFactResult.fail(PNL, PNL_FALLBACK)

    # Nansen returns a fraction (0.15 == 15%)
    pnl_percent = summary.realized_pnl_percent * 100
    pnl_usd = summary.realized_pnl_usd

    if abs(pnl_percent) < PNL_MIN_PERCENT and abs(pnl_usd) < PNL_MIN_USD:
        logger.info(f"P&L for {address} too small to report")
        return FunFactResult.fail(PNL, PNL_FALLBACK)

    timeframe = "in the past year" if years == 1 else f"in the past {years} years"
    return FunFactResult.ok(PNL, PnlFact(
        realized_pnl_percent=pnl_percent,
        realized_pnl_usd=pnl_usd,
        status="GAIN" if pnl_percent >= 0 else "LOSS",
        timeframe=timeframe,
    ))


def _fetch_labels(address: str, nansen: NansenClient) -> Optional[List[Label]]:
    try:
        return nansen.get_labels(address)
    except UPSTREAM_ERRORS as e:
        logger.warning(f"Label lookup failed for {address}: {e}")
        return None


def pick_priority_label(labels: List[Label]) -> Optional[str]:
    """Highest priority label present, matched exactly."""
    present = {item.label for item in labels}
    for priority_label in LABEL_PRIORITY:
        if priority_label in present:
            return priority_label
    return None


def analyze_labels(address: str, nansen: NansenClient) -> FunFactResult[LabelFact]:
    """Highest priority Nansen label, or a skipped card."""
    labels = _fetch_labels(address, nansen)
    if not labels:
        return FunFactResult.fail(LABELS)

    label = pick_priority_label(labels)
    if label is None:
        return FunFactResult.fail(LABELS)

    return FunFactResult.ok(LABELS, LabelFact(label=label))


def detect_smart_money(labels: List[Label]) -> List[str]:
    """Smart money labels of a wallet, most significant first.

    Labels in the ``smart_money`` category win; within them the smart trader
    timeframes are ranked. Without such a category the label strings are
    matched against the smart trader and smart keyword lists.
    """
    category_labels = [item.label for item in labels
                       if item.category == SMART_MONEY_CATEGORY]
    if category_labels:
        for priority_label in SMART_MONEY_PRIORITY:
            if priority_label in category_labels:
                return [priority_label]
        return category_labels

    all_labels = [item.label for item in labels]
    for candidate in SMART_MONEY_PRIORITY + SMART_MONEY_KEYWORDS:
        if candidate in all_labels:
            return [candidate]
    return []


def analyze_smart_money(address: str, nansen: NansenClient) -> FunFactResult[SmartMoneyFact]:
    labels = _fetch_labels(address, nansen)
    if not labels:
        return FunFactResult.fail(SMART_MONEY)

    found = detect_smart_money(labels)
    if not found:
        return FunFactResult.fail(SMART_MONEY)

    return FunFactResult.ok(SMART_MONEY, SmartMoneyFact(is_smart_money=True, labels=found))


def _clear_skies() -> FunFactResult[RuggedProjectsFact]:
    return FunFactResult.ok(RUGGED_PROJECTS, RuggedProjectsFact(rugged_count=0))


def analyze_rugged_projects(address: str, nansen: NansenClient,
                            now: Optional[datetime] = None) -> FunFactResult[RuggedProjectsFact]:
    """Holdings whose market liquidity collapsed below $10k.

    Always succeeds; no holdings, no flagged tokens or an upstream failure
    all yield an empty list.
    """
    now = now or _utcnow()
    try:
        holdings = nansen.get_current_balance(
            address,
            chain="all",
            hide_spam_token=True,
            filters={"value_usd": {"min": RUGGED_MIN_HOLDING_USD}},
            per_page=100,
            order_by=[{"field": "value_usd", "direction": "DESC"}],
        ).data

        token_addresses = [
            h.token_address for h in holdings
            if h.token_address
            and h.token_address not in NATIVE_TOKEN_ADDRESSES
            and h.value_usd >= RUGGED_MIN_HOLDING_USD
        ]
        if not token_addresses:
            return _clear_skies()

        screened = nansen.screen_tokens(
            chains=SCREENER_CHAINS,
            date_from=subtract_months(now, 12),
            date_to=now,
            watchlist=token_addresses,
            liquidity_from=0,
            liquidity_to=LIQUIDITY_THRESHOLD_USD,
        )
    except UPSTREAM_ERRORS as e:
        logger.warning(f"Rugged project screening failed for {address}: {e}")
        return _clear_skies()

    rugged = [
        RuggedToken(name=t.name, symbol=t.symbol, liquidity_usd=t.liquidity_usd)
        for t in screened
        if 0 < t.liquidity_usd < LIQUIDITY_THRESHOLD_USD
    ]
    logger.info(f"{len(rugged)} rugged tokens among {len(token_addresses)} holdings of {address}")

    if not rugged:
        return _clear_skies()

    return FunFactResult.ok(RUGGED_PROJECTS, RuggedProjectsFact(
        rugged_count=len(rugged), rugged_tokens=rugged))
