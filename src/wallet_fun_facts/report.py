"""
Runs the six fun facts for one wallet.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Tuple

from .analyzers import (
    analyze_labels,
    analyze_pnl,
    analyze_rugged_projects,
    analyze_smart_money,
)
from .api_clients import NansenClient
from .cache import AthCache
from .constants import (
    ETH_BENCHMARK,
    FUN_FACT_ORDER,
    LABELS,
    PNL,
    PORTFOLIO_ATH,
    RUGGED_PROJECTS,
    SMART_MONEY,
)
from .eth_benchmark import analyze_eth_benchmark
from .models import FunFactResult
from .portfolio_ath import analyze_portfolio_ath
from .price_providers import PriceService

logger = logging.getLogger(__name__)


@dataclass
class WalletReport:
    """All fun fact results for one wallet, in display order."""
    address: str
    results: Dict[str, FunFactResult] = field(default_factory=dict)
    durations: Dict[str, float] = field(default_factory=dict)
    analyzed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc))

    def ordered(self) -> List[Tuple[str, FunFactResult]]:
        return [(kind, self.results[kind]) for kind in FUN_FACT_ORDER
                if kind in self.results]

    @property
    def success_count(self) -> int:
        return sum(1 for result in self.results.values() if result.success)


def _timed(kind: str, func: Callable[[], FunFactResult]) -> Tuple[str, FunFactResult, float]:
    started = time.perf_counter()
    result = func()
    elapsed = time.perf_counter() - started
    logger.debug(f"{kind} finished in {elapsed:.2f}s (success={result.success})")
    return kind, result, elapsed


def build_tasks(address: str, nansen: NansenClient, prices: PriceService,
                cache: AthCache) -> Dict[str, Callable[[], FunFactResult[Any]]]:
    return {
        PNL: partial(analyze_pnl, address, nansen),
        LABELS: partial(analyze_labels, address, nansen),
        SMART_MONEY: partial(analyze_smart_money, address, nansen),
        RUGGED_PROJECTS: partial(analyze_rugged_projects, address, nansen),
        ETH_BENCHMARK: partial(analyze_eth_benchmark, address, nansen),
        PORTFOLIO_ATH: partial(analyze_portfolio_ath, address, nansen, prices, cache),
    }


async def analyze_wallet(address: str, nansen: NansenClient, prices: PriceService,
                         cache: AthCache, concurrent: bool = True) -> WalletReport:
    """Run every analyzer for ``address``.

    With ``concurrent`` each analyzer gets its own worker thread, so one
    analyzer paging through transactions does not hold up the others.
    Results are the same either way.
    """
    tasks = build_tasks(address, nansen, prices, cache)
    report = WalletReport(address=address)

    if concurrent:
        outcomes = await asyncio.gather(*(
            asyncio.to_thread(_timed, kind, func) for kind, func in tasks.items()
        ))
    else:
        outcomes = [_timed(kind, func) for kind, func in tasks.items()]

    for kind, result, elapsed in outcomes:
        report.results[kind] = result
        report.durations[kind] = elapsed

    logger.info(
        f"Analyzed {address}: {report.success_count}/{len(tasks)} fun facts available")
    return report
