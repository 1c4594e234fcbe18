"""
Analysis pipeline for SmurfWatch.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from pydantic import BaseModel

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    GraphData,
    HeatmapCell,
    PatternLibrary,
    Transaction,
    Wallet,
    ZeroDayCandidate,
)
from smurfwatch.services.adaptive_guard import find_zero_day_candidates
from smurfwatch.services.graph_builder import index_by_wallet
from smurfwatch.services.scorer import (
    build_graph_data,
    score_wallets,
    top_suspicious_wallets,
)
from smurfwatch.services.temporal import enrich_wallets, generate_temporal_heatmap
from smurfwatch.services.wallet_store import WalletStore

log = logging.getLogger(__name__)

HIGH_RISK_SCORE = 60


class AnalysisOutcome(BaseModel):
    graph: GraphData
    heatmap: List[HeatmapCell]
    zero_day_candidates: List[ZeroDayCandidate]
    top_suspicious: List[Wallet]
    total_transactions: int
    total_wallets: int
    high_risk_wallets: int
    processing_time_seconds: float


def run_analysis(
    transactions: Sequence[Transaction],
    store: WalletStore,
    library: PatternLibrary,
    zero_day_limit: Optional[int] = None,
) -> AnalysisOutcome:
    """
    Score every wallet, then run the temporal, heatmap and adaptive-guard
    passes. The scorer must finish first; the remaining passes write
    disjoint wallet fields and run side by side.
    """
    start_time = time.time()
    if zero_day_limit is None:
        zero_day_limit = settings.ZERO_DAY_LIMIT

    store, G = score_wallets(transactions, store)
    graph = build_graph_data(transactions, store, G)
    index = index_by_wallet(transactions)

    with ThreadPoolExecutor() as executor:
        future_temporal = executor.submit(enrich_wallets, store, index)
        future_heatmap = executor.submit(generate_temporal_heatmap, transactions)
        future_zero_day = executor.submit(
            find_zero_day_candidates, store, index, library, zero_day_limit
        )

        future_temporal.result()
        heatmap = future_heatmap.result()
        zero_days = future_zero_day.result()

    high_risk = sum(1 for w in store.values() if w.suspicion_score >= HIGH_RISK_SCORE)
    elapsed = time.time() - start_time
    log.info(
        "Analyzed %d transactions across %d wallets in %.2fs (%d high risk, %d zero-day)",
        len(transactions),
        len(store),
        elapsed,
        high_risk,
        len(zero_days),
    )

    return AnalysisOutcome(
        graph=graph,
        heatmap=heatmap,
        zero_day_candidates=zero_days,
        top_suspicious=top_suspicious_wallets(store, 10),
        total_transactions=len(transactions),
        total_wallets=len(store),
        high_risk_wallets=high_risk,
        processing_time_seconds=round(elapsed, 2),
    )
