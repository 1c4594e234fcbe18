"""
Upload router for SmurfWatch API.
"""

import gc
import logging
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    AnalysisResponse,
    AnalysisSummary,
    GraphData,
    HeatmapCell,
    PatternLibrary,
    Transaction,
    ZeroDayCandidate,
)
from smurfwatch.services.adaptive_guard import create_pattern_library
from smurfwatch.services.pipeline import run_analysis
from smurfwatch.services.scorer import build_graph_data
from smurfwatch.services.temporal import filter_by_age, ledger_time_range, sort_links_by_time
from smurfwatch.services.wallet_store import WalletStore
from smurfwatch.utils.csv_validator import validate_csv
from smurfwatch.utils.ledger_parser import parse_transactions, read_ledger

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


class AnalysisState:
    """Holds the last analysis: ledger, wallet store, pattern library and derived views."""

    def __init__(self):
        self.transactions: Optional[List[Transaction]] = None
        self.store: WalletStore = WalletStore()
        self.library: PatternLibrary = create_pattern_library()
        self.graph: Optional[GraphData] = None
        self.heatmap: List[HeatmapCell] = []
        self.zero_day_candidates: List[ZeroDayCandidate] = []

    @property
    def ready(self) -> bool:
        return self.transactions is not None

    def update(
        self,
        transactions: List[Transaction],
        store: WalletStore,
        graph: GraphData,
        heatmap: List[HeatmapCell],
        zero_day_candidates: List[ZeroDayCandidate],
    ):
        # Clear previous references before setting new ones
        self.transactions = None
        self.graph = None
        gc.collect()

        self.transactions = transactions
        self.store = store
        self.graph = graph
        self.heatmap = heatmap
        self.zero_day_candidates = zero_day_candidates

    def reset(self):
        self.__init__()


state = AnalysisState()


def require_analysis() -> AnalysisState:
    if not state.ready:
        raise HTTPException(status_code=404, detail="No analysis has been run yet")
    return state


@router.post("/upload", response_model=AnalysisResponse)
async def upload_csv(file: UploadFile = File(...)) -> AnalysisResponse:
    """Upload a ledger CSV and run the full analysis."""

    if not file.filename or not file.filename.endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    try:
        contents = await file.read()
        log.debug("Processing file %s (%d bytes)", file.filename, len(contents))
        df = read_ledger(contents.decode("utf-8"))
    except Exception as e:
        log.warning("Failed to parse %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=f"Failed to parse CSV: {str(e)}")

    validation_result = validate_csv(df)
    if not validation_result["valid"]:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "CSV validation failed",
                "errors": validation_result["errors"],
            },
        )
    for warning in validation_result["warnings"]:
        log.info("Ledger %s: %s", file.filename, warning)

    transactions = parse_transactions(df, limit=settings.MAX_TRANSACTIONS)
    if not transactions:
        raise HTTPException(
            status_code=400,
            detail={"message": "CSV validation failed", "errors": ["No usable rows"]},
        )

    store = WalletStore()
    outcome = run_analysis(transactions, store, state.library)
    state.update(
        transactions,
        store,
        outcome.graph,
        outcome.heatmap,
        outcome.zero_day_candidates,
    )

    return AnalysisResponse(
        summary=AnalysisSummary(
            total_transactions=outcome.total_transactions,
            total_wallets=outcome.total_wallets,
            high_risk_wallets=outcome.high_risk_wallets,
            processing_time_seconds=outcome.processing_time_seconds,
        ),
        top_suspicious=outcome.top_suspicious,
        zero_day_candidates=outcome.zero_day_candidates,
    )


@router.get("/graph", response_model=GraphData)
async def get_graph(
    min_age: Optional[float] = None,
    max_age: Optional[float] = None,
    ordered: bool = False,
) -> GraphData:
    """Display graph of the last analysis, optionally limited to an age window."""
    current = require_analysis()

    if min_age is None and max_age is None:
        graph = current.graph
        transactions = current.transactions
    else:
        low, high = ledger_time_range(current.transactions)
        transactions = filter_by_age(
            current.transactions,
            low if min_age is None else min_age,
            high if max_age is None else max_age,
        )
        graph = build_graph_data(transactions, current.store)

    if ordered:
        graph = GraphData(
            nodes=graph.nodes, links=sort_links_by_time(graph.links, transactions)
        )
    return graph
