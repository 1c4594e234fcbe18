"""
Temporal router for SmurfWatch API.
"""

from typing import List

from fastapi import APIRouter, HTTPException

from smurfwatch.models.schemas import HeatmapCell, LedgerTimeRange, WalletTemporalReport
from smurfwatch.services.temporal import (
    calculate_temporal_attention_score,
    get_temporal_patterns,
    ledger_time_range,
    wallet_time_range,
)
import smurfwatch.routers.upload as upload_module


router = APIRouter(prefix="/api/temporal", tags=["temporal"])


@router.get("/heatmap", response_model=List[HeatmapCell])
async def get_heatmap() -> List[HeatmapCell]:
    """7x24 activity grid over a synthetic week (relative ages, not wall-clock time)."""
    return upload_module.require_analysis().heatmap


@router.get("/range", response_model=LedgerTimeRange)
async def get_time_range() -> LedgerTimeRange:
    low, high = ledger_time_range(upload_module.require_analysis().transactions)
    return LedgerTimeRange(min=low, max=high)


@router.get("/{address}/patterns", response_model=WalletTemporalReport)
async def get_wallet_patterns(address: str) -> WalletTemporalReport:
    """Temporal attention score and pattern descriptors for one wallet."""
    state = upload_module.require_analysis()
    wallet = state.store.get(address.lower())
    if wallet is None:
        raise HTTPException(status_code=404, detail=f"Wallet '{address}' not found")

    first_seen, last_seen = wallet_time_range(wallet.address, state.transactions)
    return WalletTemporalReport(
        address=wallet.address,
        temporal_attention_score=calculate_temporal_attention_score(wallet, state.transactions),
        first_seen=first_seen,
        last_seen=last_seen,
        patterns=get_temporal_patterns(wallet, state.transactions),
    )
