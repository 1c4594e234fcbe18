"""
Adaptive guard router for SmurfWatch API.
"""

from typing import List

from fastapi import APIRouter, HTTPException

from smurfwatch.models.schemas import (
    AdaptiveGuardResult,
    PatternLibraryResponse,
    ZeroDayCandidate,
)
from smurfwatch.services.adaptive_guard import (
    analyze_wallet,
    apply_adaptive_result,
    get_pattern,
    remove_pattern,
)
import smurfwatch.routers.upload as upload_module


router = APIRouter(prefix="/api/adaptive", tags=["adaptive"])


def _library_response(state) -> PatternLibraryResponse:
    built_in = sum(1 for p in state.library.patterns if p.is_built_in)
    return PatternLibraryResponse(
        library=state.library,
        counts={
            "built_in": built_in,
            "user_defined": len(state.library.patterns) - built_in,
        },
    )


@router.get("/patterns", response_model=PatternLibraryResponse)
async def get_patterns() -> PatternLibraryResponse:
    """Current pattern library (built-in and learned prototypes)."""
    return _library_response(upload_module.state)


@router.delete("/patterns/{pattern_id}", response_model=PatternLibraryResponse)
async def delete_pattern(pattern_id: str) -> PatternLibraryResponse:
    """Remove a user-defined pattern. Built-in patterns cannot be removed."""
    state = upload_module.state
    pattern = get_pattern(state.library, pattern_id)
    if pattern is None:
        raise HTTPException(status_code=404, detail=f"Pattern '{pattern_id}' not found")
    if pattern.is_built_in:
        raise HTTPException(status_code=400, detail="Built-in patterns cannot be removed")
    state.library = remove_pattern(state.library, pattern_id)
    return _library_response(state)


@router.get("/zero-day", response_model=List[ZeroDayCandidate])
async def get_zero_day_candidates() -> List[ZeroDayCandidate]:
    """Wallets with high suspicion and no strong match to a known pattern."""
    return upload_module.require_analysis().zero_day_candidates


@router.get("/{address}", response_model=AdaptiveGuardResult)
async def analyze_wallet_endpoint(address: str) -> AdaptiveGuardResult:
    """Match one wallet against the current pattern library."""
    state = upload_module.require_analysis()
    wallet = state.store.get(address.lower())
    if wallet is None:
        raise HTTPException(status_code=404, detail=f"Wallet '{address}' not found")
    result = analyze_wallet(wallet, state.transactions, state.library)
    apply_adaptive_result(wallet, result)
    return result
