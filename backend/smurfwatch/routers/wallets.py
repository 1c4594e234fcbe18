"""
Wallets router for SmurfWatch API.
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from smurfwatch.models.schemas import (
    FlagRequest,
    FlagResponse,
    FlagStatus,
    Wallet,
    WalletList,
)
from smurfwatch.services.adaptive_guard import add_flagged_example, flag_wallet
from smurfwatch.services.scorer import top_suspicious_wallets
import smurfwatch.routers.upload as upload_module

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wallets", tags=["wallets"])


@router.get("/top", response_model=WalletList)
async def get_top_wallets(count: int = Query(10, ge=1, le=500)) -> WalletList:
    """Most suspicious wallets of the last analysis."""
    state = upload_module.require_analysis()
    wallets = top_suspicious_wallets(state.store, count)
    return WalletList(wallets=wallets, count=len(wallets))


@router.get("/{address}", response_model=Wallet)
async def get_wallet(address: str) -> Wallet:
    """Get the full record of a wallet."""
    state = upload_module.require_analysis()
    wallet = state.store.get(address.lower())
    if wallet is None:
        raise HTTPException(status_code=404, detail=f"Wallet '{address}' not found")
    return wallet


@router.post("/{address}/flag", response_model=FlagResponse)
async def flag_wallet_endpoint(address: str, request: FlagRequest) -> FlagResponse:
    """Record an investigator verdict; confirmed laundering with a pattern name teaches the library."""
    state = upload_module.require_analysis()
    wallet = flag_wallet(state.store, address.lower(), request.flag)
    if wallet is None:
        raise HTTPException(status_code=404, detail=f"Wallet '{address}' not found")

    library_updated = False
    if request.flag is FlagStatus.CONFIRMED_LAUNDERING and request.pattern_name:
        state.library = add_flagged_example(
            state.library,
            wallet,
            state.transactions,
            request.pattern_name,
            notes=request.notes,
        )
        library_updated = True

    log.info("Wallet %s flagged as %s", wallet.address, request.flag.value)
    return FlagResponse(wallet=wallet, library_updated=library_updated)
