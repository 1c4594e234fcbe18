"""
Forensic router for SmurfWatch API.
"""

import logging
import random
from typing import Optional

from fastapi import APIRouter, HTTPException

from smurfwatch.models.schemas import (
    ExpandRequest,
    ExpandResponse,
    SeedRequest,
    SeedWallet,
)
from smurfwatch.services.subgraph import (
    create_seed,
    expand_subgraph,
    generate_inverse_mapping,
)
import smurfwatch.routers.upload as upload_module

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/forensic", tags=["forensic"])

seed_rng = random.Random()


@router.post("/seeds/{address}", response_model=SeedWallet)
async def create_seed_endpoint(address: str, request: Optional[SeedRequest] = None) -> SeedWallet:
    """Promote a wallet to a forensic anchor."""
    state = upload_module.require_analysis()
    wallet = state.store.get(address.lower())
    if wallet is None:
        raise HTTPException(status_code=404, detail=f"Wallet '{address}' not found")
    label = request.label if request else None
    return create_seed(wallet, label=label, rng=seed_rng)


@router.post("/expand", response_model=ExpandResponse)
async def expand_endpoint(request: ExpandRequest) -> ExpandResponse:
    """Expand the k-hop subgraph around the given seeds and map it back onto each seed."""
    state = upload_module.require_analysis()
    config = request.to_config()
    config.seeds = [
        seed.model_copy(update={"address": seed.address.lower()}) for seed in config.seeds
    ]

    subgraph = expand_subgraph(config, state.transactions, state.store)
    mapping = generate_inverse_mapping(subgraph, state.store, state.transactions)
    log.info(
        "Subgraph expanded: %d nodes, %d links from %d seeds",
        len(subgraph.nodes),
        len(subgraph.links),
        len(config.seeds),
    )
    return ExpandResponse(subgraph=subgraph, inverse_mapping=mapping)
