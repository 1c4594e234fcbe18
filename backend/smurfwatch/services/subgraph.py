"""
Seed-driven k-hop subgraph expansion for SmurfWatch.
"""

import logging
import random
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    ConnectedWallet,
    ExpansionConfig,
    ExpansionDirection,
    InverseTopologyMapping,
    LinkDirection,
    Relationship,
    SeedWallet,
    SubgraphData,
    SubgraphLink,
    SubgraphNode,
    Transaction,
    Wallet,
)
from smurfwatch.services.graph_builder import build_graph, filter_transactions
from smurfwatch.services.scorer import node_size, suspicion_color
from smurfwatch.services.wallet_store import WalletStore

log = logging.getLogger(__name__)


def default_expansion_config() -> ExpansionConfig:
    return ExpansionConfig(
        seeds=[],
        k_hops=2,
        time_range=None,
        entity_type_filter=[],
        min_value_threshold=0.0,
        expansion_direction=ExpansionDirection.BIDIRECTIONAL,
    )


def create_seed(
    wallet: Wallet,
    label: Optional[str] = None,
    rng: Optional[random.Random] = None,
    now: Optional[int] = None,
) -> SeedWallet:
    """Turn a wallet into a forensic anchor with a palette color drawn from ``rng``."""
    rng = rng or random.Random()
    return SeedWallet(
        id=wallet.address,
        address=wallet.address,
        label=label or f"Seed {wallet.address[:6]}",
        added_at=now if now is not None else int(time.time() * 1000),
        color=rng.choice(settings.SEED_PALETTE),
    )


def expand_subgraph(
    config: ExpansionConfig,
    transactions: Sequence[Transaction],
    wallets: WalletStore,
) -> SubgraphData:
    """
    Breadth-first expansion from every seed at once, out to ``k_hops``.

    Each visited address keeps its shortest hop distance and the first path
    found at that distance. Links always point in the real send direction;
    ``direction`` records whether the forward or backward adjacency found it.
    """
    if not config.seeds:
        return SubgraphData()

    filtered = filter_transactions(
        transactions,
        min_value=config.min_value_threshold,
        time_range=config.time_range,
        entity_types=config.entity_type_filter,
    )
    G = build_graph(filtered)

    follow_forward = config.expansion_direction in (
        ExpansionDirection.FORWARD,
        ExpansionDirection.BIDIRECTIONAL,
    )
    follow_backward = config.expansion_direction in (
        ExpansionDirection.BACKWARD,
        ExpansionDirection.BIDIRECTIONAL,
    )

    visited: Dict[str, Tuple[int, List[str]]] = {}
    queue: Deque[Tuple[str, int, List[str]]] = deque()
    for seed in config.seeds:
        if seed.address not in visited:
            visited[seed.address] = (0, [seed.address])
            queue.append((seed.address, 0, [seed.address]))

    links: Dict[Tuple[str, str], SubgraphLink] = {}

    while queue:
        address, distance, path = queue.popleft()
        if distance >= config.k_hops:
            continue

        neighbors: List[Tuple[str, LinkDirection]] = []
        if address in G:
            if follow_forward:
                neighbors.extend((n, LinkDirection.FORWARD) for n in G.successors(address))
            if follow_backward:
                neighbors.extend((n, LinkDirection.BACKWARD) for n in G.predecessors(address))

        for neighbor, direction in neighbors:
            new_distance = distance + 1
            known = visited.get(neighbor)
            if known is None or known[0] > new_distance:
                new_path = path + [neighbor]
                visited[neighbor] = (new_distance, new_path)
                queue.append((neighbor, new_distance, new_path))

            if direction is LinkDirection.FORWARD:
                source, target = address, neighbor
            else:
                source, target = neighbor, address

            # one link per directed pair, whichever adjacency reached it first
            if (source, target) in links:
                continue
            edge = G[source][target]
            links[(source, target)] = SubgraphLink(
                source=source,
                target=target,
                value=edge["value"],
                age=min(edge["ages"]),
                tx_hash=edge["tx_hashes"][0],
                is_in_subgraph=True,
                direction=direction,
            )

    seed_addresses = {seed.address for seed in config.seeds}
    nodes: List[SubgraphNode] = []
    for address, (distance, path) in visited.items():
        wallet = wallets.get(address)
        if wallet is None:
            continue
        is_seed = address in seed_addresses
        nodes.append(
            SubgraphNode(
                id=address,
                val=settings.SEED_NODE_SIZE if is_seed else node_size(wallet, floor=5),
                color=settings.SEED_NODE_COLOR if is_seed else suspicion_color(wallet.suspicion_score),
                wallet=wallet,
                hop_distance=distance,
                path_from_seed=path,
                is_seed=is_seed,
            )
        )

    log.debug(
        "Expanded %d seeds to %d nodes and %d links (k=%d, %s)",
        len(config.seeds),
        len(nodes),
        len(links),
        config.k_hops,
        config.expansion_direction.value,
    )
    return SubgraphData(nodes=nodes, links=list(links.values()), seeds=list(config.seeds))


def generate_inverse_mapping(
    subgraph: SubgraphData,
    wallets: WalletStore,
    transactions: Sequence[Transaction],
) -> List[InverseTopologyMapping]:
    """
    For each seed, describe how every other subgraph node relates to it.

    The relationship comes from the subgraph's own links; value and count
    come from the full, unfiltered ledger. Nodes with no direct link to the
    seed are reported as ``receives_from``.
    """
    pairs = build_graph(transactions)
    link_pairs = {(link.source, link.target) for link in subgraph.links}

    mappings: List[InverseTopologyMapping] = []
    for seed in subgraph.seeds:
        connected: List[ConnectedWallet] = []
        for node in subgraph.nodes:
            if node.id == seed.address:
                continue

            sends_to_seed = (node.id, seed.address) in link_pairs
            receives_from_seed = (seed.address, node.id) in link_pairs
            if sends_to_seed and receives_from_seed:
                relationship = Relationship.BIDIRECTIONAL
            elif sends_to_seed:
                relationship = Relationship.SENDS_TO
            else:
                relationship = Relationship.RECEIVES_FROM

            total_value = 0.0
            tx_count = 0
            for source, target in ((node.id, seed.address), (seed.address, node.id)):
                if pairs.has_edge(source, target):
                    edge = pairs[source][target]
                    total_value += edge["value"]
                    tx_count += len(edge["tx_hashes"])

            wallet = wallets.get(node.id)
            connected.append(
                ConnectedWallet(
                    address=node.id,
                    relationship=relationship,
                    hop_distance=node.hop_distance,
                    total_value=total_value,
                    tx_count=tx_count,
                    suspicion_score=wallet.suspicion_score if wallet else 0.0,
                )
            )

        connected.sort(key=lambda c: c.suspicion_score, reverse=True)
        mappings.append(
            InverseTopologyMapping(seed_address=seed.address, connected_wallets=connected)
        )

    return mappings
