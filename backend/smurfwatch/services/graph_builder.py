"""
Graph building utilities for SmurfWatch.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set

import networkx as nx

from smurfwatch.models.schemas import TimeRange, Transaction


def filter_transactions(
    transactions: Iterable[Transaction],
    min_value: float = 0.0,
    time_range: Optional[TimeRange] = None,
    entity_types: Optional[Sequence[str]] = None,
) -> List[Transaction]:
    """
    Keep transactions at or above ``min_value``, inside the inclusive age
    window and touching an allowed entity type on either side.
    An empty or missing entity list disables that filter.
    """
    allowed = set(entity_types or [])
    filtered: List[Transaction] = []
    for tx in transactions:
        if tx.value < min_value:
            continue
        if time_range is not None and not (time_range.start <= tx.age <= time_range.end):
            continue
        if allowed and not (
            tx.sender_entity_type in allowed or tx.recipient_entity_type in allowed
        ):
            continue
        filtered.append(tx)
    return filtered


def build_graph(transactions: Iterable[Transaction]) -> nx.DiGraph:
    """
    Build a directed graph from the transaction list.
    Repeated transfers between the same ordered pair collapse into one edge
    carrying the summed value, every age and every tx hash.
    """
    G = nx.DiGraph()

    for tx in transactions:
        if G.has_edge(tx.sender, tx.recipient):
            edge = G[tx.sender][tx.recipient]
            edge["value"] += tx.value
            edge["ages"].append(tx.age)
            edge["tx_hashes"].append(tx.tx_hash)
        else:
            G.add_edge(
                tx.sender,
                tx.recipient,
                value=tx.value,
                ages=[tx.age],
                tx_hashes=[tx.tx_hash],
            )

    return G


def forward_neighbors(G: nx.DiGraph, address: str) -> Set[str]:
    """Addresses ``address`` has sent to."""
    if address not in G:
        return set()
    return set(G.successors(address))


def backward_neighbors(G: nx.DiGraph, address: str) -> Set[str]:
    """Addresses that have sent to ``address``."""
    if address not in G:
        return set()
    return set(G.predecessors(address))


def index_by_wallet(transactions: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    """Map each address to the transactions it takes part in, in ledger order."""
    index: Dict[str, List[Transaction]] = defaultdict(list)
    for tx in transactions:
        index[tx.sender].append(tx)
        if tx.recipient != tx.sender:
            index[tx.recipient].append(tx)
    return dict(index)
