"""
Suspicion scoring service for SmurfWatch.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    GraphData,
    GraphLink,
    GraphNode,
    RhythmClass,
    SuspicionLevel,
    Transaction,
    Wallet,
    WalletRole,
)
from smurfwatch.services.graph_builder import build_graph
from smurfwatch.services.wallet_store import WalletStore

log = logging.getLogger(__name__)

GREEN = "hsl(142, 70%, 45%)"
YELLOW = "hsl(45, 90%, 50%)"
RED = "hsl(0, 70%, 55%)"


def score_wallets(
    transactions: Sequence[Transaction], store: WalletStore
) -> Tuple[WalletStore, nx.DiGraph]:
    """Populate totals, pattern flags, suspicion scores and roles for every address."""
    G = build_graph(transactions)
    sent_by: Dict[str, List[Transaction]] = defaultdict(list)

    touched: Dict[str, None] = {}
    for tx in transactions:
        for address, entity_type in (
            (tx.sender, tx.sender_entity_type),
            (tx.recipient, tx.recipient_entity_type),
        ):
            wallet = store.get_or_create(address, entity_type)
            if address not in touched:
                _reset_scored_fields(wallet)
                touched[address] = None

        sender = store.get(tx.sender)
        sender.total_sent += tx.value
        sender.outgoing_count += 1
        sender.tx_count = max(sender.tx_count, tx.sender_tx_count)

        recipient = store.get(tx.recipient)
        recipient.total_received += tx.value
        recipient.incoming_count += 1
        recipient.tx_count = max(recipient.tx_count, tx.recipient_tx_count)

        sent_by[tx.sender].append(tx)

    for address in touched:
        wallet = store.get(address)
        out_count = G.out_degree(address) if address in G else 0
        in_count = G.in_degree(address) if address in G else 0
        _score_wallet(wallet, out_count, in_count, sent_by.get(address, []))

    log.debug("Scored %d wallets from %d transactions", len(touched), len(transactions))
    return store, G


def _reset_scored_fields(wallet: Wallet) -> None:
    wallet.total_sent = 0.0
    wallet.total_received = 0.0
    wallet.outgoing_count = 0
    wallet.incoming_count = 0
    wallet.tx_count = 0
    wallet.suspicion_score = 0.0
    wallet.suspicion_reasons = []
    wallet.transaction_rhythm = RhythmClass.NORMAL
    wallet.rhythm_description = "Insufficient data"
    wallet.avg_time_between_tx = 0.0
    wallet.participates_in_fan_out = False
    wallet.participates_in_fan_in = False
    wallet.is_peeling_source = False
    wallet.wallet_role = WalletRole.NORMAL


def _score_wallet(
    wallet: Wallet, out_count: int, in_count: int, sent: List[Transaction]
) -> None:
    score = 0.0
    reasons: List[str] = []

    # --- Fan-out / fan-in ---
    if out_count >= settings.FAN_OUT_THRESHOLD:
        wallet.participates_in_fan_out = True
        reasons.append(f"Sends to {out_count} unique wallets (fan-out pattern)")
        score += min(30, out_count * 3)

    if in_count >= settings.FAN_IN_THRESHOLD:
        wallet.participates_in_fan_in = True
        reasons.append(f"Receives from {in_count} unique wallets (fan-in pattern)")
        score += min(30, in_count * 3)

    # --- Peeling chain ---
    if len(sent) >= 3:
        peeling_count = count_peeling_steps([tx.value for tx in sent])
        if peeling_count >= 2:
            wallet.is_peeling_source = True
            reasons.append(
                f"{peeling_count} transactions show gradual value decrease (peeling chain)"
            )
            score += min(25, peeling_count * 5)

    # --- Time clustering ---
    times = sorted(tx.age for tx in sent)
    cluster_count = sum(
        1
        for prev, cur in zip(times, times[1:])
        if abs(cur - prev) < settings.TIME_CLUSTER_SECONDS
    )
    if cluster_count >= 3:
        reasons.append(
            f"{cluster_count} transactions clustered within "
            f"{settings.TIME_CLUSTER_SECONDS:.0f}s"
        )
        score += min(20, cluster_count * 4)

    # --- Fee to value ---
    high_fee_count = sum(1 for tx in sent if tx.fee_to_value > settings.HIGH_FEE_RATIO)
    if high_fee_count >= 2:
        reasons.append(
            f"{high_fee_count} transactions with unusually high fee-to-value ratio"
        )
        score += min(15, high_fee_count * 3)

    # --- Volume ---
    if wallet.tx_count > 100:
        score += min(10, wallet.tx_count // 50)

    # --- Rhythm ---
    if len(times) >= 3:
        rhythm, avg_gap, cv = classify_rhythm(times)
        wallet.avg_time_between_tx = avg_gap
        wallet.transaction_rhythm = rhythm
        if rhythm is RhythmClass.HIGHLY_SUSPICIOUS:
            wallet.rhythm_description = (
                f"Highly regular timing pattern (CV: {cv * 100:.1f}%, avg gap: {avg_gap:.0f}s)"
            )
            reasons.append("Highly suspicious automated transaction pattern detected")
            score += 20
        elif rhythm is RhythmClass.SUSPICIOUS:
            wallet.rhythm_description = (
                f"Suspiciously coordinated timing (CV: {cv * 100:.1f}%, avg gap: {avg_gap:.0f}s)"
            )
            reasons.append("Unusually regular transaction timing")
            score += 10
        else:
            wallet.rhythm_description = "Normal activity patterns"

    wallet.suspicion_score = max(0.0, min(settings.SCORE_MAX, score))
    wallet.suspicion_reasons = reasons
    wallet.wallet_role = classify_role(wallet, out_count, in_count)


def count_peeling_steps(values: Sequence[float]) -> int:
    """Count consecutive pairs (sorted high to low) that shrink by less than the peeling threshold."""
    ordered = sorted(values, reverse=True)
    count = 0
    for prev, cur in zip(ordered, ordered[1:]):
        if prev <= 0:
            continue
        decrease = (prev - cur) / prev
        if 0 < decrease < settings.PEELING_VALUE_DECREASE:
            count += 1
    return count


def gap_statistics(times: Sequence[float]) -> Tuple[float, float]:
    """
    Mean gap and coefficient of variation for an ordered time sequence.
    A zero mean gap is treated as 1 so the CV stays finite.
    """
    gaps = [abs(cur - prev) for prev, cur in zip(times, times[1:])]
    if not gaps:
        return 0.0, 0.0
    avg_gap = sum(gaps) / len(gaps)
    variance = sum((gap - avg_gap) ** 2 for gap in gaps) / len(gaps)
    cv = math.sqrt(variance) / (avg_gap or 1)
    return avg_gap, cv


def classify_rhythm(times: Sequence[float]) -> Tuple[RhythmClass, float, float]:
    avg_gap, cv = gap_statistics(times)
    if (
        cv < settings.HIGHLY_SUSPICIOUS_RHYTHM_CV
        and avg_gap < settings.HIGHLY_SUSPICIOUS_RHYTHM_MAX_GAP
    ):
        return RhythmClass.HIGHLY_SUSPICIOUS, avg_gap, cv
    if cv < settings.SUSPICIOUS_RHYTHM_CV and avg_gap < settings.SUSPICIOUS_RHYTHM_MAX_GAP:
        return RhythmClass.SUSPICIOUS, avg_gap, cv
    return RhythmClass.NORMAL, avg_gap, cv


def classify_role(wallet: Wallet, out_count: int, in_count: int) -> WalletRole:
    """
    Classify the structural role of a wallet, first match wins.

    - mule: many destinations, few sources, has received funds
    - aggregator: many sources, few destinations, has sent funds
    - splitter: many destinations with peeling, or fan-out dominating fan-in
    """
    high_out = out_count >= settings.FAN_OUT_THRESHOLD
    high_in = in_count >= settings.FAN_IN_THRESHOLD

    if high_out and not high_in and wallet.total_received > 0:
        return WalletRole.MULE
    if high_in and not high_out and wallet.total_sent > 0:
        return WalletRole.AGGREGATOR
    if high_out and wallet.is_peeling_source:
        return WalletRole.SPLITTER
    if high_out and out_count > in_count * 2:
        return WalletRole.SPLITTER
    if high_in and in_count > out_count * 2:
        return WalletRole.AGGREGATOR
    return WalletRole.NORMAL


def suspicion_color(score: float) -> str:
    if score < 30:
        return GREEN
    if score < 60:
        return YELLOW
    return RED


def suspicion_level(score: float) -> SuspicionLevel:
    if score < 30:
        return SuspicionLevel.LOW
    if score < 60:
        return SuspicionLevel.MEDIUM
    return SuspicionLevel.HIGH


def node_size(wallet: Wallet, floor: float = 3) -> float:
    return max(floor, math.sqrt(wallet.total_sent + wallet.total_received) * 2)


def build_graph_data(
    transactions: Sequence[Transaction],
    store: WalletStore,
    G: Optional[nx.DiGraph] = None,
) -> GraphData:
    """Display graph: one node per known address, one link per aggregated edge."""
    if G is None:
        G = build_graph(transactions)

    links: List[GraphLink] = []
    seen: Dict[str, None] = {}
    for u, v, data in G.edges(data=True):
        links.append(
            GraphLink(
                source=u,
                target=v,
                value=data["value"],
                age=min(data["ages"]),
                tx_hash=data["tx_hashes"][0],
            )
        )
        seen.setdefault(u)
        seen.setdefault(v)

    nodes: List[GraphNode] = []
    for address in seen:
        wallet = store.get(address)
        if wallet is None:
            continue
        nodes.append(
            GraphNode(
                id=address,
                val=node_size(wallet),
                color=suspicion_color(wallet.suspicion_score),
                wallet=wallet,
            )
        )

    return GraphData(nodes=nodes, links=links)


def analyze_transactions(
    transactions: Sequence[Transaction], store: Optional[WalletStore] = None
) -> Tuple[WalletStore, GraphData]:
    """Score every wallet and build the display graph in one pass."""
    store = store if store is not None else WalletStore()
    store, G = score_wallets(transactions, store)
    return store, build_graph_data(transactions, store, G)


def top_suspicious_wallets(store: WalletStore, count: int = 10) -> List[Wallet]:
    return sorted(store.values(), key=lambda w: w.suspicion_score, reverse=True)[:count]
