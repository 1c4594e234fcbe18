"""
Temporal pattern analysis for SmurfWatch.

Only relative ages are available (seconds since each transfer, larger is
older), so "chronological" order means descending age. The time-of-day and
heatmap helpers map ages onto a synthetic clock; they are reproducible
placeholders, not wall-clock locality.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    GraphLink,
    HeatmapCell,
    Severity,
    TemporalPattern,
    TemporalPatternType,
    TimeRange,
    Transaction,
    Wallet,
)
from smurfwatch.services.scorer import gap_statistics
from smurfwatch.services.wallet_store import WalletStore

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600


def _wallet_transactions(address: str, transactions: Sequence[Transaction]) -> List[Transaction]:
    """The wallet's transactions in chronological order (oldest first)."""
    own = [tx for tx in transactions if tx.sender == address or tx.recipient == address]
    return sorted(own, key=lambda tx: tx.age, reverse=True)


def detect_bursts(times: Sequence[float]) -> List[Tuple[int, int]]:
    """
    Maximal runs whose adjacent gaps are all within the burst window.
    Returns (first index, last index) pairs for runs of at least
    ``BURST_MIN_COUNT`` transactions.
    """
    bursts: List[Tuple[int, int]] = []
    if not times:
        return bursts

    start = 0
    for i in range(1, len(times)):
        if abs(times[i] - times[i - 1]) > settings.BURST_GAP_SECONDS:
            if i - start >= settings.BURST_MIN_COUNT:
                bursts.append((start, i - 1))
            start = i
    if len(times) - start >= settings.BURST_MIN_COUNT:
        bursts.append((start, len(times) - 1))
    return bursts


def periodicity_score(times: Sequence[float]) -> float:
    if len(times) < 3:
        return 0
    _, cv = gap_statistics(times)
    if cv < 0.05:
        return 25
    if cv < 0.10:
        return 15
    if cv < settings.PERIODIC_CV_THRESHOLD:
        return 8
    return 0


def time_concentration_score(ages: Sequence[float]) -> float:
    """Share of transactions falling into the busiest pseudo-hour of a 24-slot day."""
    if not ages:
        return 0
    buckets = [0] * 24
    for age in ages:
        buckets[int((age % SECONDS_PER_DAY) // SECONDS_PER_HOUR)] += 1
    concentration = max(buckets) / len(ages)
    if concentration > 0.7:
        return 15
    if concentration > 0.5:
        return 10
    if concentration > 0.3:
        return 5
    return 0


def count_rapid_gaps(times: Sequence[float]) -> int:
    return sum(
        1
        for prev, cur in zip(times, times[1:])
        if abs(cur - prev) <= settings.RAPID_GAP_SECONDS
    )


def calculate_temporal_attention_score(
    wallet: Wallet, transactions: Sequence[Transaction]
) -> float:
    """Temporal attention score in [0, 100]; wallets with fewer than two transactions score 0."""
    own = _wallet_transactions(wallet.address, transactions)
    if len(own) < 2:
        return 0.0

    times = [tx.age for tx in own]
    score = 0.0
    score += min(30, len(detect_bursts(times)) * 10)
    score += periodicity_score(times)
    score += time_concentration_score(times)
    score += min(20, count_rapid_gaps(times) * 5)
    return min(100.0, score)


def _severity_for_cv(cv: float) -> Severity:
    if cv < 0.05:
        return Severity.HIGH
    if cv < 0.10:
        return Severity.MEDIUM
    return Severity.LOW


def get_temporal_patterns(
    wallet: Wallet, transactions: Sequence[Transaction]
) -> List[TemporalPattern]:
    """Descriptors for every burst, periodic rhythm and rapid-fire run of the wallet."""
    patterns: List[TemporalPattern] = []
    own = _wallet_transactions(wallet.address, transactions)
    if len(own) < 2:
        return patterns

    times = [tx.age for tx in own]

    for first, last in detect_bursts(times):
        count = last - first + 1
        if count >= 5:
            severity = Severity.HIGH
        elif count >= 3:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.BURST,
                description=f"{count} transactions within {abs(times[last] - times[first]):.0f}s",
                severity=severity,
                time_range=TimeRange(start=times[first], end=times[last]),
                involved_transactions=[tx.tx_hash for tx in own[first : last + 1]],
            )
        )

    if len(times) >= 3:
        avg_gap, cv = gap_statistics(times)
        if cv < settings.PERIODIC_CV_THRESHOLD and avg_gap < settings.PERIODIC_MAX_GAP:
            patterns.append(
                TemporalPattern(
                    type=TemporalPatternType.PERIODIC,
                    description=(
                        f"Regular interval pattern: ~{avg_gap:.0f}s between transactions "
                        f"(CV: {cv * 100:.1f}%)"
                    ),
                    severity=_severity_for_cv(cv),
                    time_range=TimeRange(start=min(times), end=max(times)),
                    involved_transactions=[tx.tx_hash for tx in own],
                )
            )

    patterns.extend(_rapid_sequences(own, times))
    return patterns


def _rapid_sequences(own: List[Transaction], times: List[float]) -> List[TemporalPattern]:
    runs: List[Tuple[int, int]] = []
    start = None
    for i in range(1, len(times)):
        if abs(times[i] - times[i - 1]) <= settings.RAPID_GAP_SECONDS:
            if start is None:
                start = i - 1
        elif start is not None:
            runs.append((start, i - 1))
            start = None
    if start is not None:
        runs.append((start, len(times) - 1))

    patterns: List[TemporalPattern] = []
    for first, last in runs:
        # a run spans last - first gaps
        if last - first < 2:
            continue
        involved = [tx.tx_hash for tx in own[first : last + 1]]
        patterns.append(
            TemporalPattern(
                type=TemporalPatternType.RAPID_SEQUENCE,
                description=(
                    f"{len(involved)} transactions in rapid succession "
                    f"(<{settings.RAPID_GAP_SECONDS:.0f}s apart)"
                ),
                severity=Severity.HIGH if len(involved) >= 5 else Severity.MEDIUM,
                time_range=TimeRange(start=times[first], end=times[last]),
                involved_transactions=involved,
            )
        )
    return patterns


def generate_temporal_heatmap(transactions: Sequence[Transaction]) -> List[HeatmapCell]:
    """
    7x24 activity grid, day-major.

    Each transaction's position within the observed age range is stretched
    over a synthetic 168-hour week. The cell a transaction lands in says
    nothing about the real weekday or hour.
    """
    days, hours = settings.HEATMAP_DAYS, settings.HEATMAP_HOURS
    counts = [0] * (days * hours)

    if transactions:
        ages = [tx.age for tx in transactions]
        min_age = min(ages)
        age_range = (max(ages) - min_age) or 1
        for age in ages:
            total_hours = (age - min_age) / age_range * days * hours
            day = int(total_hours // hours) % days
            hour = int(total_hours % hours)
            counts[day * hours + hour] += 1

    return [
        HeatmapCell(
            day=idx // hours,
            hour=idx % hours,
            tx_count=count,
            intensity=min(1.0, count / settings.HEATMAP_SATURATION),
        )
        for idx, count in enumerate(counts)
    ]


def ledger_time_range(transactions: Sequence[Transaction]) -> Tuple[float, float]:
    if not transactions:
        return 0.0, 0.0
    ages = [tx.age for tx in transactions]
    return min(ages), max(ages)


def filter_by_age(
    transactions: Sequence[Transaction], min_age: float, max_age: float
) -> List[Transaction]:
    return [tx for tx in transactions if min_age <= tx.age <= max_age]


def wallet_time_range(
    address: str, transactions: Sequence[Transaction]
) -> Tuple[float, float]:
    """(first_seen, last_seen); the oldest transaction has the largest age."""
    ages = [tx.age for tx in transactions if tx.sender == address or tx.recipient == address]
    if not ages:
        return 0.0, 0.0
    return max(ages), min(ages)


def sort_links_by_time(
    links: Sequence[GraphLink], transactions: Sequence[Transaction]
) -> List[GraphLink]:
    """Order links oldest first and number them for playback."""
    age_by_hash: Dict[str, float] = {tx.tx_hash: tx.age for tx in transactions}
    ordered = sorted(links, key=lambda link: age_by_hash.get(link.tx_hash, 0), reverse=True)
    return [
        link.model_copy(update={"temporal_index": idx}) for idx, link in enumerate(ordered)
    ]


def enrich_wallet(wallet: Wallet, transactions: Sequence[Transaction]) -> Wallet:
    wallet.temporal_attention_score = calculate_temporal_attention_score(wallet, transactions)
    wallet.temporal_patterns = get_temporal_patterns(wallet, transactions)
    wallet.first_seen, wallet.last_seen = wallet_time_range(wallet.address, transactions)
    return wallet


def enrich_wallets(store: WalletStore, index: Dict[str, List[Transaction]]) -> int:
    """Run the temporal pass over every wallet using a per-wallet transaction index."""
    enriched = 0
    for address, wallet in store.items():
        enrich_wallet(wallet, index.get(address, []))
        enriched += 1
    log.debug("Temporal pass enriched %d wallets", enriched)
    return enriched
