"""
Adaptive guard for SmurfWatch.

Wallets are compared against a library of laundering-pattern prototypes
with a fixed weighted feature distance. Investigators teach the library by
confirming wallets as examples of a named pattern.
"""

import logging
import math
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    AdaptiveGuardResult,
    ConfirmedBy,
    FlagStatus,
    LaunderingPattern,
    PatternExample,
    PatternFeatures,
    PatternLibrary,
    PatternMatch,
    Transaction,
    TxCountRange,
    Wallet,
    ZeroDayCandidate,
)
from smurfwatch.services.wallet_store import WalletStore

log = logging.getLogger(__name__)

ZERO_DAY_REASON = (
    "High suspicion but no strong pattern match - potential new laundering technique"
)


def now_ms() -> int:
    return int(time.time() * 1000)


def _builtin(
    pattern_id: str,
    name: str,
    description: str,
    confidence: float,
    **features,
) -> LaunderingPattern:
    count_min, count_max = features.pop("tx_count_range")
    created = now_ms()
    return LaunderingPattern(
        id=pattern_id,
        name=name,
        description=description,
        created_at=created,
        updated_at=created,
        examples=[],
        features=PatternFeatures(
            tx_count_range=TxCountRange(min=count_min, max=count_max), **features
        ),
        is_built_in=True,
        confidence=confidence,
    )


BUILT_IN_PATTERNS: Tuple[LaunderingPattern, ...] = (
    _builtin(
        "fan-out-classic",
        "Classic Fan-Out",
        "Single source distributing to many recipients in short time",
        0.85,
        avg_fan_out=8,
        avg_fan_in=1,
        avg_time_between_tx=30,
        avg_tx_value=0.5,
        rhythm_variance=0.1,
        has_peeling_chain=False,
        has_rapid_burst=True,
        tx_count_range=(5, 50),
    ),
    _builtin(
        "fan-in-aggregation",
        "Fan-In Aggregation",
        "Many sources consolidating into single recipient",
        0.82,
        avg_fan_out=1,
        avg_fan_in=8,
        avg_time_between_tx=60,
        avg_tx_value=0.3,
        rhythm_variance=0.15,
        has_peeling_chain=False,
        has_rapid_burst=True,
        tx_count_range=(5, 100),
    ),
    _builtin(
        "peeling-chain",
        "Peeling Chain",
        "Sequential transactions with decreasing values",
        0.88,
        avg_fan_out=2,
        avg_fan_in=1,
        avg_time_between_tx=120,
        avg_tx_value=1.0,
        rhythm_variance=0.2,
        has_peeling_chain=True,
        has_rapid_burst=False,
        tx_count_range=(3, 20),
    ),
    _builtin(
        "rapid-layering",
        "Rapid Layering",
        "Quick succession of transactions through multiple hops",
        0.9,
        avg_fan_out=3,
        avg_fan_in=2,
        avg_time_between_tx=15,
        avg_tx_value=0.8,
        rhythm_variance=0.08,
        has_peeling_chain=False,
        has_rapid_burst=True,
        tx_count_range=(10, 100),
    ),
    _builtin(
        "smurfing-classic",
        "Classic Smurfing",
        "Breaking large amounts into small, similar-sized transactions",
        0.92,
        avg_fan_out=10,
        avg_fan_in=1,
        avg_time_between_tx=45,
        avg_tx_value=0.1,
        rhythm_variance=0.05,
        has_peeling_chain=False,
        has_rapid_burst=True,
        tx_count_range=(10, 200),
    ),
)


def create_pattern_library() -> PatternLibrary:
    return PatternLibrary(
        patterns=[p.model_copy(deep=True) for p in BUILT_IN_PATTERNS],
        last_updated=now_ms(),
    )


def extract_wallet_features(
    wallet: Wallet, transactions: Sequence[Transaction]
) -> PatternFeatures:
    own = [
        tx for tx in transactions
        if tx.sender == wallet.address or tx.recipient == wallet.address
    ]
    recipients = {tx.recipient for tx in own if tx.sender == wallet.address}
    senders = {tx.sender for tx in own if tx.recipient == wallet.address}
    avg_value = sum(tx.value for tx in own) / len(own) if own else 0.0

    times = sorted(tx.age for tx in own)
    gaps = [abs(cur - prev) for prev, cur in zip(times, times[1:])]
    rhythm_variance = 1.0
    if gaps:
        avg_gap = sum(gaps) / len(gaps)
        variance = sum((gap - avg_gap) ** 2 for gap in gaps) / len(gaps)
        rhythm_variance = math.sqrt(variance) / avg_gap if avg_gap > 0 else 1.0

    return PatternFeatures(
        avg_fan_out=len(recipients),
        avg_fan_in=len(senders),
        avg_time_between_tx=wallet.avg_time_between_tx or 0.0,
        avg_tx_value=avg_value,
        rhythm_variance=rhythm_variance,
        has_peeling_chain=wallet.is_peeling_source,
        has_rapid_burst=any(gap < 30 for gap in gaps),
        tx_count_range=TxCountRange(min=len(own), max=len(own)),
    )


def calculate_similarity(
    wallet_features: PatternFeatures, pattern_features: PatternFeatures
) -> Tuple[float, List[str]]:
    """Weighted feature similarity in [0, 1] plus the labels of features that matched well."""
    matched: List[str] = []
    total = 0.0
    maximum = 0.0

    fan_out = max(0.0, 20 - abs(wallet_features.avg_fan_out - pattern_features.avg_fan_out) * 2)
    total += fan_out
    maximum += 20
    if fan_out >= 15:
        matched.append("Fan-out pattern")

    fan_in = max(0.0, 20 - abs(wallet_features.avg_fan_in - pattern_features.avg_fan_in) * 2)
    total += fan_in
    maximum += 20
    if fan_in >= 15:
        matched.append("Fan-in pattern")

    timing = max(
        0.0,
        15 - abs(wallet_features.avg_time_between_tx - pattern_features.avg_time_between_tx) / 10,
    )
    total += timing
    maximum += 15
    if timing >= 10:
        matched.append("Timing pattern")

    value = max(0.0, 10 - abs(wallet_features.avg_tx_value - pattern_features.avg_tx_value) * 5)
    total += value
    maximum += 10
    if value >= 7:
        matched.append("Value pattern")

    rhythm = max(
        0.0, 15 - abs(wallet_features.rhythm_variance - pattern_features.rhythm_variance) * 30
    )
    total += rhythm
    maximum += 15
    if rhythm >= 10:
        matched.append("Rhythm regularity")

    if wallet_features.has_peeling_chain == pattern_features.has_peeling_chain:
        total += 10
        if wallet_features.has_peeling_chain:
            matched.append("Peeling chain")
    maximum += 10

    if wallet_features.has_rapid_burst == pattern_features.has_rapid_burst:
        total += 10
        if wallet_features.has_rapid_burst:
            matched.append("Rapid burst")
    maximum += 10

    return total / maximum, matched


def _candidate_patterns(library: PatternLibrary) -> List[LaunderingPattern]:
    """Built-in prototypes (the library's copies when present) followed by user patterns."""
    if any(p.is_built_in for p in library.patterns):
        built_in = [p for p in library.patterns if p.is_built_in]
    else:
        built_in = list(BUILT_IN_PATTERNS)
    return built_in + [p for p in library.patterns if not p.is_built_in]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def analyze_wallet(
    wallet: Wallet,
    transactions: Sequence[Transaction],
    library: PatternLibrary,
) -> AdaptiveGuardResult:
    features = extract_wallet_features(wallet, transactions)

    matches: List[PatternMatch] = []
    max_similarity = 0.0
    for pattern in _candidate_patterns(library):
        similarity, matched_features = calculate_similarity(features, pattern.features)
        if similarity > settings.MATCH_THRESHOLD:
            matches.append(
                PatternMatch(
                    pattern_id=pattern.id,
                    pattern_name=pattern.name,
                    similarity=similarity,
                    matched_features=matched_features,
                )
            )
            max_similarity = max(max_similarity, similarity)

    matches.sort(key=lambda m: m.similarity, reverse=True)

    raw = wallet.suspicion_score * 0.4 + max_similarity * 60 + (10 if len(matches) > 2 else 0)
    overall = _round_half_up(min(100.0, max(0.0, raw)))

    is_zero_day = (
        wallet.suspicion_score >= settings.ZERO_DAY_MIN_SUSPICION
        and max_similarity < settings.ZERO_DAY_MAX_SIMILARITY
    )

    tx_count = features.tx_count_range.max
    confidence = min(1.0, max(0.0, 0.3 + tx_count * 0.05 + len(matches) * 0.1))

    return AdaptiveGuardResult(
        wallet_address=wallet.address,
        overall_score=overall,
        confidence=confidence,
        matched_patterns=matches,
        is_zero_day_candidate=is_zero_day,
        zero_day_reason=ZERO_DAY_REASON if is_zero_day else None,
    )


def apply_adaptive_result(wallet: Wallet, result: AdaptiveGuardResult) -> Wallet:
    wallet.adaptive_guard_score = result.overall_score
    wallet.similarity_to_known_patterns = (
        result.matched_patterns[0].similarity if result.matched_patterns else 0.0
    )
    wallet.matched_patterns = [m.pattern_name for m in result.matched_patterns]
    wallet.is_zero_day_candidate = result.is_zero_day_candidate
    return wallet


def find_zero_day_candidates(
    store: WalletStore,
    index: Dict[str, List[Transaction]],
    library: PatternLibrary,
    limit: Optional[int] = None,
) -> List[ZeroDayCandidate]:
    """
    Analyze every wallet, record the results on the wallets and rank the
    zero-day candidates by adaptive score.
    """
    candidates: List[ZeroDayCandidate] = []
    for address, wallet in store.items():
        result = analyze_wallet(wallet, index.get(address, []), library)
        apply_adaptive_result(wallet, result)
        if result.is_zero_day_candidate:
            candidates.append(
                ZeroDayCandidate(
                    address=address,
                    score=result.overall_score,
                    reason=result.zero_day_reason or "Unknown pattern",
                )
            )

    candidates.sort(key=lambda c: c.score, reverse=True)
    log.debug("Adaptive guard found %d zero-day candidates", len(candidates))
    return candidates[:limit] if limit is not None else candidates


def merge_example(
    pattern: LaunderingPattern,
    features: PatternFeatures,
    example: PatternExample,
    now: int,
) -> LaunderingPattern:
    """
    Fold a confirmed example into a prototype and return the updated copy.
    Numeric features move toward the example with weight 1/n, n counting the
    new example.
    """
    examples = list(pattern.examples) + [example]
    weight = 1 / len(examples)
    old = pattern.features

    def blend(a: float, b: float) -> float:
        return a * (1 - weight) + b * weight

    merged = PatternFeatures(
        avg_fan_out=blend(old.avg_fan_out, features.avg_fan_out),
        avg_fan_in=blend(old.avg_fan_in, features.avg_fan_in),
        avg_time_between_tx=blend(old.avg_time_between_tx, features.avg_time_between_tx),
        avg_tx_value=blend(old.avg_tx_value, features.avg_tx_value),
        rhythm_variance=blend(old.rhythm_variance, features.rhythm_variance),
        has_peeling_chain=old.has_peeling_chain or features.has_peeling_chain,
        has_rapid_burst=old.has_rapid_burst or features.has_rapid_burst,
        tx_count_range=TxCountRange(
            min=min(old.tx_count_range.min, features.tx_count_range.min),
            max=max(old.tx_count_range.max, features.tx_count_range.max),
        ),
    )
    return pattern.model_copy(
        update={
            "examples": examples,
            "features": merged,
            "updated_at": now,
            "confidence": min(
                settings.CONFIDENCE_CAP, pattern.confidence + settings.CONFIDENCE_STEP
            ),
        }
    )


def add_flagged_example(
    library: PatternLibrary,
    wallet: Wallet,
    transactions: Sequence[Transaction],
    pattern_name: str,
    notes: Optional[str] = None,
    now: Optional[int] = None,
) -> PatternLibrary:
    """Teach the library a confirmed wallet; returns a new library value."""
    now = now if now is not None else now_ms()
    features = extract_wallet_features(wallet, transactions)
    example = PatternExample(
        wallet_address=wallet.address,
        confirmed_at=now,
        confirmed_by=ConfirmedBy.USER,
        notes=notes,
    )

    patterns = list(library.patterns)
    for idx, pattern in enumerate(patterns):
        if pattern.name == pattern_name:
            patterns[idx] = merge_example(pattern, features, example, now)
            log.info(
                "Pattern %r learned from %s (%d examples)",
                pattern_name,
                wallet.address,
                len(patterns[idx].examples),
            )
            break
    else:
        patterns.append(
            LaunderingPattern(
                id=f"user-{uuid.uuid4().hex[:12]}",
                name=pattern_name,
                description=f"User-defined pattern based on flagged wallet {wallet.address[:8]}...",
                created_at=now,
                updated_at=now,
                examples=[example],
                features=features,
                is_built_in=False,
                confidence=settings.USER_PATTERN_CONFIDENCE,
            )
        )
        log.info("Created pattern %r from %s", pattern_name, wallet.address)

    return PatternLibrary(patterns=patterns, last_updated=now)


def get_pattern(library: PatternLibrary, pattern_id: str) -> Optional[LaunderingPattern]:
    return next((p for p in library.patterns if p.id == pattern_id), None)


def remove_pattern(library: PatternLibrary, pattern_id: str) -> PatternLibrary:
    """Drop a user-defined pattern; built-ins and unknown ids leave the library as is."""
    pattern = get_pattern(library, pattern_id)
    if pattern is None or pattern.is_built_in:
        return library.model_copy()
    return PatternLibrary(
        patterns=[p for p in library.patterns if p.id != pattern_id],
        last_updated=now_ms(),
    )


def flag_wallet(store: WalletStore, address: str, flag: FlagStatus) -> Optional[Wallet]:
    wallet = store.get(address)
    if wallet is None:
        return None
    wallet.is_manually_flagged = True
    wallet.flagged_as = flag
    return wallet
