"""
Pydantic schemas for SmurfWatch.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WalletRole(str, Enum):
    MULE = "mule"
    AGGREGATOR = "aggregator"
    SPLITTER = "splitter"
    NORMAL = "normal"


class RhythmClass(str, Enum):
    NORMAL = "normal"
    SUSPICIOUS = "suspicious"
    HIGHLY_SUSPICIOUS = "highly_suspicious"


class TemporalPatternType(str, Enum):
    BURST = "burst"
    PERIODIC = "periodic"
    DELAYED = "delayed"
    RAPID_SEQUENCE = "rapid_sequence"
    TIME_ZONE_ANOMALY = "time_zone_anomaly"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SuspicionLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExpansionDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"


class LinkDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


class Relationship(str, Enum):
    SENDS_TO = "sends_to"
    RECEIVES_FROM = "receives_from"
    BIDIRECTIONAL = "bidirectional"


class FlagStatus(str, Enum):
    CONFIRMED_LAUNDERING = "confirmed_laundering"
    SUSPICIOUS = "suspicious"
    CLEARED = "cleared"


class ConfirmedBy(str, Enum):
    USER = "user"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class Transaction(BaseModel):
    """One ledger row. ``age`` counts seconds since the transfer, so larger is older."""

    model_config = ConfigDict(frozen=True)

    tx_hash: str
    block: int = 0
    sender: str
    recipient: str
    value: float
    fee: float = 0.0
    age: float
    sender_entity_type: str = "unknown"
    recipient_entity_type: str = "unknown"
    fee_to_value: float = 0.0
    value_wei: str = "0"
    sender_tx_count: int = 0
    recipient_tx_count: int = 0


class TimeRange(BaseModel):
    start: float
    end: float


class TemporalPattern(BaseModel):
    type: TemporalPatternType
    description: str
    severity: Severity
    time_range: TimeRange
    involved_transactions: List[str]


class HeatmapCell(BaseModel):
    day: int
    hour: int
    intensity: float
    tx_count: int


class Wallet(BaseModel):
    address: str
    total_sent: float = 0.0
    total_received: float = 0.0
    outgoing_count: int = 0
    incoming_count: int = 0
    suspicion_score: float = 0.0
    suspicion_reasons: List[str] = Field(default_factory=list)
    transaction_rhythm: RhythmClass = RhythmClass.NORMAL
    rhythm_description: str = "Insufficient data"
    entity_type: str = "unknown"
    avg_time_between_tx: float = 0.0
    participates_in_fan_out: bool = False
    participates_in_fan_in: bool = False
    is_peeling_source: bool = False
    tx_count: int = 0
    wallet_role: WalletRole = WalletRole.NORMAL

    temporal_attention_score: Optional[float] = None
    temporal_patterns: Optional[List[TemporalPattern]] = None
    first_seen: Optional[float] = None
    last_seen: Optional[float] = None

    adaptive_guard_score: Optional[float] = None
    similarity_to_known_patterns: Optional[float] = None
    matched_patterns: Optional[List[str]] = None
    is_zero_day_candidate: bool = False

    is_manually_flagged: bool = False
    flagged_as: Optional[FlagStatus] = None


# ---------------------------------------------------------------------------
# Display graph
# ---------------------------------------------------------------------------


class GraphNode(BaseModel):
    id: str
    val: float
    color: str
    wallet: Wallet


class GraphLink(BaseModel):
    source: str
    target: str
    value: float
    age: float
    tx_hash: str
    temporal_index: Optional[int] = None


class GraphData(BaseModel):
    nodes: List[GraphNode] = Field(default_factory=list)
    links: List[GraphLink] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Seed-driven subgraph expansion
# ---------------------------------------------------------------------------


class SeedWallet(BaseModel):
    id: str
    address: str
    label: Optional[str] = None
    added_at: int = 0
    color: Optional[str] = None


class ExpansionConfig(BaseModel):
    seeds: List[SeedWallet] = Field(default_factory=list)
    k_hops: int = Field(default=2, ge=0)
    time_range: Optional[TimeRange] = None
    entity_type_filter: List[str] = Field(default_factory=list)
    min_value_threshold: float = 0.0
    expansion_direction: ExpansionDirection = ExpansionDirection.BIDIRECTIONAL


class SubgraphNode(GraphNode):
    hop_distance: int
    path_from_seed: List[str]
    is_seed: bool


class SubgraphLink(GraphLink):
    is_in_subgraph: bool = True
    direction: LinkDirection


class SubgraphData(BaseModel):
    nodes: List[SubgraphNode] = Field(default_factory=list)
    links: List[SubgraphLink] = Field(default_factory=list)
    seeds: List[SeedWallet] = Field(default_factory=list)


class ConnectedWallet(BaseModel):
    address: str
    relationship: Relationship
    hop_distance: int
    total_value: float
    tx_count: int
    suspicion_score: float


class InverseTopologyMapping(BaseModel):
    seed_address: str
    connected_wallets: List[ConnectedWallet] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Adaptive guard
# ---------------------------------------------------------------------------


class TxCountRange(BaseModel):
    min: int
    max: int


class PatternFeatures(BaseModel):
    avg_fan_out: float
    avg_fan_in: float
    avg_time_between_tx: float
    avg_tx_value: float
    rhythm_variance: float
    has_peeling_chain: bool
    has_rapid_burst: bool
    tx_count_range: TxCountRange


class PatternExample(BaseModel):
    wallet_address: str
    confirmed_at: int
    confirmed_by: ConfirmedBy = ConfirmedBy.USER
    notes: Optional[str] = None


class LaunderingPattern(BaseModel):
    id: str
    name: str
    description: str
    created_at: int
    updated_at: int
    examples: List[PatternExample] = Field(default_factory=list)
    features: PatternFeatures
    is_built_in: bool = False
    confidence: float = Field(ge=0.0, le=1.0)


class PatternLibrary(BaseModel):
    patterns: List[LaunderingPattern] = Field(default_factory=list)
    last_updated: int = 0


class PatternMatch(BaseModel):
    pattern_id: str
    pattern_name: str
    similarity: float
    matched_features: List[str]


class AdaptiveGuardResult(BaseModel):
    wallet_address: str
    overall_score: int
    confidence: float
    matched_patterns: List[PatternMatch] = Field(default_factory=list)
    is_zero_day_candidate: bool = False
    zero_day_reason: Optional[str] = None


class ZeroDayCandidate(BaseModel):
    address: str
    score: int
    reason: str


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class AnalysisSummary(BaseModel):
    total_transactions: int
    total_wallets: int
    high_risk_wallets: int
    processing_time_seconds: float


class AnalysisResponse(BaseModel):
    summary: AnalysisSummary
    top_suspicious: List[Wallet]
    zero_day_candidates: List[ZeroDayCandidate]


class FlagRequest(BaseModel):
    flag: FlagStatus
    pattern_name: Optional[str] = None
    notes: Optional[str] = None


class FlagResponse(BaseModel):
    wallet: Wallet
    library_updated: bool


class SeedRequest(BaseModel):
    label: Optional[str] = None


class ExpandRequest(BaseModel):
    seeds: List[SeedWallet]
    k_hops: int = Field(default=2, ge=1, le=5)
    time_range: Optional[TimeRange] = None
    entity_type_filter: List[str] = Field(default_factory=list)
    min_value_threshold: float = Field(default=0.0, ge=0.0)
    expansion_direction: ExpansionDirection = ExpansionDirection.BIDIRECTIONAL

    def to_config(self) -> ExpansionConfig:
        return ExpansionConfig(**self.model_dump())


class ExpandResponse(BaseModel):
    subgraph: SubgraphData
    inverse_mapping: List[InverseTopologyMapping]


class LedgerTimeRange(BaseModel):
    min: float
    max: float


class WalletTemporalReport(BaseModel):
    address: str
    temporal_attention_score: float
    first_seen: Optional[float] = None
    last_seen: Optional[float] = None
    patterns: List[TemporalPattern]


class WalletList(BaseModel):
    wallets: List[Wallet]
    count: int


class PatternLibraryResponse(BaseModel):
    library: PatternLibrary
    counts: Dict[str, int]
