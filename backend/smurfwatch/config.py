"""
Configuration for SmurfWatch.

Detection thresholds are fixed constants; runtime knobs come from the
environment.
"""

import os
from typing import List


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    # Suspicion scorer
    FAN_OUT_THRESHOLD: int = 5
    FAN_IN_THRESHOLD: int = 5
    PEELING_VALUE_DECREASE: float = 0.15
    TIME_CLUSTER_SECONDS: float = 60
    HIGH_FEE_RATIO: float = 0.01
    SUSPICIOUS_RHYTHM_CV: float = 0.10
    HIGHLY_SUSPICIOUS_RHYTHM_CV: float = 0.05
    SUSPICIOUS_RHYTHM_MAX_GAP: float = 600
    HIGHLY_SUSPICIOUS_RHYTHM_MAX_GAP: float = 300
    SCORE_MAX: float = 100.0

    # Temporal analyzer
    BURST_GAP_SECONDS: float = 30
    BURST_MIN_COUNT: int = 3
    PERIODIC_CV_THRESHOLD: float = 0.15
    PERIODIC_MAX_GAP: float = 600
    RAPID_GAP_SECONDS: float = 5
    HEATMAP_DAYS: int = 7
    HEATMAP_HOURS: int = 24
    HEATMAP_SATURATION: int = 10

    # Subgraph expander
    SEED_NODE_SIZE: float = 15
    SEED_NODE_COLOR: str = "#f59e0b"
    SEED_PALETTE: tuple = ("#f59e0b", "#8b5cf6", "#ec4899", "#06b6d4", "#10b981")

    # Adaptive guard
    MATCH_THRESHOLD: float = 0.3
    ZERO_DAY_MIN_SUSPICION: float = 50
    ZERO_DAY_MAX_SIMILARITY: float = 0.5
    USER_PATTERN_CONFIDENCE: float = 0.5
    CONFIDENCE_STEP: float = 0.02
    CONFIDENCE_CAP: float = 0.95

    # Runtime
    MAX_TRANSACTIONS: int = _env_int("SMURFWATCH_MAX_TRANSACTIONS", 2000)
    LOG_LEVEL: str = os.getenv("SMURFWATCH_LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS: List[str] = _env_list("SMURFWATCH_CORS_ORIGINS", ["*"])
    ZERO_DAY_LIMIT: int = _env_int("SMURFWATCH_ZERO_DAY_LIMIT", 10)


settings = Settings()
