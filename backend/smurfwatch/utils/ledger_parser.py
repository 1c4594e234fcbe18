"""
Ledger ingestion for SmurfWatch.
"""

import logging
from io import StringIO
from typing import List, Optional

import pandas as pd

from smurfwatch.models.schemas import Transaction

log = logging.getLogger(__name__)

NUMERIC_DEFAULTS = {
    "Block": 0,
    "TxFee": 0.0,
    "Fee_to_Value": 0.0,
    "From_tx_count": 0,
    "To_tx_count": 0,
}


def read_ledger(csv_text: str) -> pd.DataFrame:
    return pd.read_csv(StringIO(csv_text), dtype={"Value_Wei": str, "TxHash": str})


def parse_transactions(df: pd.DataFrame, limit: Optional[int] = None) -> List[Transaction]:
    """
    Turn a validated ledger frame into transactions.
    Rows with a missing address or an unparsable value/age are dropped.
    Addresses are lowercased so graph keys match regardless of input casing.
    """
    frame = df.copy()
    frame["Value_ETH"] = pd.to_numeric(frame["Value_ETH"], errors="coerce")
    frame["Age_seconds"] = pd.to_numeric(frame["Age_seconds"], errors="coerce")
    frame = frame.dropna(subset=["From", "To", "Value_ETH", "Age_seconds"])

    for col, default in NUMERIC_DEFAULTS.items():
        if col in frame.columns:
            frame[col] = pd.to_numeric(frame[col], errors="coerce").fillna(default)
        else:
            frame[col] = default

    for col in ("From_entity_type", "To_entity_type"):
        if col in frame.columns:
            frame[col] = frame[col].fillna("unknown").astype(str)
        else:
            frame[col] = "unknown"

    if "Value_Wei" in frame.columns:
        frame["Value_Wei"] = frame["Value_Wei"].fillna("0").astype(str)
    else:
        frame["Value_Wei"] = "0"

    frame["From"] = frame["From"].astype(str).str.strip().str.lower()
    frame["To"] = frame["To"].astype(str).str.strip().str.lower()

    dropped = len(df) - len(frame)
    if limit:
        frame = frame.head(limit)

    transactions = [
        Transaction(
            tx_hash=str(row.TxHash),
            block=int(row.Block),
            sender=row.From,
            recipient=row.To,
            value=float(row.Value_ETH),
            fee=float(row.TxFee),
            age=float(row.Age_seconds),
            sender_entity_type=row.From_entity_type or "unknown",
            recipient_entity_type=row.To_entity_type or "unknown",
            fee_to_value=float(row.Fee_to_Value),
            value_wei=row.Value_Wei,
            sender_tx_count=int(row.From_tx_count),
            recipient_tx_count=int(row.To_tx_count),
        )
        for row in frame.itertuples(index=False)
    ]

    if dropped > 0:
        log.debug("Dropped %d ledger rows during parsing", dropped)
    return transactions
