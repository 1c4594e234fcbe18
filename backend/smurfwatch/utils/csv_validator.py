"""
CSV validation utilities for SmurfWatch.
"""

import pandas as pd
from typing import Dict, List, Any

REQUIRED_COLUMNS = [
    "TxHash",
    "From",
    "To",
    "Value_ETH",
    "Age_seconds",
]

OPTIONAL_COLUMNS = [
    "Record",
    "Block",
    "TxFee",
    "From_is_address",
    "To_is_address",
    "From_entity_type",
    "To_entity_type",
    "Fee_to_Value",
    "Value_Wei",
    "From_tx_count",
    "To_tx_count",
]


def validate_csv(df: pd.DataFrame) -> Dict[str, Any]:
    """Validate a pandas DataFrame holding a ledger export."""
    errors: List[str] = []
    warnings: List[str] = []

    missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_columns:
        errors.append(f"Missing required columns: {', '.join(missing_columns)}")
        return {
            "valid": False,
            "errors": errors,
            "warnings": warnings,
            "row_count": 0,
            "wallet_count": 0,
        }

    row_count = len(df)
    if row_count == 0:
        errors.append("CSV file is empty - no data rows found")
        return {
            "valid": False,
            "errors": errors,
            "warnings": warnings,
            "row_count": 0,
            "wallet_count": 0,
        }

    missing_optional = [col for col in OPTIONAL_COLUMNS if col not in df.columns]
    if missing_optional:
        warnings.append(f"Optional columns defaulted: {', '.join(missing_optional)}")

    for col in ("Value_ETH", "Age_seconds"):
        bad = pd.to_numeric(df[col], errors="coerce").isnull().sum()
        if bad > 0:
            warnings.append(f"Column '{col}' has {bad} non-numeric values; rows dropped")

    for col in ("From", "To"):
        null_count = df[col].isnull().sum()
        if null_count > 0:
            warnings.append(f"Column '{col}' contains {null_count} null values; rows dropped")

    duplicate_hashes = df["TxHash"].duplicated().sum()
    if duplicate_hashes > 0:
        warnings.append(f"Found {duplicate_hashes} duplicate TxHash values")

    senders = set(df["From"].dropna().astype(str).str.strip().str.lower().unique())
    recipients = set(df["To"].dropna().astype(str).str.strip().str.lower().unique())
    wallet_count = len(senders.union(recipients))

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "row_count": row_count,
        "wallet_count": wallet_count,
    }
