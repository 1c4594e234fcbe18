"""
Shared fixtures for SmurfWatch tests.
"""

import itertools

import pytest

from smurfwatch.models.schemas import Transaction


@pytest.fixture
def make_tx():
    """Factory for transactions with sensible defaults and unique hashes."""
    counter = itertools.count(1)

    def _make(sender, recipient, value=1.0, age=0.0, **extra):
        n = next(counter)
        return Transaction(
            tx_hash=extra.pop("tx_hash", f"0xtx{n:04d}"),
            sender=sender,
            recipient=recipient,
            value=value,
            age=age,
            **extra,
        )

    return _make
