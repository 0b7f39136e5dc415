from datetime import datetime, timedelta

import pytest

from muledetect.models import Transaction

T0 = datetime(2024, 1, 10, 0, 0, 0)


def _ledger(rows, prefix="T"):
    """
    rows: (sender, receiver, hours_after_T0) or (sender, receiver, hours, amount)
    """
    txns = []
    for i, row in enumerate(rows, start=1):
        sender, receiver, hours = row[:3]
        amount = row[3] if len(row) > 3 else 1000.0
        txns.append(Transaction(f"{prefix}{i:05d}", sender, receiver, amount, T0 + timedelta(hours=hours)))
    return txns


@pytest.fixture
def make_ledger():
    return _ledger
