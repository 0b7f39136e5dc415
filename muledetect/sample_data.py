"""
sample_data.py
Synthetic ledger generator: innocent noise with planted fraud, plus the
answer key so detection output can be graded.

Planted patterns:
  - Merchant accounts  : many small payments spread over 40 days (must NOT be flagged)
  - Cycles             : 3–5 account loops, one hop every 30 minutes
  - Fan-out smurfing   : one distributor → 12–20 fresh accounts within hours
  - Shell chains       : origin → 2–3 single-use shells → destination

Everything is driven by a seeded random.Random, so the same seed gives the
same ledger.
"""

import random
from datetime import datetime, timedelta

import pandas as pd

from muledetect.models import Transaction

START_DATE = datetime(2026, 2, 1)


def generate_transactions(
    seed          : int = 7,
    noise         : int = 600,
    merchants     : int = 3,
    cycles        : int = 4,
    fan_outs      : int = 2,
    shell_chains  : int = 2,
) -> tuple[list[Transaction], dict]:
    """
    Returns (transactions, ground_truth). Transactions are shuffled so the
    planted patterns are not contiguous blocks.
    """

    rng = random.Random(seed)
    transactions: list[Transaction] = []
    ground_truth = {"cycles": [], "fan_out": [], "shell_chains": [], "merchants": []}

    ids = iter(f"ACC_{n:05d}" for n in rng.sample(range(10000, 99999), 5000))
    regular_users = [next(ids) for _ in range(300)]

    def add_tx(sender, receiver, amount, timestamp):
        transactions.append(Transaction(
            f"TX_{len(transactions) + 1:07d}", sender, receiver, round(amount, 2), timestamp,
        ))

    def random_date(days=20):
        return START_DATE + timedelta(days=rng.randint(0, days), minutes=rng.randint(0, 1440))

    # A. Innocent noise (regular P2P transfers), spread thin
    for _ in range(noise):
        sender, receiver = rng.sample(regular_users, 2)
        add_tx(sender, receiver, rng.uniform(10, 5000), random_date())

    # B. Trap: merchants, many customers, spread over 40 days
    for _ in range(merchants):
        merchant = next(ids)
        ground_truth["merchants"].append(merchant)
        for day in range(40):
            add_tx(rng.choice(regular_users), merchant, rng.uniform(15, 300),
                   START_DATE + timedelta(days=day, hours=rng.randint(8, 18)))

    # C. Fraud: cycles of 3–5 fresh accounts
    for _ in range(cycles):
        members = [next(ids) for _ in range(rng.randint(3, 5))]
        ground_truth["cycles"].append(members)
        amount, base_time = rng.uniform(25000, 150000), random_date()
        for j, sender in enumerate(members):
            add_tx(sender, members[(j + 1) % len(members)], amount, base_time + timedelta(minutes=j * 30))
            amount *= rng.uniform(0.95, 0.99)   # fee skimmed at each hop

    # D. Fraud: fan-out smurfing to fresh receivers, minutes apart
    for _ in range(fan_outs):
        distributor = next(ids)
        receivers = [next(ids) for _ in range(rng.randint(12, 20))]
        ground_truth["fan_out"].append({"distributor": distributor, "receivers": receivers})
        base_time = random_date()
        for j, receiver in enumerate(receivers):
            add_tx(distributor, receiver, rng.uniform(8000, 9500), base_time + timedelta(minutes=j * 5))

    # E. Fraud: shell chains through single-use accounts
    for _ in range(shell_chains):
        chain = [next(ids) for _ in range(rng.randint(4, 5))]
        ground_truth["shell_chains"].append(chain)
        amount, base_time = rng.uniform(10000, 50000), random_date()
        for j in range(len(chain) - 1):
            add_tx(chain[j], chain[j + 1], amount, base_time + timedelta(hours=j * 6))
            amount *= 0.98

    rng.shuffle(transactions)
    return transactions, ground_truth


def to_frame(transactions: list[Transaction]) -> pd.DataFrame:
    """CSV-ready frame, timestamps formatted the way ingestion expects."""
    return pd.DataFrame(
        [
            (t.transaction_id, t.sender_id, t.receiver_id, t.amount,
             t.timestamp.strftime("%Y-%m-%d %H:%M:%S"))
            for t in transactions
        ],
        columns=["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"],
    )


def write_csv(transactions: list[Transaction], path) -> None:
    to_frame(transactions).to_csv(path, index=False)
