"""
false_positive_filter.py
Removes legitimate accounts that picked up points but are NOT actually
money mules.

MERCHANT CHECK — an account is dropped when BOTH hold:
  1. it carries no structural pattern (cycle / smurfing / shell). Velocity
     and the multi-pattern bonus alone never protect an account.
  2. it looks like a merchant: MERCHANT_MIN_TRANSACTIONS or more
     transactions spread across at least MERCHANT_MIN_DAYS days.

Any account with a structural pattern is kept, however busy it is.
"""

import logging

import pandas as pd

from muledetect.graph_builder import account_activity

logger = logging.getLogger(__name__)

# ── Tuneable thresholds ───────────────────────────────────────────────────────
MERCHANT_MIN_TRANSACTIONS = 20      # must have at least this many txns
MERCHANT_MIN_DAYS         = 30      # spread across at least this many days

STRUCTURAL_MARKERS = ("cycle", "smurfing", "shell")


def filter_false_positives(df: pd.DataFrame, flagged_accs: dict) -> dict:
    """
    Takes the scored accounts ({account_id: {...}}) and returns a new dict
    without the merchant-like ones. Order is preserved. Running the filter on
    its own output changes nothing.
    """

    merchants = find_merchants(df)
    logger.info("[fp_filter] Merchant-like accounts: %d", len(merchants))

    cleaned = {}
    for acc_id, acc_data in flagged_accs.items():
        if acc_id in merchants and not has_structural_pattern(acc_data["detected_patterns"]):
            logger.debug(
                "[fp_filter] Suppressing %s (patterns=%s)",
                acc_id, acc_data["detected_patterns"],
            )
            continue
        cleaned[acc_id] = acc_data

    logger.info("[fp_filter] Accounts after filtering: %d", len(cleaned))
    return cleaned


def has_structural_pattern(patterns: list[str]) -> bool:
    return any(marker in p for p in patterns for marker in STRUCTURAL_MARKERS)


def find_merchants(df: pd.DataFrame) -> set:
    """
    Identifies likely merchant accounts:
      - Have MERCHANT_MIN_TRANSACTIONS or more total transactions
      - Those transactions span at least MERCHANT_MIN_DAYS days
    """
    if df.empty:
        return set()

    stats = account_activity(df).groupby("account_id").agg(
        txn_count  = ("transaction_id", "size"),
        first_seen = ("timestamp", "min"),
        last_seen  = ("timestamp", "max"),
    )
    span_days = (stats["last_seen"] - stats["first_seen"]).dt.total_seconds() / 86400

    is_merchant = (stats["txn_count"] >= MERCHANT_MIN_TRANSACTIONS) & (span_days >= MERCHANT_MIN_DAYS)
    return set(stats.index[is_merchant])
