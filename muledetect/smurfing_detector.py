"""
smurfing_detector.py
Flags hub accounts that collect from, or pay out to, many distinct
counterparties in a short burst.

  fan_in  : SMURF_THRESHOLD+ distinct senders into one receiver
  fan_out : one sender to SMURF_THRESHOLD+ distinct receivers

Only transactions inside a TIME_WINDOW_HOURS span count together, so a
payee that collects slowly over months is left alone. Each hub is reported
once per direction, with the counterparties of the first window that
qualified.
"""

import logging
from collections import Counter
from datetime import timedelta

import pandas as pd

logger = logging.getLogger(__name__)

# ── Tuneable thresholds ───────────────────────────────────────────────────────
SMURF_THRESHOLD   = 10      # min unique counterparties within the window
TIME_WINDOW_HOURS = 72      # the sliding window size

FAN_IN  = "fan_in"
FAN_OUT = "fan_out"


def detect_smurfing(df: pd.DataFrame) -> list[dict]:
    """
    Returns one flag per (account, direction) that qualifies. All fan-in
    flags come first, then all fan-out flags; within a direction accounts
    appear in the order they first show up in the ledger.

    Each flag dict:
    {
        "account"        : "ACC_HUB",
        "direction"      : "fan_in" or "fan_out",
        "counterparties" : ["ACC_1", "ACC_2", ...],   # unique, first-qualifying window
    }
    """

    flags = []

    # Fan-in: group by who RECEIVES, count distinct senders
    flags.extend(_scan(df, hub_col="receiver_id", other_col="sender_id", direction=FAN_IN))

    # Fan-out: group by who SENDS, count distinct receivers
    flags.extend(_scan(df, hub_col="sender_id", other_col="receiver_id", direction=FAN_OUT))

    logger.info(
        "[smurfing_detector] Fan-in: %d | Fan-out: %d",
        sum(f["direction"] == FAN_IN for f in flags),
        sum(f["direction"] == FAN_OUT for f in flags),
    )
    return flags


# ─────────────────────────────────────────────────────────────────────────────
#  INTERNAL HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def _scan(df: pd.DataFrame, hub_col: str, other_col: str, direction: str) -> list[dict]:
    flags = []
    if df.empty:
        return flags

    for hub, group in df.groupby(hub_col, sort=False):

        # Fewer than THRESHOLD transactions can never reach THRESHOLD unique parties
        if len(group) < SMURF_THRESHOLD:
            continue

        group = group.sort_values("timestamp", kind="stable")
        counterparties = _first_qualifying_window(
            times   = group["timestamp"].tolist(),
            parties = group[other_col].tolist(),
        )

        if counterparties is not None:
            flags.append({
                "account"        : hub,
                "direction"      : direction,
                "counterparties" : counterparties,
            })
            logger.debug(
                "[smurfing_detector] %s %s with %d counterparties",
                hub, direction, len(counterparties),
            )

    return flags


def _first_qualifying_window(times: list, parties: list) -> list[str] | None:
    """
    Two-pointer sliding window over time-sorted events.

    The left edge is evicted only while the span is STRICTLY greater than the
    window, so an event exactly TIME_WINDOW_HOURS after the left edge stays
    in. Returns the unique counterparties of the first window holding
    SMURF_THRESHOLD or more of them (first-seen order), else None.
    """

    window_size = timedelta(hours=TIME_WINDOW_HOURS)
    in_window   = Counter()
    left        = 0

    for right in range(len(times)):
        in_window[parties[right]] += 1

        while times[right] - times[left] > window_size:
            in_window[parties[left]] -= 1
            if in_window[parties[left]] == 0:
                del in_window[parties[left]]
            left += 1

        if len(in_window) >= SMURF_THRESHOLD:
            return list(dict.fromkeys(parties[left:right + 1]))

    return None
