"""
scorer.py
Takes the raw detector output, computes a suspicion score for every flagged
account and groups accounts into fraud rings.

Score breakdown (additive, capped at 100):
  Cycle membership      : 45 pts per cycle the account is in
  Smurfing hub          : 30 pts per direction (fan-in / fan-out)
  Shell intermediary    : 35 pts per chain the account relays for
  Shell endpoint        : 20 pts per chain the account starts or ends
  Multi-pattern bonus   : 15 pts once (2+ distinct pattern tags)
  Velocity bonus        : 10 pts (5+ transactions inside any 24 hours)

Ring precedence: cycles, then smurfing, then shell chains. An account keeps
the first ring it is assigned to for the whole run.

Everything here is built from local maps and handed back to the caller;
nothing is kept between calls.
"""

import logging
import math
from datetime import timedelta

import networkx as nx
import pandas as pd

from muledetect.graph_builder import account_activity

logger = logging.getLogger(__name__)

# ── Weights ───────────────────────────────────────────────────────────────────
WEIGHT_CYCLE        = 45
WEIGHT_SMURF        = 30
WEIGHT_SHELL_MIDDLE = 35
WEIGHT_SHELL_END    = 20
WEIGHT_MULTI_DETECT = 15   # bonus if account carries 2+ distinct patterns
WEIGHT_VELOCITY     = 10
MAX_SCORE           = 100.0

# ── Velocity ──────────────────────────────────────────────────────────────────
VELOCITY_MIN_TXNS     = 5
VELOCITY_WINDOW_HOURS = 24

# ── Rings ─────────────────────────────────────────────────────────────────────
MAX_SMURF_RING_MEMBERS = 20   # counterparties listed per smurfing ring
CYCLE_LONG_RING_BONUS  = 15   # provisional risk bonus for cycles of 4+
RING_MAX_WEIGHT        = 0.6
RING_MEAN_WEIGHT       = 0.4

SMURF_RING_TYPES = {"fan_in": "smurfing_fan_in", "fan_out": "smurfing_fan_out"}
SMURF_PATTERNS   = {"fan_in": "fan_in_smurfing", "fan_out": "fan_out_smurfing"}


def score_accounts(
    G            : nx.DiGraph,
    df           : pd.DataFrame,
    cycles       : list[list[str]],
    smurfs       : list[dict],
    shell_chains : list[list[str]],
) -> tuple[dict, list[dict]]:
    """
    Returns (accounts, rings).

    accounts — every account with a positive score, in the order it was
    first scored:
    {
        "ACC_001": {
            "account_id"       : "ACC_001",
            "suspicion_score"  : 90.0,
            "detected_patterns": ["cycle_length_3", "fan_out_smurfing"],
            "ring_id"          : "RING_001",   ← None if never placed in a ring
        },
        ...
    }

    rings — in discovery order, with a PROVISIONAL risk_score; call
    finalize_ring_scores() once the account list is final.
    """

    scores   = {}    # {acc_id: float}
    patterns = {}    # {acc_id: {tag: None}}  (ordered set)
    ring_of  = {}    # {acc_id: ring_id}
    rings    = []

    def _add(acc_id, points, pattern=None):
        scores[acc_id] = min(MAX_SCORE, scores.get(acc_id, 0.0) + points)
        if pattern:
            patterns.setdefault(acc_id, {})[pattern] = None

    def _new_ring(members, pattern_type, risk_score):
        ring_id = f"RING_{len(rings) + 1:03d}"
        rings.append({
            "ring_id"        : ring_id,
            "member_accounts": list(members),
            "pattern_type"   : pattern_type,
            "risk_score"     : _round1(min(MAX_SCORE, risk_score)),
        })
        return ring_id

    # ── Step 1: Cycles — every cycle is its own ring ──────────────────────────
    for cycle in cycles:
        length  = len(cycle)
        bonus   = CYCLE_LONG_RING_BONUS if length >= 4 else 0
        ring_id = _new_ring(cycle, "cycle", WEIGHT_CYCLE + bonus)

        for acc in cycle:
            _add(acc, WEIGHT_CYCLE, f"cycle_length_{length}")
            ring_of.setdefault(acc, ring_id)

    # ── Step 2: Smurfing — ring only if the hub has none yet ──────────────────
    for smurf in smurfs:
        hub            = smurf["account"]
        direction      = smurf["direction"]
        counterparties = smurf["counterparties"]

        _add(hub, WEIGHT_SMURF, SMURF_PATTERNS[direction])

        if hub not in ring_of:
            members = [hub] + counterparties[:MAX_SMURF_RING_MEMBERS]
            ring_of[hub] = _new_ring(
                members,
                SMURF_RING_TYPES[direction],
                WEIGHT_SMURF + len(counterparties) * 1.5,
            )

    # ── Step 3: Shell chains — ring only if the origin has none yet ───────────
    for chain in shell_chains:
        for acc in chain[1:-1]:
            _add(acc, WEIGHT_SHELL_MIDDLE, "shell_intermediary")
        for acc in (chain[0], chain[-1]):
            _add(acc, WEIGHT_SHELL_END, "shell_chain")

        if chain[0] not in ring_of:
            ring_id = _new_ring(chain, "shell_chain", WEIGHT_SHELL_MIDDLE + len(chain) * 5)
            for acc in chain:
                ring_of.setdefault(acc, ring_id)

    # ── Step 4: Multi-pattern bonus + velocity, every account ─────────────────
    fast_accounts = high_velocity_accounts(df)

    for acc in G.nodes():
        if len(patterns.get(acc, ())) >= 2:
            _add(acc, WEIGHT_MULTI_DETECT)
        if acc in fast_accounts:
            _add(acc, WEIGHT_VELOCITY, "high_velocity")

    # ── Step 5: Assemble ──────────────────────────────────────────────────────
    accounts = {}
    for acc_id, score in scores.items():
        if score <= 0:
            continue
        accounts[acc_id] = {
            "account_id"       : acc_id,
            "suspicion_score"  : _round1(score),
            "detected_patterns": list(patterns[acc_id]),
            "ring_id"          : ring_of.get(acc_id),
        }

    logger.info("[scorer] Accounts scored: %d | Rings: %d", len(accounts), len(rings))
    return accounts, rings


def finalize_ring_scores(rings: list[dict], accounts: dict) -> list[dict]:
    """
    Recomputes each ring's risk_score from its members' final scores:
        0.6 × max(member scores) + 0.4 × mean(member scores)
    Members missing from `accounts` (never scored, or filtered out) count as 0.

    Returns new ring dicts; the input list is left untouched.
    """
    finalized = []
    for ring in rings:
        member_scores = [
            accounts[m]["suspicion_score"] if m in accounts else 0.0
            for m in ring["member_accounts"]
        ]
        risk = ring["risk_score"]
        if member_scores:
            mean = sum(member_scores) / len(member_scores)
            risk = RING_MAX_WEIGHT * max(member_scores) + RING_MEAN_WEIGHT * mean
        finalized.append({**ring, "risk_score": _round1(min(MAX_SCORE, risk))})
    return finalized


def high_velocity_accounts(df: pd.DataFrame) -> set:
    """
    Accounts with VELOCITY_MIN_TXNS or more transactions (as sender or
    receiver) whose timestamps fit inside one VELOCITY_WINDOW_HOURS window,
    both ends inclusive.
    """
    fast = set()
    if df.empty:
        return fast

    window   = timedelta(hours=VELOCITY_WINDOW_HOURS)
    activity = account_activity(df)

    for acc, group in activity.groupby("account_id", sort=False):
        if len(group) < VELOCITY_MIN_TXNS:
            continue

        times = group["timestamp"].sort_values(kind="stable").tolist()
        left  = 0
        for right in range(len(times)):
            while times[right] - times[left] > window:
                left += 1
            if right - left + 1 >= VELOCITY_MIN_TXNS:
                fast.add(acc)
                break

    return fast


def _round1(x: float) -> float:
    """One decimal, halves rounded up (30.25 -> 30.3, not banker's 30.2)."""
    return math.floor(x * 10 + 0.5) / 10
