"""
cycle_detector.py
Detects circular fund routing — money that flows in a loop:
  Example:  A → B → C → A

Rules:
  - Cycles of 3 to 5 distinct accounts only
  - Each loop is reported once, no matter which member the search started
    from (rotation A→B→C ≡ B→C→A)
  - Direction matters: A→B→C→A and A→C→B→A are different money flows
"""

import logging

import networkx as nx

from muledetect.graph_builder import successors

logger = logging.getLogger(__name__)

# ── Tuneable thresholds ───────────────────────────────────────────────────────
MIN_CYCLE_LENGTH = 3
MAX_CYCLE_LENGTH = 5      # also the DFS depth cap

_EXHAUSTED = object()


def detect_cycles(G: nx.DiGraph) -> list[list[str]]:
    """
    Returns every qualifying cycle as the ordered list of its accounts, in
    the order the search walked it (the first account is where it started).

    Only the first occurrence of each loop is kept; later rotations of the
    same loop found from other start accounts are dropped.
    """

    cycles = []
    seen   = set()

    for start in G.nodes():
        for cycle in _cycles_from(G, start):
            key = _canonical(cycle)
            if key in seen:
                continue
            seen.add(key)
            cycles.append(cycle)
            logger.debug("[cycle_detector] %s", " → ".join(cycle + [cycle[0]]))

    logger.info("[cycle_detector] Cycles found: %d", len(cycles))
    return cycles


# ─────────────────────────────────────────────────────────────────────────────
#  INTERNAL HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def _cycles_from(G: nx.DiGraph, start: str):
    """
    Depth-bounded DFS along outgoing edges from `start`, with an explicit
    stack of successor iterators instead of recursion. `path` and `on_path`
    are pushed/popped together, so `on_path` is always exactly the accounts
    of the current branch.

    Yields a copy of the path each time an edge leads back to `start` with
    MIN..MAX accounts on the path.
    """

    path    = [start]
    on_path = {start}
    stack   = [successors(G, start)]

    while stack:
        neighbor = next(stack[-1], _EXHAUSTED)

        if neighbor is _EXHAUSTED:
            stack.pop()
            on_path.discard(path.pop())
            continue

        if neighbor == start:
            if MIN_CYCLE_LENGTH <= len(path) <= MAX_CYCLE_LENGTH:
                yield list(path)
            continue

        if neighbor in on_path or len(path) >= MAX_CYCLE_LENGTH:
            continue

        path.append(neighbor)
        on_path.add(neighbor)
        stack.append(successors(G, neighbor))


def _canonical(cycle: list[str]) -> tuple:
    """Rotates the cycle so its smallest account id comes first."""
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:] + cycle[:pivot])
