"""
shell_detector.py
Finds money walked through throwaway accounts: a path whose interior
accounts each carry almost no traffic of their own.

    A ──► s1 ──► s2 ──► D        s1, s2: at most MAX_SHELL_TX transactions

The first account of a path may be as busy as it likes; every account the
walk continues through must be a shell. A path is kept once it spans
MIN_CHAIN_ACCOUNTS accounts and the walk stops at MAX_CHAIN_ACCOUNTS.
"""

import logging

import networkx as nx

from muledetect.graph_builder import successors, tx_count

logger = logging.getLogger(__name__)

# ── Tuneable thresholds ───────────────────────────────────────────────────────
MAX_SHELL_TX       = 3    # total transactions for an account to count as a shell
MIN_CHAIN_ACCOUNTS = 4    # 3 hops
MAX_CHAIN_ACCOUNTS = 7    # DFS depth limit

_EXHAUSTED = object()


def detect_shell_chains(G: nx.DiGraph) -> list[list[str]]:
    """
    Returns every shell chain as an ordered list of accounts, origin first.

    Chains are deduplicated by their exact ordered path: A→B→C→D and
    D→C→B→A are different chains, and so are A→B→C→D and A→B→C→D→E.
    """

    chains = []
    seen   = set()

    for start in G.nodes():
        for chain in _chains_from(G, start):
            key = tuple(chain)
            if key in seen:
                continue
            seen.add(key)
            chains.append(chain)
            logger.debug("[shell_detector] %s", " → ".join(chain))

    logger.info("[shell_detector] Chains found: %d", len(chains))
    return chains


def is_shell(G: nx.DiGraph, account: str) -> bool:
    return tx_count(G, account) <= MAX_SHELL_TX


# ─────────────────────────────────────────────────────────────────────────────
#  INTERNAL HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def _chains_from(G: nx.DiGraph, start: str):
    """
    Depth-bounded DFS from `start` with an explicit stack. Each frame holds
    its own path tuple, so branches never share a visited set.

    The start account may be busy. Any account the path continues THROUGH
    becomes an intermediate and must be a shell, so the search never extends
    past a busy account: the first non-shell reached ends that branch.
    """

    stack = [((start,), successors(G, start))]

    while stack:
        path, neighbors = stack[-1]
        neighbor = next(neighbors, _EXHAUSTED)

        if neighbor is _EXHAUSTED:
            stack.pop()
            continue

        # No loops inside a chain
        if neighbor in path:
            continue

        new_path = path + (neighbor,)

        if len(new_path) >= MIN_CHAIN_ACCOUNTS and _interior_is_shell(G, new_path):
            yield list(new_path)

        if len(new_path) < MAX_CHAIN_ACCOUNTS and is_shell(G, neighbor):
            stack.append((new_path, successors(G, neighbor)))


def _interior_is_shell(G: nx.DiGraph, path: tuple) -> bool:
    """Everything except the first and last account must be a shell."""
    return all(is_shell(G, acc) for acc in path[1:-1])
