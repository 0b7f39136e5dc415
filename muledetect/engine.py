"""
engine.py
──────────────────────────────────────────────────────────────────────────────
The ONLY file a caller needs to import.

Usage:
    from muledetect.engine import analyze
    result = analyze(transactions)          # list[Transaction]

    from muledetect.engine import analyze_csv
    result, errors = analyze_csv("path/to/transactions.csv")
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from muledetect.cycle_detector        import detect_cycles
from muledetect.false_positive_filter import filter_false_positives
from muledetect.graph_builder         import build_graph, check_graph, transactions_frame
from muledetect.ingest                import load_transactions
from muledetect.models                import Transaction
from muledetect.scorer                import finalize_ring_scores, score_accounts
from muledetect.shell_detector        import detect_shell_chains
from muledetect.smurfing_detector     import detect_smurfing

logger = logging.getLogger(__name__)

MAX_DETECTOR_WORKERS = 3


def analyze(transactions: Sequence[Transaction]) -> dict:
    """
    Full pipeline:
      Transactions → Graph → Detect (parallel) → Score → Filter → output

    Returns:
    {
        "suspicious_accounts": [...],   ← sorted by suspicion_score descending
        "fraud_rings":         [...],   ← discovery order
        "summary": {
            "total_accounts_analyzed":     int,
            "suspicious_accounts_flagged": int,
            "fraud_rings_detected":        int,
            "processing_time_seconds":     float
        },
        "_graph_data": {                 ← for visualization (not in download JSON)
            "nodes": [...],
            "edges": [...]
        }
    }
    """

    start_time = time.perf_counter()

    # ── Stage 1: Build graph ──────────────────────────────────────────────────
    logger.info("══ Stage 1: Building graph ══")
    G  = build_graph(transactions)
    df = transactions_frame(transactions)
    check_graph(G, transactions)
    total_accounts = G.number_of_nodes()

    # ── Stage 2: Run all three detectors ─────────────────────────────────────
    # Each detector only reads G / df and returns its own list.
    logger.info("══ Stage 2: Running detectors ══")
    with ThreadPoolExecutor(max_workers=MAX_DETECTOR_WORKERS, thread_name_prefix="detector") as pool:
        cycles_future = pool.submit(detect_cycles, G)
        smurfs_future = pool.submit(detect_smurfing, df)
        shells_future = pool.submit(detect_shell_chains, G)

        cycles       = cycles_future.result()
        smurfs       = smurfs_future.result()
        shell_chains = shells_future.result()

    # ── Stage 3: Score accounts, assign rings ─────────────────────────────────
    logger.info("══ Stage 3: Scoring accounts ══")
    raw_scores, raw_rings = score_accounts(G, df, cycles, smurfs, shell_chains)

    # ── Stage 4: False positive filtering ────────────────────────────────────
    logger.info("══ Stage 4: Filtering false positives ══")
    clean_accounts = filter_false_positives(df, raw_scores)

    # ── Stage 5: Build the final output structure ─────────────────────────────
    logger.info("══ Stage 5: Building output ══")

    # sorted() is stable: equal scores keep discovery order
    suspicious_accounts = sorted(
        clean_accounts.values(),
        key=lambda acc: acc["suspicion_score"],
        reverse=True,
    )

    fraud_rings = finalize_ring_scores(raw_rings, clean_accounts)

    processing_time = round(time.perf_counter() - start_time, 1)

    summary = {
        "total_accounts_analyzed"    : total_accounts,
        "suspicious_accounts_flagged": len(suspicious_accounts),
        "fraud_rings_detected"       : len(fraud_rings),
        "processing_time_seconds"    : processing_time,
    }

    result = {
        "suspicious_accounts" : suspicious_accounts,
        "fraud_rings"         : fraud_rings,
        "summary"             : summary,
        "_graph_data"         : _graph_data(G, clean_accounts),   # underscore = internal
    }

    logger.info(
        "══ DONE in %ss ══ accounts=%d flagged=%d rings=%d",
        processing_time, total_accounts, len(suspicious_accounts), len(fraud_rings),
    )
    return result


def analyze_csv(csv_path) -> tuple[dict, list]:
    """
    Ingests a CSV and runs analyze() on the rows that passed validation.
    Returns (result, row_errors). Raises IngestionError if the file is
    unusable as a whole.
    """
    transactions, errors = load_transactions(csv_path)
    return analyze(transactions), errors


def get_download_json(result: dict) -> dict:
    """
    Returns the result dict WITHOUT the _graph_data key.
    This is what gets written to the downloadable JSON file.
    """
    return {k: v for k, v in result.items() if not k.startswith("_")}


def _graph_data(G, accounts: dict) -> dict:
    nodes = [
        {
            "id"              : node,
            "suspicious"      : node in accounts,
            "suspicion_score" : accounts[node]["suspicion_score"] if node in accounts else 0,
            "ring_id"         : accounts[node]["ring_id"] if node in accounts else None,
            "tx_count"        : data["tx_count"],
            "in_degree"       : G.in_degree(node, weight="count"),
            "out_degree"      : G.out_degree(node, weight="count"),
        }
        for node, data in G.nodes(data=True)
    ]

    edges = [
        {
            "source"       : u,
            "target"       : v,
            "count"        : attrs["count"],
            "total_amount" : round(attrs["total_amount"], 2),
        }
        for u, v, attrs in G.edges(data=True)
    ]

    return {"nodes": nodes, "edges": edges}
