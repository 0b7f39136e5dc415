"""
models.py
The one record type the engine consumes, plus the internal error raised when
the pipeline's own bookkeeping stops adding up.

Everything the engine produces is plain dicts/lists so it can go straight
into json.dump (see engine.get_download_json).
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Transaction:
    """One validated ledger row. Created by ingestion, never mutated."""

    transaction_id : str
    sender_id      : str
    receiver_id    : str
    amount         : float
    timestamp      : datetime


class GraphInvariantError(RuntimeError):
    """
    Raised when the graph and the transactions it was built from disagree,
    e.g. a detector follows an edge into an account that is not a node.
    This is a bug, not bad input: the run is aborted instead of returning
    partial results.
    """
