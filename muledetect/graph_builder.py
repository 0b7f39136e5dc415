"""
graph_builder.py
Turns the validated transaction list into a directed graph.
Each account = node, each sender→receiver pair = one edge whose `count`
attribute is the number of transactions between them (a multiplicity, not a
yes/no flag).

Node attributes:
  transactions : transactions where the account is the SENDER
  tx_count     : number of transactions as sender + as receiver

Also builds the DataFrame views the time-window stages work on.
"""

import logging
from typing import Sequence

import networkx as nx
import pandas as pd

from muledetect.models import GraphInvariantError, Transaction

logger = logging.getLogger(__name__)

COLUMNS = ["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"]


def build_graph(transactions: Sequence[Transaction]) -> nx.DiGraph:
    """
    Returns a DiGraph keyed by account id. Every transaction is processed
    exactly once, in input order, so node and successor order follow the
    order in which accounts first appear.
    """

    G = nx.DiGraph()

    for txn in transactions:
        sender, receiver = txn.sender_id, txn.receiver_id

        # sender first, then receiver, so node order = first appearance
        for acc in (sender, receiver):
            if acc not in G:
                G.add_node(acc, transactions=[], tx_count=0)

        if G.has_edge(sender, receiver):
            edge = G[sender][receiver]
            edge["count"]        += 1
            edge["total_amount"] += txn.amount
        else:
            G.add_edge(sender, receiver, count=1, total_amount=txn.amount)

        G.nodes[sender]["transactions"].append(txn)
        G.nodes[sender]["tx_count"]   += 1
        G.nodes[receiver]["tx_count"] += 1

    logger.info(
        "[graph_builder] Nodes: %d | Edges: %d | Transactions: %d",
        G.number_of_nodes(), G.number_of_edges(), len(transactions),
    )
    return G


def successors(G: nx.DiGraph, account: str):
    """Outgoing neighbours of `account`, in edge insertion order."""
    try:
        return iter(G.successors(account))
    except nx.NetworkXError as exc:
        raise GraphInvariantError(
            f"account {account!r} is referenced by an edge but has no node"
        ) from exc


def tx_count(G: nx.DiGraph, account: str) -> int:
    """Total transactions (as sender + as receiver) for `account`."""
    try:
        return G.nodes[account]["tx_count"]
    except KeyError as exc:
        raise GraphInvariantError(f"account {account!r} is not in the graph") from exc


def transactions_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """One row per transaction, in input order. Timestamps as datetime64."""
    df = pd.DataFrame(
        [
            (t.transaction_id, t.sender_id, t.receiver_id, t.amount, t.timestamp)
            for t in transactions
        ],
        columns=COLUMNS,
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    df["amount"]    = df["amount"].astype(float)
    return df


def account_activity(df: pd.DataFrame) -> pd.DataFrame:
    """
    Long form of `df`: one row per (account, transaction) where the account
    is the sender or the receiver. A self-transfer shows up once for its
    account, not twice.

    Columns: account_id, transaction_id, timestamp
    """
    sent     = df[["sender_id", "transaction_id", "timestamp"]].rename(columns={"sender_id": "account_id"})
    received = df[["receiver_id", "transaction_id", "timestamp"]].rename(columns={"receiver_id": "account_id"})

    activity = pd.concat([sent, received], ignore_index=True)
    activity = activity.drop_duplicates(subset=["account_id", "transaction_id"])
    return activity.reset_index(drop=True)


def check_graph(G: nx.DiGraph, transactions: Sequence[Transaction]) -> None:
    """
    Cross-checks the built graph against its input. Raises
    GraphInvariantError if a node holds a transaction that is not in the
    input, or if the per-node counts do not add up to the input size.
    """
    known = {t.transaction_id for t in transactions}
    held  = 0

    for acc, data in G.nodes(data=True):
        for txn in data["transactions"]:
            if txn.transaction_id not in known:
                raise GraphInvariantError(
                    f"account {acc!r} holds unknown transaction {txn.transaction_id!r}"
                )
            if txn.sender_id != acc:
                raise GraphInvariantError(
                    f"transaction {txn.transaction_id!r} filed under {acc!r}, sender is {txn.sender_id!r}"
                )
        held += len(data["transactions"])

    if held != len(transactions):
        raise GraphInvariantError(
            f"graph holds {held} transactions, input had {len(transactions)}"
        )

    edge_total = sum(count for _, _, count in G.edges(data="count"))
    if edge_total != len(transactions):
        raise GraphInvariantError(
            f"edge multiplicities sum to {edge_total}, input had {len(transactions)}"
        )
