from muledetect.graph_builder import build_graph, tx_count
from muledetect.shell_detector import MAX_SHELL_TX, detect_shell_chains


def _busy(account, n, outgoing=True):
    """`n` transactions for `account` with fresh counterparties, a day apart."""
    if outgoing:
        return [(account, f"{account}_OUT_{i}", 100 + i * 24) for i in range(n)]
    return [(f"{account}_IN_{i}", account, 100 + i * 24) for i in range(n)]


def test_classic_chain_with_busy_endpoints(make_ledger):
    rows = [("A", "B", 0), ("B", "C", 1), ("C", "D", 2)] + _busy("A", 5) + _busy("D", 5, outgoing=False)
    chains = detect_shell_chains(build_graph(make_ledger(rows)))
    assert chains == [["A", "B", "C", "D"]]


def test_three_accounts_is_too_short(make_ledger):
    rows = [("A", "B", 0), ("B", "C", 1)]
    assert detect_shell_chains(build_graph(make_ledger(rows))) == []


def test_busy_intermediate_breaks_chain(make_ledger):
    rows = [("A", "B", 0), ("B", "C", 1), ("C", "D", 2)] + _busy("B", 4)
    assert detect_shell_chains(build_graph(make_ledger(rows))) == []


def test_longer_chain_reports_every_prefix_and_suffix(make_ledger):
    rows = [("A", "B", 0), ("B", "C", 1), ("C", "D", 2), ("D", "E", 3)]
    chains = detect_shell_chains(build_graph(make_ledger(rows)))
    assert chains == [
        ["A", "B", "C", "D"],
        ["A", "B", "C", "D", "E"],
        ["B", "C", "D", "E"],
    ]


def test_depth_capped_at_seven_accounts(make_ledger):
    names = [f"N{i}" for i in range(9)]
    rows = [(names[i], names[i + 1], i) for i in range(8)]
    chains = detect_shell_chains(build_graph(make_ledger(rows)))
    assert chains
    assert max(len(c) for c in chains) == 7


def test_no_loops_inside_a_chain(make_ledger):
    rows = [("A", "B", 0), ("B", "C", 1), ("C", "A", 2), ("C", "D", 3)]
    chains = detect_shell_chains(build_graph(make_ledger(rows)))
    for chain in chains:
        assert len(set(chain)) == len(chain)


def test_every_chain_is_valid(make_ledger):
    rows = [
        ("A", "B", 0), ("B", "C", 1), ("C", "D", 2), ("C", "E", 3),
        ("E", "F", 4), ("X", "B", 5), ("D", "G", 6),
    ] + _busy("F", 6, outgoing=False)
    G = build_graph(make_ledger(rows))
    chains = detect_shell_chains(G)

    assert chains
    assert len(set(map(tuple, chains))) == len(chains)
    for chain in chains:
        assert len(chain) >= 4
        assert all(tx_count(G, acc) <= MAX_SHELL_TX for acc in chain[1:-1])
