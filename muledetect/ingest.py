"""
ingest.py
Reads the transaction CSV and turns it into validated Transaction records.

Required columns (header names are matched case-insensitively):
    transaction_id, sender_id, receiver_id, amount, timestamp

Bad rows are not fatal: each one is reported as a ParseError (1-based file
row, header = row 1) and skipped. Extra fields past the header are ignored.
Only a file that cannot be used at all (empty, unreadable, or missing a
required column) makes load_transactions() raise.
"""

import logging
import math
import re
import warnings
from datetime import datetime
from typing import NamedTuple

import pandas as pd

from muledetect.models import Transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"]
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TIMESTAMP_REGEX  = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


class ParseError(NamedTuple):
    row     : int
    message : str


class ParseResult(NamedTuple):
    transactions : list[Transaction]
    errors       : list[ParseError]


class IngestionError(ValueError):
    """The CSV as a whole is unusable. `errors` holds the diagnostics."""

    def __init__(self, errors: list[ParseError]):
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors))


def parse_csv(source) -> ParseResult:
    """
    `source` is anything pandas.read_csv accepts (path, buffer, file object).
    Never raises for bad data; check `errors` instead.
    """

    transactions: list[Transaction] = []
    errors: list[ParseError] = []

    try:
        # rows longer than the header are cut to the header's width
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            raw = pd.read_csv(
                source,
                engine="python",
                index_col=False,
                dtype=object,
                keep_default_na=False,
                skip_blank_lines=False,
            )
    except pd.errors.EmptyDataError:
        errors.append(ParseError(0, "CSV file is empty or has no data rows."))
        return ParseResult(transactions, errors)
    except pd.errors.ParserError as exc:
        errors.append(ParseError(0, f"CSV file could not be parsed: {exc}"))
        return ParseResult(transactions, errors)

    raw.columns = [str(c).strip().strip('"').lower() for c in raw.columns]

    for col in REQUIRED_COLUMNS:
        if col not in raw.columns:
            errors.append(ParseError(0, f'Missing required column: "{col}"'))
    if errors:
        return ParseResult(transactions, errors)

    raw = raw[REQUIRED_COLUMNS].fillna("")
    if raw.empty:
        errors.append(ParseError(0, "CSV file is empty or has no data rows."))
        return ParseResult(transactions, errors)

    seen_ids = set()

    for offset, values in enumerate(raw.itertuples(index=False, name=None)):
        row_num = offset + 2
        tid, sender, receiver, amount_str, ts_str = (str(v).strip() for v in values)

        if not any((tid, sender, receiver, amount_str, ts_str)):
            continue   # blank line

        txn, message = _parse_row(row_num, tid, sender, receiver, amount_str, ts_str)
        if message is None and tid in seen_ids:
            message = f'Row {row_num}: Duplicate transaction_id "{tid}".'

        if message is not None:
            errors.append(ParseError(row_num, message))
            continue

        seen_ids.add(tid)
        transactions.append(txn)

    logger.info("[ingest] Valid rows: %d | Rejected rows: %d", len(transactions), len(errors))
    return ParseResult(transactions, errors)


def load_transactions(source) -> ParseResult:
    """
    Like parse_csv(), but raises IngestionError when the file itself is
    unusable (row-0 diagnostics). Per-row problems are still returned.
    """
    result = parse_csv(source)
    fatal = [e for e in result.errors if e.row == 0]
    if fatal:
        raise IngestionError(fatal)
    return result


# ─────────────────────────────────────────────────────────────────────────────
#  INTERNAL HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def _parse_row(row_num, tid, sender, receiver, amount_str, ts_str):
    """Returns (Transaction, None) or (None, error message)."""

    if not tid or not sender or not receiver:
        return None, f"Row {row_num}: Missing required string fields."

    try:
        amount = float(amount_str)
    except ValueError:
        return None, f'Row {row_num}: Invalid amount "{amount_str}" — must be a number.'
    if not math.isfinite(amount) or amount < 0:
        return None, f'Row {row_num}: Invalid amount "{amount_str}" — must be a non-negative number.'

    if not TIMESTAMP_REGEX.match(ts_str):
        return None, f'Row {row_num}: Invalid timestamp "{ts_str}" — must be YYYY-MM-DD HH:MM:SS.'
    try:
        timestamp = datetime.strptime(ts_str, TIMESTAMP_FORMAT)
    except ValueError:
        return None, f'Row {row_num}: Could not parse timestamp "{ts_str}".'

    return Transaction(tid, sender, receiver, amount, timestamp), None
