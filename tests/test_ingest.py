import io
from datetime import datetime

import pytest

from muledetect.ingest import IngestionError, load_transactions, parse_csv
from muledetect.models import Transaction

HEADER = "transaction_id,sender_id,receiver_id,amount,timestamp\n"


def _parse(text):
    return parse_csv(io.StringIO(text))


def test_valid_rows():
    result = _parse(HEADER + "T1,A,B,100.5,2024-01-10 10:00:00\nT2,B,C,0,2024-01-10 11:00:00\n")

    assert result.errors == []
    assert result.transactions == [
        Transaction("T1", "A", "B", 100.5, datetime(2024, 1, 10, 10, 0, 0)),
        Transaction("T2", "B", "C", 0.0, datetime(2024, 1, 10, 11, 0, 0)),
    ]


def test_header_case_and_column_order():
    text = "Timestamp, Amount ,RECEIVER_ID,sender_id,transaction_id\n2024-01-10 10:00:00,5,B,A,T1\n"
    result = _parse(text)
    assert result.errors == []
    assert result.transactions[0].sender_id == "A"
    assert result.transactions[0].receiver_id == "B"


def test_bad_rows_reported_and_skipped():
    text = HEADER + "\n".join([
        "T1,A,B,100,2024-01-10 10:00:00",
        "T2,,B,100,2024-01-10 10:00:00",
        "T3,A,B,abc,2024-01-10 10:00:00",
        "T4,A,B,-5,2024-01-10 10:00:00",
        "T5,A,B,10,2024/01/10 10:00",
        "T6,A,B,10,2024-02-30 10:00:00",
        "T1,A,B,10,2024-01-10 12:00:00",
    ]) + "\n"
    result = _parse(text)

    assert [t.transaction_id for t in result.transactions] == ["T1"]
    assert [e.row for e in result.errors] == [3, 4, 5, 6, 7, 8]
    assert "Missing required string fields" in result.errors[0].message
    assert "Invalid amount" in result.errors[1].message
    assert "non-negative" in result.errors[2].message
    assert "Invalid timestamp" in result.errors[3].message
    assert "Could not parse timestamp" in result.errors[4].message
    assert "Duplicate transaction_id" in result.errors[5].message


def test_blank_lines_skipped_without_error():
    text = HEADER + "T1,A,B,1,2024-01-10 10:00:00\n\nT2,B,A,1,2024-01-10 10:00:00\n"
    result = _parse(text)
    assert result.errors == []
    assert len(result.transactions) == 2


def test_missing_column():
    result = _parse("transaction_id,sender_id,amount,timestamp\nT1,A,1,2024-01-10 10:00:00\n")
    assert result.transactions == []
    assert result.errors[0].row == 0
    assert "receiver_id" in result.errors[0].message


def test_empty_file():
    result = _parse("")
    assert result.transactions == []
    assert result.errors[0].row == 0


def test_load_transactions_raises_on_unusable_file():
    with pytest.raises(IngestionError) as excinfo:
        load_transactions(io.StringIO(HEADER))
    assert excinfo.value.errors[0].row == 0
    assert isinstance(excinfo.value, ValueError)


def test_load_transactions_returns_row_errors():
    transactions, errors = load_transactions(io.StringIO(HEADER + "T1,A,B,1,2024-01-10 10:00:00\nT2,A,B,x,2024-01-10 10:00:00\n"))
    assert len(transactions) == 1
    assert [e.row for e in errors] == [3]


def test_extra_fields_past_header_are_ignored():
    text = HEADER + "\n".join([
        "T1,A,B,1,2024-01-10 10:00:00",
        "T2,A,B,2,2024-01-10 11:00:00,extra",
        "T3,B,C,3,2024-01-10 12:00:00",
    ]) + "\n"
    result = _parse(text)

    assert result.errors == []
    assert [t.transaction_id for t in result.transactions] == ["T1", "T2", "T3"]
    assert result.transactions[1] == Transaction("T2", "A", "B", 2.0, datetime(2024, 1, 10, 11, 0, 0))


def test_extra_fields_on_first_row_do_not_shift_columns():
    text = HEADER + "T1,A,B,1,2024-01-10 10:00:00,x,y\nT2,B,C,1,2024-01-10 11:00:00\n"
    result = _parse(text)

    assert result.errors == []
    assert result.transactions[0] == Transaction("T1", "A", "B", 1.0, datetime(2024, 1, 10, 10, 0, 0))
    assert len(result.transactions) == 2


def test_short_row_reported_not_raised():
    text = HEADER + "T1,A,B,1,2024-01-10 10:00:00\nT2,A\nT3,B,C,1,2024-01-10 11:00:00\n"
    result = _parse(text)

    assert [t.transaction_id for t in result.transactions] == ["T1", "T3"]
    assert [e.row for e in result.errors] == [3]
    assert "Missing required string fields" in result.errors[0].message
