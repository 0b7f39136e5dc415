import json

from muledetect.sample_data import generate_transactions, write_csv
from run import main


def test_run_writes_download_json(tmp_path, capsys):
    csv_path = tmp_path / "ledger.csv"
    out_path = tmp_path / "out.json"
    transactions, _ = generate_transactions(seed=2, noise=50)
    write_csv(transactions, csv_path)

    assert main([str(csv_path), "-o", str(out_path), "--top", "3"]) == 0

    report = json.loads(out_path.read_text())
    assert set(report) == {"suspicious_accounts", "fraud_rings", "summary"}
    assert report["summary"]["suspicious_accounts_flagged"] == len(report["suspicious_accounts"])
    assert "Done." in capsys.readouterr().out


def test_run_rejects_unusable_csv(tmp_path, capsys):
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text("id,from,to\n1,A,B\n")

    assert main([str(csv_path), "-o", str(tmp_path / "out.json")]) == 1
    assert "Missing required column" in capsys.readouterr().err
    assert not (tmp_path / "out.json").exists()


def test_run_survives_rows_with_extra_fields(tmp_path):
    csv_path = tmp_path / "ledger.csv"
    csv_path.write_text(
        "transaction_id,sender_id,receiver_id,amount,timestamp\n"
        "T1,A,B,1,2024-01-10 10:00:00\n"
        "T2,B,C,1,2024-01-10 11:00:00,note\n"
        "T3,C,A,1,2024-01-10 12:00:00\n"
    )
    out_path = tmp_path / "out.json"

    assert main([str(csv_path), "-o", str(out_path)]) == 0
    report = json.loads(out_path.read_text())
    assert report["fraud_rings"][0]["member_accounts"] == ["A", "B", "C"]
