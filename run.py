# run.py
import argparse
import json
import logging
import sys

from muledetect.engine import analyze, get_download_json
from muledetect.ingest import IngestionError, load_transactions


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Detect money-muling rings in a transaction CSV.")
    parser.add_argument("csv_path", help="CSV with transaction_id,sender_id,receiver_id,amount,timestamp")
    parser.add_argument("-o", "--output", default="output.json", help="where to write the download JSON")
    parser.add_argument("--top", type=int, default=20, help="how many top accounts to print")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        transactions, errors = load_transactions(args.csv_path)
    except IngestionError as exc:
        for err in exc.errors:
            print(err.message, file=sys.stderr)
        return 1

    for err in errors:
        print(err.message, file=sys.stderr)
    if not transactions:
        print("No valid transactions to analyze.", file=sys.stderr)
        return 1

    result = analyze(transactions)

    # print summary
    print(result["summary"])

    # print top suspicious accounts
    for acc in result["suspicious_accounts"][:args.top]:
        print(acc)

    # print all fraud rings
    for ring in result["fraud_rings"]:
        print(ring)

    # save full output to a JSON file to inspect
    with open(args.output, "w") as f:
        json.dump(get_download_json(result), f, indent=2)

    print(f"\nDone. Check {args.output} for full results.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
