"""scripts/fetch_report.py

Fetch one of the aggregation reports from the running API and print it or
write it to a file.

Usage (PowerShell):
    $env:API_BASE_URL = 'http://localhost:8000'
    python ./scripts/fetch_report.py --report books-by-decade --out decades.csv --format csv

"""
from __future__ import annotations
import os
import argparse
import json
from typing import Optional

import pandas as pd
import requests
from dotenv import load_dotenv


load_dotenv()

REPORTS = ("average-price-by-genre", "top-author", "books-by-decade")


def try_get(url: str, timeout: int = 10) -> Optional[requests.Response]:
    try:
        r = requests.get(url, timeout=timeout)
        return r
    except requests.RequestException as e:
        print(f"Request to {url} failed: {e}")
        return None


def fetch_report(api_base: str, report: str) -> Optional[list]:
    """Return the report rows, or None when the API call fails."""
    url = f"{api_base.rstrip('/')}/reports/{report}"
    r = try_get(url)
    if r is None:
        return None
    if r.status_code != 200:
        print(f"Received {r.status_code} from {url}: {r.text}")
        return None
    try:
        data = r.json()
    except ValueError as e:
        print(f"Failed to parse JSON from {url}: {e}")
        return None
    if not isinstance(data, list):
        print("Expected a list of report rows but got a single object.")
        return None
    return data


def write_rows(rows: list, out: str, fmt: str) -> None:
    if fmt == "json":
        with open(out, "w", encoding="utf8") as fh:
            json.dump(rows, fh, ensure_ascii=False, indent=2)
    else:
        df = pd.DataFrame(rows)
        # list cells (decade titles) would otherwise be written as Python reprs
        for col in df.columns:
            if df[col].map(lambda v: isinstance(v, list)).any():
                df[col] = df[col].map(lambda v: "; ".join(v) if isinstance(v, list) else v)
        df.to_csv(out, index=False)
    print(f"Wrote {len(rows)} rows to {out}")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Fetch an aggregation report from the bookstore API",
    )
    parser.add_argument(
        "--api-base",
        default=os.environ.get("API_BASE_URL", "http://localhost:8000"),
        help="API base URL",
    )
    parser.add_argument(
        "--report",
        choices=REPORTS,
        default="average-price-by-genre",
        help="Report to fetch",
    )
    parser.add_argument(
        "--out",
        help="Optional output file",
    )
    parser.add_argument(
        "--format",
        choices=("json", "csv"),
        default="json",
        help="Output format when --out is provided",
    )

    args = parser.parse_args(argv)

    rows = fetch_report(args.api_base, args.report)
    if rows is None:
        return 1
    if args.out:
        write_rows(rows, args.out, args.format)
    else:
        print(json.dumps(rows, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
