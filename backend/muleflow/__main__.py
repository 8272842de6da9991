"""
__main__.py – Command-line runner.

Run with:  python -m muleflow [csv_file]
           python -m muleflow data.csv --json > report.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import (
    COLLECTOR_DISPLAY_LIMIT,
    DEFAULT_DATASET_PATH,
    LOG_LEVEL,
    MULE_DISPLAY_LIMIT,
)
from .formatter import CATEGORY_COLLECTOR, CATEGORY_MULE, format_output, render_account_table
from .parser import read_csv_file
from .pipeline import run_analysis
from .utils import timed

log = logging.getLogger("muleflow")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="muleflow",
        description="Flag collector and money-mule accounts in a transaction CSV.",
    )
    parser.add_argument("csv_file", nargs="?", default=DEFAULT_DATASET_PATH)
    parser.add_argument("--json", action="store_true", help="print the JSON report instead of tables")
    parser.add_argument("--collector-limit", type=int, default=COLLECTOR_DISPLAY_LIMIT)
    parser.add_argument("--mule-limit", type=int, default=MULE_DISPLAY_LIMIT)
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)-8s %(name)s │ %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stderr,
    )

    path = Path(args.csv_file)
    if not path.exists():
        log.error("File not found: %s", path)
        return 1

    timings = {}
    try:
        with timed("data loading", timings):
            transactions, parse_stats = read_csv_file(str(path))
    except ValueError as exc:
        log.error("Failed to load data: %s", exc)
        return 1
    if parse_stats.warnings:
        log.warning("Parse warnings for %s: %s", path, parse_stats.warnings)

    with timed("fraud analysis", timings):
        run = run_analysis(transactions, keep_graph=args.json)
    del transactions

    if args.json:
        report = format_output(run, parse_stats, processing_time=sum(timings.values()))
        print(json.dumps(report, indent=2))
    else:
        print("Money Laundering Detection Analysis")
        print("===================================")
        print(f"Loaded {run.transaction_count} transactions, {run.account_count} unique accounts")
        print(render_account_table(run.classification.collectors, CATEGORY_COLLECTOR, args.collector_limit))
        print(render_account_table(run.classification.mules, CATEGORY_MULE, args.mule_limit))
        print("\nAnalysis complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
