"""
parser.py – CSV parsing and validation.

Accepts the PaySim-style header

    step,type,amount,nameOrig,nameDest,isFraud

as well as the snake_case names used by the models
(transfer_type, origin_account, dest_account, is_fraud_label).

Validates:
  • Required columns present (isFraud is optional, defaults to 0)
  • Only TRANSFER / CASH_OUT rows are kept (labels normalised: "CASH-OUT",
    "cash out", "CashOut" all count)
  • No empty fields
  • amount numeric, finite and ≥ 0
  • step a non-negative integer
  • isFraud one of 0/1/true/false
  • Encoding auto-detection (UTF-8 / latin-1 fallback)

Malformed rows are dropped and counted; they never reach the graph.
"""
from __future__ import annotations

import io
import logging
from typing import List, Tuple

import numpy as np
import pandas as pd

from .config import ACCEPTED_TRANSFER_TYPES, MAX_ROWS
from .models import ParseStats, Transaction, TransferType

log = logging.getLogger(__name__)

_COLUMN_ALIASES = {
    "type": "transfer_type",
    "nameorig": "origin_account",
    "name_orig": "origin_account",
    "namedest": "dest_account",
    "name_dest": "dest_account",
    "isfraud": "is_fraud_label",
    "is_fraud": "is_fraud_label",
}

REQUIRED_COLUMNS = frozenset(
    {"step", "transfer_type", "amount", "origin_account", "dest_account"}
)

_TYPE_ALIASES = {"CASHOUT": "CASH_OUT"}
_FRAUD_LABELS = {"0": False, "1": True, "FALSE": False, "TRUE": True}
# Configured types outside the model enum are ignored.
_ACCEPTED_TYPES = ACCEPTED_TRANSFER_TYPES & {t.value for t in TransferType}


def _decode_bytes(raw: bytes) -> str:
    """Try UTF-8, then latin-1 fallback."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1", errors="replace")


def _normalise_type(series: pd.Series) -> pd.Series:
    labels = series.str.upper().str.replace(r"[\s\-]+", "_", regex=True)
    return labels.replace(_TYPE_ALIASES)


def parse_csv(file_bytes: bytes) -> Tuple[List[Transaction], ParseStats]:
    """
    Parse and validate CSV bytes.

    Returns
    -------
    transactions : list[Transaction] – in file order
    stats        : ParseStats        – row counts and warnings

    Raises
    ------
    ValueError on fatal errors (unreadable CSV, missing columns, zero valid rows).
    """
    text = _decode_bytes(file_bytes)

    # Comment lines ('#') and blank lines are annotations, not data.
    cleaned_lines = [
        line for line in text.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    try:
        df = pd.read_csv(io.StringIO("\n".join(cleaned_lines)), dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise ValueError("CSV file is empty – no rows found.") from exc
    except Exception as exc:
        raise ValueError(f"CSV parse error: {exc}") from exc
    return frame_to_transactions(df)


def read_csv_file(path: str) -> Tuple[List[Transaction], ParseStats]:
    """Read a CSV straight from disk (no comment stripping) and validate it."""
    try:
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
        except UnicodeDecodeError:
            log.info("%s is not valid UTF-8; retrying as latin-1", path)
            df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="latin-1")
    except pd.errors.EmptyDataError as exc:
        raise ValueError(f"CSV file {path} is empty – no rows found.") from exc
    except pd.errors.ParserError as exc:
        raise ValueError(f"CSV parse error in {path}: {exc}") from exc
    return frame_to_transactions(df)


def frame_to_transactions(df: pd.DataFrame) -> Tuple[List[Transaction], ParseStats]:
    """Validate a raw all-string DataFrame and convert surviving rows to Transactions."""
    stats = ParseStats(total_rows=len(df))
    log.info("CSV loaded: %d raw rows", len(df))

    if df.empty:
        raise ValueError("CSV file is empty – no rows found.")

    # 1. Normalise column names ────────────────────────────────────────────────
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    df = df.rename(columns=_COLUMN_ALIASES)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(
            f"Missing required columns: {sorted(missing)}. "
            f"Found: {sorted(df.columns.tolist())}"
        )
    if "is_fraud_label" not in df.columns:
        df["is_fraud_label"] = "0"
    df = df[["step", "transfer_type", "amount", "origin_account", "dest_account", "is_fraud_label"]].copy()

    # 2. Strip whitespace ──────────────────────────────────────────────────────
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()

    # 3. Keep accepted transfer types ──────────────────────────────────────────
    df["transfer_type"] = _normalise_type(df["transfer_type"])
    wanted = df["transfer_type"].isin(_ACCEPTED_TYPES)
    stats.filtered_types = int((~wanted).sum())
    df = df[wanted]

    # 4. Drop empty-field rows ─────────────────────────────────────────────────
    mask_empty = (
        df["step"].eq("") | df["amount"].eq("") |
        df["origin_account"].eq("") | df["dest_account"].eq("")
    )
    stats.empty_fields = int(mask_empty.sum())
    if stats.empty_fields:
        stats.warnings.append(f"Dropped {stats.empty_fields} rows with empty fields.")
    df = df[~mask_empty].copy()

    # 5. Parse & validate amount ───────────────────────────────────────────────
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    bad = df["amount"].isna() | df["amount"].isin([np.inf, -np.inf])
    stats.invalid_amounts = int(bad.sum())
    if stats.invalid_amounts:
        stats.warnings.append(
            f"Dropped {stats.invalid_amounts} rows with non-numeric or non-finite amount."
        )
        df = df[~bad].copy()

    neg = df["amount"] < 0
    stats.negative_amounts = int(neg.sum())
    if stats.negative_amounts:
        stats.warnings.append(f"Dropped {stats.negative_amounts} rows with negative amount.")
        df = df[~neg].copy()
    df["amount"] = df["amount"].astype(float)

    # 6. Parse step ────────────────────────────────────────────────────────────
    steps = pd.to_numeric(df["step"], errors="coerce")
    bad_step = steps.isna() | (steps < 0) | (steps % 1 != 0)
    stats.invalid_steps = int(bad_step.sum())
    if stats.invalid_steps:
        stats.warnings.append(f"Dropped {stats.invalid_steps} rows with invalid step.")
    df = df[~bad_step].copy()
    df["step"] = steps[~bad_step].astype("int64")

    # 7. Parse fraud label ─────────────────────────────────────────────────────
    labels = df["is_fraud_label"].str.upper().map(_FRAUD_LABELS)
    bad_label = labels.isna()
    stats.invalid_fraud_labels = int(bad_label.sum())
    if stats.invalid_fraud_labels:
        stats.warnings.append(
            f"Dropped {stats.invalid_fraud_labels} rows with unparseable isFraud value."
        )
    df = df[~bad_label].copy()
    df["is_fraud_label"] = labels[~bad_label].astype(bool)

    # 8. Row limit ─────────────────────────────────────────────────────────────
    if MAX_ROWS and len(df) > MAX_ROWS:
        stats.warnings.append(f"Dataset truncated from {len(df)} to {MAX_ROWS} rows.")
        df = df.head(MAX_ROWS)

    if df.empty:
        raise ValueError(
            "No valid rows remain after validation. "
            f"Issues: {'; '.join(stats.warnings) or 'no TRANSFER or CASH_OUT rows'}"
        )

    transactions = [
        Transaction(
            step=int(row.step),
            transfer_type=TransferType(row.transfer_type),
            amount=float(row.amount),
            origin_account=row.origin_account,
            dest_account=row.dest_account,
            is_fraud_label=bool(row.is_fraud_label),
        )
        for row in df.itertuples(index=False)
    ]

    stats.valid_rows = len(transactions)
    stats.dropped_rows = stats.total_rows - stats.valid_rows - stats.filtered_types
    log.info(
        "Parse complete: %d valid / %d total rows (%d other transfer types filtered)",
        stats.valid_rows, stats.total_rows, stats.filtered_types,
    )
    return transactions, stats
