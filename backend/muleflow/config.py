"""
config.py – Centralised configuration via environment variables.
All tunable thresholds live here so nothing is scattered across modules.
"""
import os


# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Input limits ───────────────────────────────────────────────────────────────
MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "1024"))
MAX_FILE_SIZE_BYTES: int = MAX_FILE_SIZE_MB * 1024 * 1024
# 0 disables the row cap (full datasets run to millions of rows).
MAX_ROWS: int = int(os.getenv("MAX_ROWS", "0"))

DEFAULT_DATASET_PATH: str = os.getenv("DEFAULT_DATASET_PATH", "data/cleaned_fraud_dataset.csv")

# Only these raw categories reach the graph; everything else is filtered by the parser.
ACCEPTED_TRANSFER_TYPES: frozenset = frozenset(
    t.strip().upper()
    for t in os.getenv("ACCEPTED_TRANSFER_TYPES", "TRANSFER,CASH_OUT").split(",")
    if t.strip()
)

# ── Collector rule ─────────────────────────────────────────────────────────────
# Accumulates funds from many sources and almost never forwards them.
COLLECTOR_MIN_IN_COUNT: int = int(os.getenv("COLLECTOR_MIN_IN_COUNT", "5"))
COLLECTOR_MAX_OUT_COUNT: int = int(os.getenv("COLLECTOR_MAX_OUT_COUNT", "0"))
COLLECTOR_MIN_RETENTION: float = float(os.getenv("COLLECTOR_MIN_RETENTION", "0.99"))

# ── Money-mule rule ────────────────────────────────────────────────────────────
# Both directions must carry more than this much volume to be significant.
MULE_MIN_VOLUME: float = float(os.getenv("MULE_MIN_VOLUME", "10000.0"))
# |in - out| / max(in, out) must stay below this (near-balanced throughput).
MULE_MAX_IMBALANCE: float = float(os.getenv("MULE_MAX_IMBALANCE", "0.05"))

# ── Reporting ──────────────────────────────────────────────────────────────────
COLLECTOR_DISPLAY_LIMIT: int = int(os.getenv("COLLECTOR_DISPLAY_LIMIT", "1000"))
MULE_DISPLAY_LIMIT: int = int(os.getenv("MULE_DISPLAY_LIMIT", "500"))
# Connected-component statistics are skipped above this many accounts.
NETWORK_STATS_MAX_NODES: int = int(os.getenv("NETWORK_STATS_MAX_NODES", "200000"))

# ── Service ────────────────────────────────────────────────────────────────────
CORS_ORIGINS: list = os.getenv("CORS_ORIGINS", "*").split(",")
