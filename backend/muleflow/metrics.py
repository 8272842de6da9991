"""
metrics.py – Per-account flow aggregates.

For every account we walk its outgoing buckets and its incoming buckets once
each (via the adjacency index), so the whole run costs O(V + E) and every
transfer is visited exactly twice: once from its origin, once from its
destination.

retention_rate = (in_volume - out_volume) / in_volume, or 0.0 when nothing
was received.  The value is not clamped: an account that forwards far more
than it received gets a large negative retention.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .graph_builder import TransactionGraph, TransferRecord
from .models import AccountMetrics

log = logging.getLogger(__name__)

METRIC_COLUMNS = [
    "handle", "account_id", "in_count", "out_count",
    "in_volume", "out_volume", "retention_rate", "total_volume", "imbalance",
]


def retention_rate(in_volume: float, out_volume: float) -> float:
    if in_volume > 0:
        return (in_volume - out_volume) / in_volume
    return 0.0


def _bucket_totals(edges: Iterable[Tuple[int, List[TransferRecord]]]) -> Tuple[int, float]:
    count = 0
    volume = 0.0
    for _, bucket in edges:
        count += len(bucket)
        for record in bucket:
            volume += record.amount
    return count, volume


def account_metrics(graph: TransactionGraph, handle: int) -> AccountMetrics:
    """Metrics for a single account; depends only on that account's adjacency."""
    store = graph.store
    out_count, out_volume = _bucket_totals(store.out_edges(handle))
    in_count, in_volume = _bucket_totals(store.in_edges(handle))
    return AccountMetrics(
        handle=handle,
        account_id=store.node(handle),
        in_count=in_count,
        out_count=out_count,
        in_volume=in_volume,
        out_volume=out_volume,
        retention_rate=retention_rate(in_volume, out_volume),
    )


def compute_account_metrics(
    graph: TransactionGraph,
    handles: Optional[Iterable[int]] = None,
) -> Dict[int, AccountMetrics]:
    """
    Compute metrics for every account, or only for ``handles``.

    Restricting to a subset lets callers split the accounts into disjoint
    partitions and evaluate them independently; the graph is only read.
    """
    targets = range(graph.account_count) if handles is None else handles
    metrics = {handle: account_metrics(graph, handle) for handle in targets}
    log.info("Metrics computed for %d accounts", len(metrics))
    return metrics


def metrics_totals(metrics: Dict[int, AccountMetrics]) -> Dict[str, float]:
    """Column sums; in_count and out_count both equal the number of transfers."""
    totals = {"in_count": 0, "out_count": 0, "in_volume": 0.0, "out_volume": 0.0}
    for m in metrics.values():
        totals["in_count"] += m.in_count
        totals["out_count"] += m.out_count
        totals["in_volume"] += m.in_volume
        totals["out_volume"] += m.out_volume
    return totals


def metrics_frame(metrics: Iterable[AccountMetrics]) -> pd.DataFrame:
    """Tabulate metrics records (in the given order) for reporting."""
    rows = [
        (m.handle, m.account_id, m.in_count, m.out_count,
         m.in_volume, m.out_volume, m.retention_rate, m.total_volume, m.imbalance)
        for m in metrics
    ]
    return pd.DataFrame.from_records(rows, columns=METRIC_COLUMNS)
