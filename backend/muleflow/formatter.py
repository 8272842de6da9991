"""
formatter.py – Console tables and the JSON report.

Console layout
--------------
=== Total of N accounts detected as fraudulent collector accounts ===
Account         In Count     Out Count    In Volume       Out Volume      Retention
...
... and M more accounts not shown

JSON contract
-------------
{
  "collector_accounts":  [{handle, account_id, in_count, out_count, in_volume,
                           out_volume, retention_rate, total_volume, imbalance}],
  "money_mule_accounts": [... same fields ...],
  "summary":             {total_transactions, total_accounts_analyzed,
                          collector_accounts_flagged, money_mule_accounts_flagged,
                          labelled_fraud_transactions, processing_time_seconds,
                          phase_timings, network_statistics},
  "thresholds":          {...},
  "parse_stats":         {...}   // optional
}

Volumes and rates are rounded for display only; the metrics themselves are
never rounded.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import networkx as nx

from .config import NETWORK_STATS_MAX_NODES
from .graph_builder import TransactionGraph
from .metrics import metrics_frame
from .models import (
    AccountMetrics,
    AnalysisResult,
    AnalysisSummary,
    NetworkStatistics,
    ParseStats,
)
from .pipeline import AnalysisRun

log = logging.getLogger(__name__)

_TABLE_HEADERS = {
    "account_id":     "Account",
    "in_count":       "In Count",
    "out_count":      "Out Count",
    "in_volume":      "In Volume",
    "out_volume":     "Out Volume",
    "retention_rate": "Retention",
}

CATEGORY_COLLECTOR = "collector"
CATEGORY_MULE = "money mule"


def render_account_table(
    accounts: Sequence[AccountMetrics],
    category: str,
    limit: Optional[int] = None,
) -> str:
    """Render a ranked account list as a fixed-width text table."""
    lines = [
        "",
        f"=== Total of {len(accounts)} accounts detected as fraudulent {category} accounts ===",
    ]
    shown = list(accounts if limit is None else accounts[:max(limit, 0)])

    frame = metrics_frame(shown)[list(_TABLE_HEADERS)].rename(columns=_TABLE_HEADERS)
    if frame.empty:
        lines.append("  ".join(_TABLE_HEADERS.values()))
    else:
        lines.append(
            frame.to_string(
                index=False,
                justify="left",
                float_format=lambda v: f"{v:.2f}",
            )
        )

    remaining = len(accounts) - len(shown)
    if remaining > 0:
        lines.append("")
        lines.append(f"... and {remaining} more accounts not shown")
    return "\n".join(lines)


def network_statistics(graph: TransactionGraph) -> NetworkStatistics:
    """
    Graph-level statistics for the summary.

    Density and average degree come straight from the store's counts; weakly
    connected components need a networkx copy and are skipped above
    NETWORK_STATS_MAX_NODES accounts.
    """
    store = graph.store
    n_nodes = store.node_count()
    n_edges = store.edge_count()

    components = None
    if 0 < n_nodes <= NETWORK_STATS_MAX_NODES:
        components = nx.number_weakly_connected_components(store.to_networkx())
    elif n_nodes:
        log.info("Graph too large for component statistics (%d accounts); skipping.", n_nodes)

    return NetworkStatistics(
        total_nodes=n_nodes,
        total_edges=n_edges,
        total_transfers=store.weight_count(),
        graph_density=round(n_edges / (n_nodes * (n_nodes - 1)), 8) if n_nodes > 1 else 0.0,
        avg_degree=round((2 * n_edges) / n_nodes, 2) if n_nodes > 0 else 0.0,
        weakly_connected_components=components,
    )


def format_output(
    run: AnalysisRun,
    parse_stats: Optional[ParseStats] = None,
    top_n: Optional[int] = None,
    processing_time: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Build the JSON-ready report for an analysis run.

    ``top_n`` caps both account lists (the flagged counts in the summary
    always reflect the full lists).  ``processing_time`` overrides the sum of
    phase timings, e.g. to include parsing.
    """
    collectors: List[AccountMetrics] = run.classification.collectors
    mules: List[AccountMetrics] = run.classification.mules
    if top_n is not None:
        collectors = collectors[:top_n]
        mules = mules[:top_n]

    stats = network_statistics(run.graph) if run.graph is not None else None

    summary = AnalysisSummary(
        total_transactions=run.transaction_count,
        total_accounts_analyzed=run.account_count,
        collector_accounts_flagged=len(run.classification.collectors),
        money_mule_accounts_flagged=len(run.classification.mules),
        labelled_fraud_transactions=run.labelled_fraud_count,
        processing_time_seconds=round(
            processing_time if processing_time is not None else run.elapsed, 3
        ),
        phase_timings=run.timings,
        network_statistics=stats,
    )

    result = AnalysisResult(
        collector_accounts=collectors,
        money_mule_accounts=mules,
        summary=summary,
        thresholds=run.thresholds.model_dump(),
        parse_stats=parse_stats,
    )
    return result.model_dump(mode="json")
