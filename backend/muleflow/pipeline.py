"""
pipeline.py – Strict three-phase analysis run.

    transactions ─► graph ─► metrics ─► classification

Each phase consumes the previous phase's complete output; nothing runs
concurrently with graph construction.  Metrics and classification hold no
reference back into the graph, so callers may drop the graph once the run
returns (``keep_graph=False``).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from .classifier import (
    DEFAULT_COLLECTOR_KEY,
    DEFAULT_MULE_KEY,
    Classification,
    ClassifierThresholds,
    classify,
)
from .graph_builder import TransactionGraph
from .metrics import compute_account_metrics
from .models import AccountMetrics, Transaction
from .utils import timed

log = logging.getLogger(__name__)

PHASE_GRAPH = "graph construction"
PHASE_METRICS = "metrics computation"
PHASE_CLASSIFY = "classification"


@dataclass
class AnalysisRun:
    thresholds: ClassifierThresholds
    metrics: Dict[int, AccountMetrics]
    classification: Classification
    transaction_count: int
    account_count: int
    edge_count: int
    labelled_fraud_count: int
    timings: Dict[str, float] = field(default_factory=dict)
    graph: Optional[TransactionGraph] = None

    @property
    def elapsed(self) -> float:
        return sum(self.timings.values())


def run_analysis(
    transactions: Iterable[Transaction],
    thresholds: Optional[ClassifierThresholds] = None,
    collector_key: str = DEFAULT_COLLECTOR_KEY,
    mule_key: str = DEFAULT_MULE_KEY,
    keep_graph: bool = True,
) -> AnalysisRun:
    """Build the graph, compute metrics for every account, then classify."""
    thresholds = thresholds if thresholds is not None else ClassifierThresholds.from_config()
    timings: Dict[str, float] = {}

    with timed(PHASE_GRAPH, timings):
        graph = TransactionGraph.from_transactions(transactions)

    with timed(PHASE_METRICS, timings):
        metrics = compute_account_metrics(graph)

    with timed(PHASE_CLASSIFY, timings):
        classification = classify(metrics, thresholds, collector_key, mule_key)

    return AnalysisRun(
        thresholds=thresholds,
        metrics=metrics,
        classification=classification,
        transaction_count=graph.transaction_count,
        account_count=graph.account_count,
        edge_count=graph.store.edge_count(),
        labelled_fraud_count=graph.labelled_fraud_count,
        timings=timings,
        graph=graph if keep_graph else None,
    )
