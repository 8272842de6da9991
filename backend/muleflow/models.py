"""
models.py – Pydantic models.
Input records, derived per-account metrics and the JSON report contract.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field


class TransferType(str, Enum):
    TRANSFER = "TRANSFER"
    CASH_OUT = "CASH_OUT"


class Transaction(BaseModel):
    """
    One validated transfer between two accounts.

    ``is_fraud_label`` is the dataset's ground truth. It is carried through
    the graph as data only; no detection rule reads it.
    """
    model_config = ConfigDict(frozen=True)

    step: int = Field(..., ge=0)
    transfer_type: TransferType
    amount: float = Field(..., ge=0.0, allow_inf_nan=False)
    origin_account: str = Field(..., min_length=1)
    dest_account: str = Field(..., min_length=1)
    is_fraud_label: bool = False


class AccountMetrics(BaseModel):
    """Aggregate in/out flow for a single account."""
    model_config = ConfigDict(frozen=True)

    handle: int
    account_id: str
    in_count: int = 0
    out_count: int = 0
    in_volume: float = 0.0
    out_volume: float = 0.0
    retention_rate: float = 0.0

    @computed_field
    @property
    def total_volume(self) -> float:
        return self.in_volume + self.out_volume

    @computed_field
    @property
    def imbalance(self) -> float:
        """|in - out| / max(in, out); 0.0 for an account with no volume."""
        larger = max(self.in_volume, self.out_volume)
        if larger <= 0:
            return 0.0
        return abs(self.in_volume - self.out_volume) / larger


class ParseStats(BaseModel):
    total_rows: int = 0
    valid_rows: int = 0
    dropped_rows: int = 0
    filtered_types: int = 0
    empty_fields: int = 0
    invalid_amounts: int = 0
    negative_amounts: int = 0
    invalid_steps: int = 0
    invalid_fraud_labels: int = 0
    warnings: List[str] = Field(default_factory=list)


class NetworkStatistics(BaseModel):
    total_nodes: int
    total_edges: int
    total_transfers: int
    graph_density: float
    avg_degree: float
    weakly_connected_components: Optional[int] = None


class AnalysisSummary(BaseModel):
    total_transactions: int
    total_accounts_analyzed: int
    collector_accounts_flagged: int
    money_mule_accounts_flagged: int
    labelled_fraud_transactions: int
    processing_time_seconds: float
    phase_timings: Dict[str, float] = Field(default_factory=dict)
    network_statistics: Optional[NetworkStatistics] = None


class AnalysisResult(BaseModel):
    collector_accounts: List[AccountMetrics]
    money_mule_accounts: List[AccountMetrics]
    summary: AnalysisSummary
    thresholds: Dict[str, float]
    parse_stats: Optional[ParseStats] = None
