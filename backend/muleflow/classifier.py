"""
classifier.py – Rule-based collector / money-mule classification.

Collector
---------
  in_count       ≥ min_in_count
  out_count      ≤ max_out_count
  retention_rate ≥ min_retention

Money mule
----------
  in_volume  > mule_min_volume  and  out_volume > mule_min_volume   (eligible)
  |in_volume - out_volume| / max(in_volume, out_volume) < mule_max_imbalance

The mule rule never reads retention_rate: thin-margin pass-through accounts
can have a retention anywhere from slightly positive to hugely negative.

Both lists are ranked independently and an account can appear in both.
Classification is a pure function of (metrics, thresholds).
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from . import config
from .models import AccountMetrics

log = logging.getLogger(__name__)

SORT_KEYS = frozenset({
    "in_count", "out_count", "in_volume", "out_volume",
    "retention_rate", "total_volume", "imbalance", "handle",
})
DEFAULT_COLLECTOR_KEY = "in_volume"
DEFAULT_MULE_KEY = "total_volume"


class ClassifierThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_in_count: int = Field(config.COLLECTOR_MIN_IN_COUNT, ge=0)
    max_out_count: int = Field(config.COLLECTOR_MAX_OUT_COUNT, ge=0)
    min_retention: float = config.COLLECTOR_MIN_RETENTION
    mule_min_volume: float = Field(config.MULE_MIN_VOLUME, ge=0.0)
    mule_max_imbalance: float = Field(config.MULE_MAX_IMBALANCE, ge=0.0, le=1.0)

    @classmethod
    def from_config(cls) -> "ClassifierThresholds":
        """Thresholds as currently set in the environment-backed config module."""
        return cls(
            min_in_count=config.COLLECTOR_MIN_IN_COUNT,
            max_out_count=config.COLLECTOR_MAX_OUT_COUNT,
            min_retention=config.COLLECTOR_MIN_RETENTION,
            mule_min_volume=config.MULE_MIN_VOLUME,
            mule_max_imbalance=config.MULE_MAX_IMBALANCE,
        )


class Classification(NamedTuple):
    collectors: List[AccountMetrics]
    mules: List[AccountMetrics]


def is_collector(m: AccountMetrics, t: ClassifierThresholds) -> bool:
    return (
        m.in_count >= t.min_in_count
        and m.out_count <= t.max_out_count
        and m.retention_rate >= t.min_retention
    )


def is_mule_eligible(m: AccountMetrics, t: ClassifierThresholds) -> bool:
    """Both directions carry volume above the significance floor."""
    return m.in_volume > t.mule_min_volume and m.out_volume > t.mule_min_volume


def is_money_mule(m: AccountMetrics, t: ClassifierThresholds) -> bool:
    return is_mule_eligible(m, t) and m.imbalance < t.mule_max_imbalance


def rank(
    accounts: Iterable[AccountMetrics],
    key: str,
    descending: bool = True,
) -> List[AccountMetrics]:
    """Sort by ``key``; ties fall back to ascending handle."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key {key!r}. Expected one of: {sorted(SORT_KEYS)}")
    sign = -1 if descending else 1
    return sorted(accounts, key=lambda m: (sign * getattr(m, key), m.handle))


def classify(
    metrics: Union[Dict[int, AccountMetrics], Iterable[AccountMetrics]],
    thresholds: Optional[ClassifierThresholds] = None,
    collector_key: str = DEFAULT_COLLECTOR_KEY,
    mule_key: str = DEFAULT_MULE_KEY,
    descending: bool = True,
) -> Classification:
    """
    Split accounts into ranked collector and money-mule candidate lists.

    Parameters
    ----------
    metrics       : mapping handle → AccountMetrics (or any iterable of metrics)
    thresholds    : rule parameters; defaults to ClassifierThresholds.from_config()
    collector_key : ranking field for collectors (default in_volume)
    mule_key      : ranking field for mules (default total_volume)
    descending    : rank largest first
    """
    t = thresholds if thresholds is not None else ClassifierThresholds.from_config()
    records = metrics.values() if isinstance(metrics, dict) else metrics

    collectors: List[AccountMetrics] = []
    mules: List[AccountMetrics] = []
    for m in records:
        if is_collector(m, t):
            collectors.append(m)
        if is_money_mule(m, t):
            mules.append(m)

    result = Classification(
        collectors=rank(collectors, collector_key, descending),
        mules=rank(mules, mule_key, descending),
    )
    log.info(
        "Classification: %d collector accounts, %d money-mule accounts",
        len(result.collectors),
        len(result.mules),
    )
    return result
