"""
utils.py – Phase timing helpers.

Every pipeline phase is wrapped in ``timed(label)`` so the log shows when it
started and how long it took; the elapsed seconds are also handed back to the
caller for the summary.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

log = logging.getLogger(__name__)


class PhaseTimer:
    """Elapsed seconds of one timed block; ``seconds`` is final once the block exits."""

    def __init__(self, label: str):
        self.label = label
        self.started = time.perf_counter()
        self.seconds = 0.0

    def stop(self) -> float:
        self.seconds = time.perf_counter() - self.started
        return self.seconds


@contextmanager
def timed(label: str, sink: Optional[Dict[str, float]] = None) -> Iterator[PhaseTimer]:
    """
    Log the start and duration of a block.

    If ``sink`` is given the elapsed time is stored in it under ``label``,
    even when the block raises.
    """
    log.info("Starting %s", label)
    timer = PhaseTimer(label)
    try:
        yield timer
    finally:
        elapsed = timer.stop()
        if sink is not None:
            sink[label] = round(elapsed, 4)
        log.info("%s completed in %.2fs", label, elapsed)
