"""Cryptomining CPU-usage heuristic.

The host runs a fixed-cost loop in the page and reports, once per
one-second window, how many iterations completed. A busy CPU (e.g. a
hidden miner) completes few of them. The sampler is a small state machine
driven by those reports: it never sleeps, never polls and keeps no history
beyond a window counter.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ..constants import Severity, ThreatKind
from .models import Threat

DEFAULT_WINDOW_CAP = 10
DEFAULT_MIN_ITERATIONS = 50


class SamplerState(str, Enum):
    SAMPLING = "sampling"
    ANOMALY_FOUND = "anomaly_found"
    CAP_REACHED = "cap_reached"
    CANCELLED = "cancelled"


class CpuSampler:
    """Bounded sampler: ``sampling(n)`` -> ``anomaly_found`` | ``cap_reached``."""

    def __init__(
        self,
        window_cap: int = DEFAULT_WINDOW_CAP,
        min_iterations: int = DEFAULT_MIN_ITERATIONS,
        score_contribution: int = 0,
    ):
        self.window_cap = window_cap
        self.min_iterations = min_iterations
        self.score_contribution = score_contribution
        self.state = SamplerState.SAMPLING
        self.window_count = 0

    @property
    def active(self) -> bool:
        return self.state == SamplerState.SAMPLING

    def observe(self, iterations: int) -> Optional[Threat]:
        """Feed one completed window. Returns a threat on the first anomaly."""
        if not self.active:
            return None

        self.window_count += 1
        if iterations < self.min_iterations:
            self.state = SamplerState.ANOMALY_FOUND
            return Threat(
                kind=ThreatKind.HIGH_CPU_USAGE,
                severity=Severity.MEDIUM,
                description="Unusually high CPU usage - possible cryptomining",
                score_contribution=self.score_contribution,
            )

        if self.window_count >= self.window_cap:
            self.state = SamplerState.CAP_REACHED
        return None

    def cancel(self) -> None:
        if self.active:
            self.state = SamplerState.CANCELLED
