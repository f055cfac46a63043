"""Analyzer modules for WebGuardian."""

from .aggregator import RiskAggregator, badge_for, should_warn
from .detector_engine import ThreatDetector
from .patterns import PatternSet, PatternSetLoader, PatternStore
from .stats import Stats, StatsAccumulator
from .trackers import TrackerClassifier

__all__ = [
    "RiskAggregator",
    "badge_for",
    "should_warn",
    "ThreatDetector",
    "PatternSet",
    "PatternSetLoader",
    "PatternStore",
    "Stats",
    "StatsAccumulator",
    "TrackerClassifier",
]
