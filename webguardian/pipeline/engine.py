"""Evaluation driver: per-target-key sessions over the stateless detectors."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..analyzer.aggregator import RiskAggregator, should_warn
from ..analyzer.cpu_monitor import CpuSampler
from ..analyzer.detector_engine import ThreatDetector
from ..analyzer.models import (
    AnalysisResult,
    FormSubmission,
    ImmediateWarning,
    PageContent,
    Threat,
    TrackerDecision,
    TrackerEvent,
    Url,
    UrlParseError,
)
from ..analyzer.patterns import PatternSet, PatternStore
from ..analyzer.stats import Stats, StatsAccumulator
from ..analyzer.trackers import TrackerClassifier
from ..config import Settings
from ..constants import INTERNAL_URL_PREFIXES, Category
from ..utils.domains import allowlist_contains

logger = logging.getLogger(__name__)


@dataclass
class EngineEvents:
    """Output ports towards the host. Every callback is optional."""

    on_result: Optional[Callable[[str, AnalysisResult], None]] = None
    on_security_warning: Optional[Callable[[str, AnalysisResult], None]] = None
    on_warning: Optional[Callable[[ImmediateWarning], None]] = None
    on_tracker: Optional[Callable[[TrackerEvent], None]] = None
    on_stats: Optional[Callable[[Stats], None]] = None


@dataclass
class EvaluationSession:
    """Working state of the authoritative evaluation for one target key."""

    target_key: str
    evaluation_id: int
    url: Url
    settings: Settings
    patterns: PatternSet
    cpu_sampler: CpuSampler
    allowlisted: bool = False
    url_threats: list[Threat] = field(default_factory=list)
    content_threats: list[Threat] = field(default_factory=list)
    trackers_blocked: int = 0
    result: Optional[AnalysisResult] = None
    committed: bool = False

    @property
    def threats(self) -> list[Threat]:
        return self.url_threats + self.content_threats


@dataclass
class ContentUpdate:
    result: AnalysisResult
    warnings: list[ImmediateWarning] = field(default_factory=list)


class GuardianEngine:
    """Wires navigation, request and content events to the detectors.

    Each target key owns at most one authoritative session. A new
    navigation replaces it; anything still carrying the old evaluation id
    (content submissions, CPU samples, a navigation evaluation that lost the
    race) is dropped without touching the result or the counters.
    """

    def __init__(
        self,
        patterns: Optional[PatternStore] = None,
        settings: Optional[Settings] = None,
        detector: Optional[ThreatDetector] = None,
        stats: Optional[StatsAccumulator] = None,
        events: Optional[EngineEvents] = None,
        scoring_weights: Optional[dict] = None,
    ):
        self.patterns = patterns or PatternStore()
        self.detector = detector or ThreatDetector(scoring_weights=scoring_weights)
        self.stats = stats or StatsAccumulator()
        self.events = events or EngineEvents()
        self.trackers = TrackerClassifier()
        self.aggregator = RiskAggregator()

        self._settings = settings or Settings()
        self._sessions: dict[str, EvaluationSession] = {}
        self._next_id = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    def update_settings(self, updates: dict) -> Settings:
        """Apply host settings changes; in-flight sessions keep their copy."""
        with self._lock:
            self._settings = self._settings.merged(updates)
            return self._settings

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def on_navigation(
        self, target_key: str, url: str, settings: Optional[Settings] = None
    ) -> Optional[AnalysisResult]:
        """Top-level navigation intent. Returns the result when evaluated."""
        settings = settings or self._settings
        if not settings.evaluates_on_navigation:
            self.invalidate(target_key)
            return None
        return self._evaluate(target_key, url, settings)

    def force_scan(
        self, target_key: str, url: str, settings: Optional[Settings] = None
    ) -> Optional[AnalysisResult]:
        """Evaluate regardless of real-time / scan-frequency settings."""
        return self._evaluate(target_key, url, settings or self._settings)

    def _evaluate(self, target_key: str, raw_url: str, settings: Settings) -> Optional[AnalysisResult]:
        if (raw_url or "").lower().startswith(INTERNAL_URL_PREFIXES):
            logger.debug("Skipping internal URL: %s", raw_url)
            self.invalidate(target_key)
            return None

        try:
            url = Url.parse(raw_url)
        except UrlParseError as exc:
            logger.debug("Skipping malformed URL for %s: %s", target_key, exc)
            self.invalidate(target_key)
            return None

        session = self._open_session(target_key, url, settings)

        if not session.allowlisted:
            session.url_threats = self.detector.evaluate_url(url, settings, session.patterns)

        with self._lock:
            if not self._is_current(session):
                logger.debug("Dropping superseded evaluation %s for %s", session.evaluation_id, target_key)
                return None
            session.result = self._build_result(session)
            session.committed = True
            result = session.result
            stats = self.stats.record_result(result)

        self._publish(target_key, result, stats, session.settings)
        return result

    def _open_session(self, target_key: str, url: Url, settings: Settings) -> EvaluationSession:
        patterns = self.patterns.snapshot()
        s = self.detector.scoring
        with self._lock:
            self._next_id += 1
            previous = self._sessions.get(target_key)
            if previous:
                previous.cpu_sampler.cancel()
            session = EvaluationSession(
                target_key=target_key,
                evaluation_id=self._next_id,
                url=url,
                settings=settings,
                patterns=patterns,
                cpu_sampler=CpuSampler(
                    window_cap=s["cpu_window_cap"],
                    min_iterations=s["cpu_min_iterations"],
                    score_contribution=s["content_medium"],
                ),
                allowlisted=settings.whitelist_mode and allowlist_contains(url.host, patterns.allowlist),
            )
            self._sessions[target_key] = session
        return session

    def _is_current(self, session: EvaluationSession) -> bool:
        return self._sessions.get(session.target_key) is session

    def _current(self, target_key: str, evaluation_id: Optional[int]) -> Optional[EvaluationSession]:
        session = self._sessions.get(target_key)
        if session is None or not session.committed:
            return None
        if evaluation_id is not None and evaluation_id != session.evaluation_id:
            return None
        return session

    def _build_result(self, session: EvaluationSession) -> AnalysisResult:
        return self.aggregator.aggregate(
            url=session.url.raw,
            domain=session.url.host,
            threats=session.threats,
            settings=session.settings,
            trackers_blocked=session.trackers_blocked,
            evaluation_id=session.evaluation_id,
        )

    def _publish(
        self, target_key: str, result: AnalysisResult, stats: Optional[Stats], settings: Settings
    ) -> None:
        if self.events.on_result:
            self.events.on_result(target_key, result)
        if stats is not None and self.events.on_stats:
            self.events.on_stats(stats)
        if self.events.on_security_warning and should_warn(result, settings):
            self.events.on_security_warning(target_key, result)

    def invalidate(self, target_key: str) -> None:
        """Drop the session for a target (new navigation elsewhere, tab closed)."""
        with self._lock:
            session = self._sessions.pop(target_key, None)
            if session:
                session.cpu_sampler.cancel()

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def on_content(
        self,
        target_key: str,
        content: Optional[PageContent],
        evaluation_id: Optional[int] = None,
    ) -> Optional[ContentUpdate]:
        """Additive page-content submission for the current evaluation."""
        with self._lock:
            session = self._current(target_key, evaluation_id)
        if session is None:
            logger.debug("Dropping content for %s: no current evaluation", target_key)
            return None
        if session.allowlisted or content is None:
            return ContentUpdate(result=session.result)

        findings = self.detector.scan_content(session.url, content, session.settings, session.patterns)

        warnings: list[ImmediateWarning] = []
        if session.settings.show_warnings:
            warnings = [ImmediateWarning(message=m, target_key=target_key) for m in findings.warnings]

        result = self._append_threats(session, findings.threats)
        if result is None:
            return None

        for warning in warnings:
            if self.events.on_warning:
                self.events.on_warning(warning)
        return ContentUpdate(result=result, warnings=warnings)

    def on_cpu_sample(
        self, target_key: str, iterations: int, evaluation_id: Optional[int] = None
    ) -> Optional[AnalysisResult]:
        """One script-execution-rate window reported by the page."""
        with self._lock:
            session = self._current(target_key, evaluation_id)
            if session is None or session.allowlisted:
                return None
            if not session.settings.is_enabled(Category.CRYPTOMINING):
                session.cpu_sampler.cancel()
                return session.result
            threat = session.cpu_sampler.observe(iterations)
        if threat is None:
            return session.result
        return self._append_threats(session, [threat])

    def _append_threats(self, session: EvaluationSession, threats: list[Threat]) -> Optional[AnalysisResult]:
        with self._lock:
            if not self._is_current(session):
                logger.debug("Dropping late findings for superseded evaluation %s", session.evaluation_id)
                return None
            if not threats:
                return session.result
            previous = session.result.threats if session.result else ()
            session.content_threats.extend(threats)
            session.result = self._build_result(session)
            added = session.result.threats[len(previous):]
            stats = self.stats.record_additional_threats(added, previous)
            result = session.result

        self._publish(session.target_key, result, stats, session.settings)
        return result

    def on_form_submit(self, target_key: str, submission: FormSubmission) -> list[ImmediateWarning]:
        """Sensitive data leaving the page; warnings reach the user immediately."""
        with self._lock:
            session = self._sessions.get(target_key)
        settings = session.settings if session else self._settings
        patterns = session.patterns if session else self.patterns.snapshot()
        if not settings.show_warnings:
            return []
        messages = self.detector.check_form_submission(submission, settings, patterns)
        warnings = [ImmediateWarning(message=m, target_key=target_key) for m in messages]
        for warning in warnings:
            if self.events.on_warning:
                self.events.on_warning(warning)
        return warnings

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def on_request(
        self, target_key: Optional[str], request_url: str, settings: Optional[Settings] = None
    ) -> TrackerDecision:
        """Synchronous allow/block decision for one outbound request."""
        decision = self.trackers.classify(
            request_url,
            settings or self._settings,
            self.patterns.snapshot(),
            target_key=target_key,
        )
        if not decision.block:
            return decision

        stats = self.stats.record_tracker_block()
        result = None
        with self._lock:
            session = self._sessions.get(target_key) if target_key is not None else None
            if session and session.committed:
                session.trackers_blocked += 1
                session.result = self._build_result(session)
                result = session.result

        if self.events.on_tracker and decision.event:
            self.events.on_tracker(decision.event)
        if self.events.on_stats:
            self.events.on_stats(stats)
        if result is not None and self.events.on_result:
            self.events.on_result(target_key, result)
        return decision

    def update_tracker_count(self, target_key: str, count: int) -> Optional[AnalysisResult]:
        """Host-reported tracker count for the page (overrides the local tally)."""
        with self._lock:
            session = self._sessions.get(target_key)
            if session is None or not session.committed:
                return None
            session.trackers_blocked = max(0, int(count))
            session.result = self._build_result(session)
            result = session.result

        if self.events.on_result:
            self.events.on_result(target_key, result)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_analysis(self, target_key: str) -> AnalysisResult:
        """Current result for a target, or a clean placeholder."""
        with self._lock:
            session = self._sessions.get(target_key)
            if session and session.result:
                return session.result
        return AnalysisResult(
            url="Unknown",
            domain="Unknown",
            trackers_blocked=self.stats.snapshot().trackers_blocked,
        )

    def has_session(self, target_key: str) -> bool:
        with self._lock:
            return target_key in self._sessions

    def security_warning(self, target_key: str) -> Optional[AnalysisResult]:
        """The result to show in a full-page warning, when one is due."""
        with self._lock:
            session = self._sessions.get(target_key)
            if not session or not session.result:
                return None
            if should_warn(session.result, session.settings):
                return session.result
        return None

    def get_stats(self) -> Stats:
        return self.stats.snapshot()

    def reset_stats(self) -> Stats:
        return self.stats.reset()

    def reload_patterns(self) -> str:
        """Hot-reload pattern lists; running sessions keep their snapshot."""
        return self.patterns.reload()

    def status(self) -> dict:
        """Health/metrics payload."""
        with self._lock:
            active = len(self._sessions)
        snapshot = self.patterns.snapshot()
        payload = {
            "status": "ok",
            "active_sessions": active,
            "pattern_version": snapshot.version,
            "pattern_generation": self.patterns.generation,
        }
        payload.update(self.stats.snapshot().to_dict())
        return payload
