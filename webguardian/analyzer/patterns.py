"""Pattern sets: the injected blocklists, keyword lists and regexes.

A :class:`PatternSet` is an immutable snapshot. Evaluations take one
snapshot from the :class:`PatternStore` when they start and use it for
their whole lifetime, so a feed update that lands mid-evaluation is only
seen by the next evaluation.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_MALICIOUS_DOMAINS = (
    "malicious-example.com",
    "phishing-site.net",
    "fake-bank.org",
    "scam-site.biz",
)

DEFAULT_TRACKER_DOMAINS = (
    "google-analytics.com",
    "doubleclick.net",
    "facebook.com",
    "googletagmanager.com",
    "googlesyndication.com",
    "amazon-adsystem.com",
)

DEFAULT_TRACKER_PATTERNS = (
    r"google-analytics",
    r"googletagmanager",
    r"doubleclick",
    r"amazon-adsystem",
    r"googlesyndication",
    r"scorecardresearch",
    r"quantserve",
    r"(^|\.)telemetry\.",
)

DEFAULT_BRANDS = ("paypal", "microsoft", "google", "facebook", "amazon", "apple")

# Applied cumulatively, in this order, to the brand token.
DEFAULT_SUBSTITUTIONS = (
    ("o", "0"),
    ("i", "1"),
    ("l", "1"),
    ("e", "3"),
    ("a", "@"),
    ("s", "$"),
)

DEFAULT_SUSPICIOUS_TLDS = (".tk", ".ml", ".ga", ".cf", ".cc")

DEFAULT_SHORTENERS = ("bit.ly", "tinyurl.com", "t.co", "short.link")

DEFAULT_SUSPICIOUS_PATH_PATTERNS = (
    r"login.*secure",
    r"verify.*account",
    r"update.*payment",
    r"suspended",
)

DEFAULT_PHISHING_KEYWORDS = (
    "verify your account immediately",
    "account suspended",
    "click here now",
    "limited time offer",
    "confirm your identity",
    "unusual activity detected",
    "urgent action required",
    "winner selected",
    "claim your prize",
)

DEFAULT_SECURITY_BADGE_KEYWORDS = ("secure", "verified", "ssl", "certificate", "trust")

DEFAULT_SECURITY_VENDORS = (
    "ssl.com",
    "symantec.com",
    "verisign.com",
    "comodo.com",
    "thawte.com",
    "godaddy.com",
)

DEFAULT_SCRIPT_SOURCE_PATTERNS = (
    r"\d+\.\d+\.\d+\.\d+",
    r"[a-z0-9]{20,}\.com",
    r"bit\.ly|tinyurl|short",
    r"\.tk$|\.ml$|\.ga$|\.cf$",
)

DEFAULT_SCRIPT_CONTENT_PATTERNS = (
    r"eval\s*\(",
    r"document\.write\s*\(",
    r"innerHTML\s*=.*<script",
    r"crypto.*mine",
    r"bitcoin|ethereum|monero",
    r"keylogger|keypress.*password",
    r"atob\s*\(",
    r"String\.fromCharCode",
)

DEFAULT_MINER_INDICATORS = (
    "coinhive",
    "jsecoin",
    "crypto-loot",
    "webminepool",
    "authedmine",
    "coin-have",
    "minero",
)

DEFAULT_SENSITIVE_FIELDS = ("password", "ssn", "social", "credit", "card", "cvv", "security", "pin")


def _compile(patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.I))
        except re.error as exc:
            logger.warning("Skipping invalid pattern %r: %s", pattern, exc)
    return tuple(compiled)


def _lowered(values: Iterable[str]) -> frozenset[str]:
    return frozenset(v.strip().lower() for v in values if v and v.strip())


@dataclass(frozen=True)
class PatternSet:
    """Immutable collection of every list the detectors consult."""

    version: str = "builtin"
    malicious_domains: frozenset[str] = field(default_factory=lambda: _lowered(DEFAULT_MALICIOUS_DOMAINS))
    tracker_domains: frozenset[str] = field(default_factory=lambda: _lowered(DEFAULT_TRACKER_DOMAINS))
    tracker_patterns: tuple[re.Pattern, ...] = field(default_factory=lambda: _compile(DEFAULT_TRACKER_PATTERNS))
    brands: tuple[str, ...] = DEFAULT_BRANDS
    substitutions: tuple[tuple[str, str], ...] = DEFAULT_SUBSTITUTIONS
    suspicious_tlds: tuple[str, ...] = DEFAULT_SUSPICIOUS_TLDS
    shorteners: tuple[str, ...] = DEFAULT_SHORTENERS
    suspicious_path_patterns: tuple[re.Pattern, ...] = field(
        default_factory=lambda: _compile(DEFAULT_SUSPICIOUS_PATH_PATTERNS)
    )
    phishing_keywords: tuple[str, ...] = DEFAULT_PHISHING_KEYWORDS
    security_badge_keywords: tuple[str, ...] = DEFAULT_SECURITY_BADGE_KEYWORDS
    security_vendors: tuple[str, ...] = DEFAULT_SECURITY_VENDORS
    script_source_patterns: tuple[re.Pattern, ...] = field(
        default_factory=lambda: _compile(DEFAULT_SCRIPT_SOURCE_PATTERNS)
    )
    script_content_patterns: tuple[re.Pattern, ...] = field(
        default_factory=lambda: _compile(DEFAULT_SCRIPT_CONTENT_PATTERNS)
    )
    miner_indicators: tuple[str, ...] = DEFAULT_MINER_INDICATORS
    sensitive_fields: tuple[str, ...] = DEFAULT_SENSITIVE_FIELDS
    allowlist: frozenset[str] = frozenset()

    def is_malicious_domain(self, host: str) -> bool:
        return (host or "").lower() in self.malicious_domains

    def is_tracker_domain(self, host: str) -> bool:
        return (host or "").lower() in self.tracker_domains

    def matches_tracker_pattern(self, host: str) -> bool:
        return any(p.search(host or "") for p in self.tracker_patterns)

    def summary(self) -> dict:
        return {
            "version": self.version,
            "malicious_domains": len(self.malicious_domains),
            "tracker_domains": len(self.tracker_domains),
            "tracker_patterns": len(self.tracker_patterns),
            "phishing_keywords": len(self.phishing_keywords),
            "miner_indicators": len(self.miner_indicators),
            "allowlist": len(self.allowlist),
        }


class PatternSetLoader:
    """Loads a PatternSet from YAML, falling back to built-in lists per key."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> PatternSet:
        """Load the pattern file. Missing or broken files yield the defaults."""
        if not self.path.exists():
            logger.warning("Pattern file not found: %s", self.path)
            return PatternSet()

        try:
            data = yaml.safe_load(self.path.read_text()) or {}
            if not isinstance(data, dict):
                raise ValueError("top-level YAML value must be a mapping")
            patterns = self.from_mapping(data)
        except Exception as exc:
            logger.error("Error loading pattern file %s: %s", self.path, exc)
            return PatternSet()

        logger.info("Loaded pattern set v%s (%s)", patterns.version, patterns.summary())
        return patterns

    @staticmethod
    def from_mapping(data: dict) -> PatternSet:
        """Build a PatternSet, keeping the defaults for any key not present."""
        base = PatternSet()
        updates: dict = {"version": str(data.get("version", "1.0"))}

        def strings(key: str) -> Optional[list[str]]:
            raw = data.get(key)
            if raw is None:
                return None
            if not isinstance(raw, list):
                raise ValueError(f"{key} must be a list")
            seen: list[str] = []
            for item in raw:
                if isinstance(item, dict):
                    item = item.get("value") or item.get("domain") or item.get("pattern") or ""
                value = str(item).strip()
                if value and value not in seen:
                    seen.append(value)
            return seen

        for key in ("malicious_domains", "tracker_domains", "allowlist"):
            values = strings(key)
            if values is not None:
                updates[key] = _lowered(values)

        for key in (
            "tracker_patterns",
            "suspicious_path_patterns",
            "script_source_patterns",
            "script_content_patterns",
        ):
            values = strings(key)
            if values is not None:
                updates[key] = _compile(values)

        for key in (
            "brands",
            "suspicious_tlds",
            "shorteners",
            "phishing_keywords",
            "security_badge_keywords",
            "security_vendors",
            "miner_indicators",
            "sensitive_fields",
        ):
            values = strings(key)
            if values is not None:
                updates[key] = tuple(v.lower() for v in values)

        raw_subs = data.get("substitutions")
        if raw_subs is not None:
            if not isinstance(raw_subs, dict):
                raise ValueError("substitutions must be a mapping")
            updates["substitutions"] = tuple((str(k), str(v)) for k, v in raw_subs.items())

        return replace(base, **updates)


class PatternStore:
    """Holds the current PatternSet and swaps it atomically.

    Readers call :meth:`snapshot` once per evaluation; writers replace the
    whole object under a lock, so a reader never observes a partial update.
    """

    def __init__(self, patterns: Optional[PatternSet] = None, loader: Optional[PatternSetLoader] = None):
        self._lock = threading.Lock()
        self._loader = loader
        self._generation = 0
        if patterns is None:
            patterns = loader.load() if loader else PatternSet()
        self._current = patterns

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> PatternSet:
        with self._lock:
            return self._current

    def swap(self, patterns: PatternSet) -> PatternSet:
        """Install a new pattern set. Returns the one it replaced."""
        with self._lock:
            previous = self._current
            self._current = patterns
            self._generation += 1
        logger.info("Pattern set swapped: v%s -> v%s", previous.version, patterns.version)
        return previous

    def reload(self) -> str:
        """Re-read the pattern file (hot reload). Returns the new version."""
        if self._loader is None:
            return self.snapshot().version
        patterns = self._loader.load()
        self.swap(patterns)
        return patterns.version
