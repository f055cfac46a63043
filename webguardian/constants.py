"""Centralized constants for WebGuardian.

This module contains enums and thresholds shared by the detectors, the
aggregator and the driver so that every component ranks and groups
threats the same way.
"""

from enum import Enum, IntEnum

# Score boundaries (inclusive lower bounds except SECURE_THRESHOLD).
SECURE_THRESHOLD = 30
WARNING_THRESHOLD = 60
CRITICAL_THRESHOLD = 80

MAX_RISK_SCORE = 100


class Severity(IntEnum):
    """Threat severity levels with ranking for comparison."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    def __str__(self) -> str:
        return self.name.lower()


class Category(str, Enum):
    """Settings toggle that governs a group of threat kinds."""

    MALICIOUS = "block_malicious_sites"
    PHISHING = "block_phishing"
    CRYPTOMINING = "block_cryptominers"
    TRACKERS = "block_trackers"


class ThreatKind(str, Enum):
    """Every kind of threat a detector can emit."""

    # URL level
    MALICIOUS_DOMAIN = "malicious_domain"
    PHISHING = "phishing"
    SUSPICIOUS_URL = "suspicious_url"

    # Content level
    PHISHING_LANGUAGE = "phishing_language"
    EXTERNAL_LOGIN_FORM = "external_login_form"
    FAKE_SECURITY_BADGE = "fake_security_badge"
    SUSPICIOUS_HIDDEN_INPUT = "suspicious_hidden_input"
    SUSPICIOUS_EXTERNAL_SCRIPT = "suspicious_external_script"
    INVALID_SCRIPT_URL = "invalid_script_url"
    SUSPICIOUS_INLINE_SCRIPT = "suspicious_inline_script"
    DYNAMIC_MALICIOUS_SCRIPT = "dynamic_malicious_script"
    HIDDEN_MALICIOUS_ELEMENT = "hidden_malicious_element"
    HIDDEN_IFRAME = "hidden_iframe"
    POTENTIAL_CLICKJACKING = "potential_clickjacking"
    CROSS_ORIGIN_FRAMING = "cross_origin_framing"
    CRYPTOMINING_SCRIPT = "cryptomining_script"
    HIGH_CPU_USAGE = "high_cpu_usage"

    @property
    def category(self) -> Category:
        return KIND_CATEGORIES[self]

    def __str__(self) -> str:
        return self.value


KIND_CATEGORIES: dict[ThreatKind, Category] = {
    ThreatKind.MALICIOUS_DOMAIN: Category.MALICIOUS,
    ThreatKind.SUSPICIOUS_URL: Category.MALICIOUS,
    ThreatKind.SUSPICIOUS_HIDDEN_INPUT: Category.MALICIOUS,
    ThreatKind.SUSPICIOUS_EXTERNAL_SCRIPT: Category.MALICIOUS,
    ThreatKind.INVALID_SCRIPT_URL: Category.MALICIOUS,
    ThreatKind.SUSPICIOUS_INLINE_SCRIPT: Category.MALICIOUS,
    ThreatKind.DYNAMIC_MALICIOUS_SCRIPT: Category.MALICIOUS,
    ThreatKind.HIDDEN_MALICIOUS_ELEMENT: Category.MALICIOUS,
    ThreatKind.HIDDEN_IFRAME: Category.MALICIOUS,
    ThreatKind.POTENTIAL_CLICKJACKING: Category.MALICIOUS,
    ThreatKind.CROSS_ORIGIN_FRAMING: Category.MALICIOUS,
    ThreatKind.PHISHING: Category.PHISHING,
    ThreatKind.PHISHING_LANGUAGE: Category.PHISHING,
    ThreatKind.EXTERNAL_LOGIN_FORM: Category.PHISHING,
    ThreatKind.FAKE_SECURITY_BADGE: Category.PHISHING,
    ThreatKind.CRYPTOMINING_SCRIPT: Category.CRYPTOMINING,
    ThreatKind.HIGH_CPU_USAGE: Category.CRYPTOMINING,
}


class RiskLevel(IntEnum):
    """Coarse risk banding of a clamped score."""

    SECURE = 0
    ELEVATED = 1
    HIGH = 2
    CRITICAL = 3

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        if score >= CRITICAL_THRESHOLD:
            return cls.CRITICAL
        if score >= WARNING_THRESHOLD:
            return cls.HIGH
        if score >= SECURE_THRESHOLD:
            return cls.ELEVATED
        return cls.SECURE

    def __str__(self) -> str:
        return self.name.lower()


# Score at which a security warning is surfaced, per notification level.
NOTIFICATION_THRESHOLDS = {
    "low": SECURE_THRESHOLD,
    "medium": WARNING_THRESHOLD,
    "high": CRITICAL_THRESHOLD,
}

# Schemes that belong to the browser itself and are never evaluated.
INTERNAL_URL_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "moz-extension://",
    "about:",
)


def is_secure_score(score: int) -> bool:
    """Threshold law shared by every result producer."""
    return score < SECURE_THRESHOLD
