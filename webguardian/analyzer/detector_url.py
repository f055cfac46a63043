"""URL-level detection helpers."""

from __future__ import annotations

from typing import Optional

from ..constants import Severity, ThreatKind
from ..utils.domains import host_matches, is_ipv4_literal, lookalike_host
from .models import Threat, Url
from .patterns import PatternSet


class DetectorUrlMixin:
    """Structural, phishing and blocklist checks on a parsed URL."""

    def _analyze_url_structure(self, url: Url, patterns: PatternSet) -> tuple[int, Optional[str]]:
        """Score the shape of a URL. Returns (sub-score, first matching reason)."""
        s = self.scoring

        if is_ipv4_literal(url.host):
            return s["url_ip_literal"], "Uses IP address instead of domain name"

        score = 0
        reasons: list[str] = []

        if url.length > s["url_max_length"]:
            score += s["url_long"]
            reasons.append("Unusually long URL")

        if len(url.host.split(".")) > s["url_max_labels"]:
            score += s["url_many_subdomains"]
            reasons.append("Too many subdomains")

        if any(p.search(url.path) for p in patterns.suspicious_path_patterns):
            score += s["url_suspicious_path"]
            reasons.append("Suspicious path pattern detected")

        return score, (reasons[0] if reasons else None)

    def _detect_phishing(self, url: Url, patterns: PatternSet) -> Optional[str]:
        """Return the phishing reason for a host, or None.

        Later checks replace the reason of earlier ones.
        """
        host = url.host
        reason: Optional[str] = None

        brand = self._impersonated_brand(host, host, patterns)
        if brand is None:
            readable = lookalike_host(host)
            if readable:
                # The canonical-domain exemption applies to the host as registered,
                # never to its decoded rendering.
                brand = self._impersonated_brand(readable, host, patterns, folded=True)
        if brand:
            reason = f"Possible phishing attempt targeting {brand}"

        if any(host.endswith(tld) for tld in patterns.suspicious_tlds):
            reason = "Uses suspicious top-level domain often associated with phishing"

        if any(host_matches(host, shortener) for shortener in patterns.shorteners):
            reason = "URL shortener detected - may hide real destination"

        return reason

    def _impersonated_brand(
        self, host: str, registered_host: str, patterns: PatternSet, folded: bool = False
    ) -> Optional[str]:
        """First watched brand ``host`` imitates while ``registered_host`` lacks its canonical domain."""
        for brand in patterns.brands:
            if f"{brand}.com" in registered_host:
                continue
            if self._has_character_substitution(host, brand, patterns, folded):
                return brand
        return None

    @staticmethod
    def _has_character_substitution(host: str, brand: str, patterns: PatternSet, folded: bool = False) -> bool:
        """Check each cumulative substitution of the brand against the host.

        The untouched brand only counts on a host whose homoglyphs were folded to ASCII.
        """
        if folded and brand in host:
            return True
        candidate = brand
        for char, sub in patterns.substitutions:
            candidate = candidate.replace(char, sub)
            if candidate != brand and candidate in host:
                return True
        return False

    def _lookup_malicious_domain(self, url: Url, patterns: PatternSet) -> Optional[Threat]:
        if not patterns.is_malicious_domain(url.host):
            return None
        return Threat(
            kind=ThreatKind.MALICIOUS_DOMAIN,
            severity=Severity.HIGH,
            description=f"Known malicious domain: {url.host}",
            score_contribution=self.scoring["malicious_domain"],
        )
