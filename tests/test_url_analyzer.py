"""Tests for URL structure analysis and blocklist lookup."""

from dataclasses import replace

from webguardian.analyzer.models import Url
from webguardian.config import Settings
from webguardian.constants import Severity, ThreatKind


def evaluate(detector, url, patterns, settings=None):
    return detector.evaluate_url(Url.parse(url), settings or Settings(), patterns)


class TestUrlStructure:
    """Structural heuristics over a navigated URL."""

    def test_clean_url_has_no_threats(self, detector, patterns):
        assert evaluate(detector, "https://example.com/", patterns) == []

    def test_ip_literal_short_circuits(self, detector, patterns):
        """An IPv4 host yields exactly one suspicious_url threat worth 40."""
        threats = evaluate(detector, "http://192.168.1.10/anything", patterns)
        assert len(threats) == 1
        assert threats[0].kind == ThreatKind.SUSPICIOUS_URL
        assert threats[0].score_contribution == 40
        assert "IP address" in threats[0].description

    def test_ip_literal_ignores_path_and_length(self, detector, patterns):
        url = "http://10.0.0.1/verify/account/" + "a" * 150
        threats = evaluate(detector, url, patterns)
        assert [t.score_contribution for t in threats] == [40]

    def test_long_url(self, detector, patterns):
        threats = evaluate(detector, "https://example.com/" + "a" * 100, patterns)
        assert len(threats) == 1
        assert threats[0].score_contribution == 20
        assert threats[0].description == "Unusually long URL"

    def test_url_at_length_limit_is_not_long(self, detector, patterns):
        base = "https://example.com/"
        url = base + "a" * (100 - len(base))
        assert len(url) == 100
        assert evaluate(detector, url, patterns) == []

    def test_many_subdomains(self, detector, patterns):
        threats = evaluate(detector, "https://a.b.c.example.com/", patterns)
        assert len(threats) == 1
        assert threats[0].score_contribution == 25
        assert threats[0].description == "Too many subdomains"

    def test_four_labels_is_fine(self, detector, patterns):
        assert evaluate(detector, "https://a.b.example.com/", patterns) == []

    def test_suspicious_path(self, detector, patterns):
        threats = evaluate(detector, "https://example.com/login/secure", patterns)
        assert len(threats) == 1
        assert threats[0].score_contribution == 30
        assert threats[0].severity == Severity.MEDIUM

    def test_path_pattern_is_case_insensitive(self, detector, patterns):
        threats = evaluate(detector, "https://example.com/Account-SUSPENDED", patterns)
        assert [t.score_contribution for t in threats] == [30]

    def test_sub_scores_add_and_first_reason_wins(self, detector, patterns):
        url = "https://example.com/account/suspended/" + "x" * 100
        threats = evaluate(detector, url, patterns)
        assert len(threats) == 1
        assert threats[0].score_contribution == 50
        assert threats[0].description == "Unusually long URL"


class TestMaliciousDomain:
    """Blocklist lookup."""

    def test_known_malicious_domain(self, detector, patterns):
        threats = evaluate(detector, "https://malicious-example.com/", patterns)
        assert len(threats) == 1
        assert threats[0].kind == ThreatKind.MALICIOUS_DOMAIN
        assert threats[0].severity == Severity.HIGH
        assert threats[0].score_contribution == 80

    def test_lookup_is_exact_host(self, detector, patterns):
        assert evaluate(detector, "https://www.malicious-example.com/", patterns) == []

    def test_detection_order(self, detector, patterns):
        """Blocklist, then phishing, then structure."""
        custom = replace(patterns, malicious_domains=frozenset({"evil.tk"}))
        threats = evaluate(detector, "http://evil.tk/verify-your-account", custom)
        assert [t.kind for t in threats] == [
            ThreatKind.MALICIOUS_DOMAIN,
            ThreatKind.PHISHING,
            ThreatKind.SUSPICIOUS_URL,
        ]

    def test_disabled_category_is_not_evaluated(self, detector, patterns):
        settings = Settings(block_malicious_sites=False)
        assert evaluate(detector, "https://malicious-example.com/", patterns, settings) == []

    def test_scoring_overrides(self, patterns):
        from webguardian.analyzer import ThreatDetector

        detector = ThreatDetector(scoring_weights={"url_ip_literal": 55})
        threats = evaluate(detector, "http://127.0.0.1/", patterns)
        assert threats[0].score_contribution == 55


class TestUrlParsing:
    """Url value object."""

    def test_parse_normalizes_host(self):
        url = Url.parse("HTTPS://WWW.Example.COM./Path?q=1")
        assert url.scheme == "https"
        assert url.host == "www.example.com"
        assert url.path == "/Path"
        assert url.query == "q=1"
        assert url.is_https

    def test_relative_reference_resolves_against_base(self):
        url = Url.parse("/login", base="https://example.com/account/")
        assert url.raw == "https://example.com/login"

    def test_malformed_url_raises(self):
        import pytest

        from webguardian.analyzer.models import UrlParseError

        for bad in ("", "not a url", "http://", "http://[::1"):
            with pytest.raises(UrlParseError):
                Url.parse(bad)

    def test_origin_includes_port(self):
        assert Url.parse("http://example.com:8080/x").origin == "http://example.com:8080"
