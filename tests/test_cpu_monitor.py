"""Tests for the cryptomining CPU sampler state machine."""

from webguardian.analyzer.cpu_monitor import CpuSampler, SamplerState
from webguardian.constants import Severity, ThreatKind


class TestCpuSampler:
    """Bounded sampling over reported iteration windows."""

    def test_first_slow_window_raises_threat(self):
        sampler = CpuSampler(score_contribution=15)
        assert sampler.observe(120) is None
        threat = sampler.observe(30)
        assert threat.kind == ThreatKind.HIGH_CPU_USAGE
        assert threat.severity == Severity.MEDIUM
        assert threat.score_contribution == 15
        assert sampler.state == SamplerState.ANOMALY_FOUND

    def test_sampling_stops_after_anomaly(self):
        sampler = CpuSampler()
        assert sampler.observe(10) is not None
        assert sampler.observe(10) is None
        assert sampler.window_count == 1

    def test_threshold_is_exclusive(self):
        sampler = CpuSampler()
        assert sampler.observe(50) is None
        assert sampler.active

    def test_cap_reached_silently(self):
        sampler = CpuSampler()
        for _ in range(10):
            assert sampler.observe(100) is None
        assert sampler.state == SamplerState.CAP_REACHED
        assert sampler.observe(1) is None
        assert sampler.window_count == 10

    def test_anomaly_on_last_window(self):
        sampler = CpuSampler(window_cap=3)
        sampler.observe(100)
        sampler.observe(100)
        assert sampler.observe(5) is not None
        assert sampler.state == SamplerState.ANOMALY_FOUND

    def test_cancel(self):
        sampler = CpuSampler()
        sampler.observe(100)
        sampler.cancel()
        assert sampler.state == SamplerState.CANCELLED
        assert not sampler.active
        assert sampler.observe(1) is None

    def test_cancel_after_finish_keeps_state(self):
        sampler = CpuSampler()
        sampler.observe(1)
        sampler.cancel()
        assert sampler.state == SamplerState.ANOMALY_FOUND
