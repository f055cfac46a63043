"""WebGuardian - browser-side threat analysis engine."""

__version__ = "1.0.0"
