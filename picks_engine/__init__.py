"""Daily Picks Engine: caching, result resolution, scoring and progression for daily sports picks."""

__version__ = "1.0.0"
