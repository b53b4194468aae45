"""
Exception hierarchy

Only ConfigurationError crosses a public boundary: it is raised at
construction time, before any market data flows. DataError is raised while
validating a snapshot and is converted by the extractor into a degraded
feature vector plus an error counter.
"""


class CascadeError(Exception):
    """Base class for orderflow-cascade errors"""


class ConfigurationError(CascadeError, ValueError):
    """Invalid configuration detected at construction time"""


class DataError(CascadeError):
    """Malformed or unusable order book data for a single tick"""


__all__ = [
    "CascadeError",
    "ConfigurationError",
    "DataError",
]
