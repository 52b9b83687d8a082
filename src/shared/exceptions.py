"""Exception taxonomy for the event pipelines.

Configuration problems abort a run before anything is processed. Fetch
errors are recovered per series or per occurrence by the caller. Missing
data points are never exceptions; they travel as ``None``.
"""


class ConfigurationError(ValueError):
    """A required setting (usually an API credential) is missing or invalid."""


class ScheduleCoverageError(ValueError):
    """A requested year lies outside a fixed-date schedule's coverage."""


class FetchError(RuntimeError):
    """An external fetch failed (HTTP error, timeout, malformed payload)."""


class MarketDataError(FetchError):
    """A market-data endpoint failed or returned an unusable payload."""
