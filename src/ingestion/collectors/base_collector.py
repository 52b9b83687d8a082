"""Abstract base class for the external data collectors.

Collectors only fetch and validate: they turn provider payloads into typed
rows and never write to the store. Matching, merging and persistence are
the pipelines' job.

Malformed rows are skipped and logged at the boundary. A failed request
surfaces as ``FetchError`` (or a subclass) so callers can recover per
series or per occurrence.
"""

import time
from abc import ABC, abstractmethod
from pathlib import Path

from src.shared.utils import setup_logger


class BaseCollector(ABC):
    """Base class for all data collectors.

    Subclasses must define:
        SOURCE_NAME (str): identifier used in logs (e.g. "fred", "market").

    Subclasses must implement:
        health_check(): verify the source is reachable.
    """

    SOURCE_NAME: str
    MIN_REQUEST_INTERVAL: float = 0.0  # seconds between consecutive calls

    def __init__(self, log_file: Path | None = None) -> None:
        """Initialize the collector.

        Args:
            log_file: Optional path for file-based logging.
        """
        self.logger = setup_logger(self.__class__.__name__, log_file)
        self._last_request_time: float = 0.0

    @abstractmethod
    def health_check(self) -> bool:
        """Verify the data source is reachable and responding.

        Returns:
            True if the source is available, False otherwise.
        """
        ...

    def _throttle_request(self) -> None:
        """Ensure minimum interval between API requests to respect rate limits."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.MIN_REQUEST_INTERVAL:
            time.sleep(self.MIN_REQUEST_INTERVAL - elapsed)
        self._last_request_time = time.time()
