"""Base collector interface."""

from abc import ABC, abstractmethod

from fleetwatch.models import MetricsSnapshot
from fleetwatch.session import ServerHandle


class BaseCollector(ABC):
    """Abstract base class for metric collectors."""

    @abstractmethod
    def collect(self, handle: ServerHandle) -> MetricsSnapshot:
        """Collect metrics from the host behind ``handle``.

        Implementations must not raise for missing or unreadable metrics;
        they leave the affected fields empty and record the failure in
        ``MetricsSnapshot.errors``.

        Args:
            handle: Open session to the host.

        Returns:
            MetricsSnapshot with whatever could be collected.
        """
        ...
