"""Metric collectors for remote hosts."""

from fleetwatch.collectors.base import BaseCollector
from fleetwatch.collectors.ssh import SSHCollector

__all__ = ["BaseCollector", "SSHCollector"]
