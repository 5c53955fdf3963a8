"""
fleetwatch - Fleet-wide remote host monitor.

Opens an SSH session to every configured host, polls system metrics on a
fixed interval and renders them to the console until interrupted.
"""

__version__ = "1.0.0"

from fleetwatch.config import Config, ConfigError, HostDescriptor
from fleetwatch.directory import ConfigResolver, EffectiveConfig, HostDirectory, HostRecord
from fleetwatch.models import MetricsSnapshot
from fleetwatch.monitor import PollScheduler, SchedulerState
from fleetwatch.session import CommandError, ServerHandle, SessionPool

__all__ = [
    "Config",
    "ConfigError",
    "HostDescriptor",
    "ConfigResolver",
    "EffectiveConfig",
    "HostDirectory",
    "HostRecord",
    "MetricsSnapshot",
    "PollScheduler",
    "SchedulerState",
    "CommandError",
    "ServerHandle",
    "SessionPool",
]
