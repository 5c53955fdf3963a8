"""Data models for collected host metrics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class CPUUsage:
    """CPU time breakdown in percent since the previous sample."""

    user: float = 0.0
    nice: float = 0.0
    system: float = 0.0
    idle: float = 0.0
    iowait: float = 0.0
    irq: float = 0.0
    softirq: float = 0.0
    steal: float = 0.0
    guest: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "user": self.user,
            "nice": self.nice,
            "system": self.system,
            "idle": self.idle,
            "iowait": self.iowait,
            "irq": self.irq,
            "softirq": self.softirq,
            "steal": self.steal,
            "guest": self.guest,
        }


@dataclass
class FSInfo:
    """Usage of one mounted filesystem, in bytes."""

    mount_point: str
    used: int
    free: int

    @property
    def total(self) -> int:
        return self.used + self.free


@dataclass
class NetInterface:
    """Addresses and traffic counters of one network interface."""

    ipv4: str = ""
    ipv6: str = ""
    rx: int = 0
    tx: int = 0


@dataclass
class MetricsSnapshot:
    """Everything collected from one host during one sweep.

    Fields left at their defaults mean the corresponding metric could not
    be read; ``errors`` lists what failed.
    """

    name: str
    timestamp: datetime = field(default_factory=datetime.now)
    error_message: str | None = None

    hostname: str = ""
    uptime_seconds: float = 0.0

    load1: str = ""
    load5: str = ""
    load15: str = ""
    running_procs: str = ""
    total_procs: str = ""

    # Memory, bytes
    mem_total: int = 0
    mem_free: int = 0
    mem_buffers: int = 0
    mem_cached: int = 0
    swap_total: int = 0
    swap_free: int = 0

    cpu: CPUUsage = field(default_factory=CPUUsage)
    filesystems: list[FSInfo] = field(default_factory=list)
    interfaces: dict[str, NetInterface] = field(default_factory=dict)

    errors: list[str] = field(default_factory=list)

    @property
    def mem_used(self) -> int:
        return max(self.mem_total - self.mem_free - self.mem_buffers - self.mem_cached, 0)

    @property
    def complete(self) -> bool:
        """True when every metric was collected."""
        return self.error_message is None and not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "timestamp": self.timestamp.isoformat(),
            "error_message": self.error_message,
            "hostname": self.hostname,
            "uptime_seconds": self.uptime_seconds,
            "load": [self.load1, self.load5, self.load15],
            "processes": {
                "running": self.running_procs,
                "total": self.total_procs,
            },
            "memory": {
                "total": self.mem_total,
                "free": self.mem_free,
                "used": self.mem_used,
                "buffers": self.mem_buffers,
                "cached": self.mem_cached,
                "swap_total": self.swap_total,
                "swap_free": self.swap_free,
            },
            "cpu": self.cpu.to_dict(),
            "filesystems": [
                {"mount_point": fs.mount_point, "used": fs.used, "free": fs.free}
                for fs in self.filesystems
            ],
            "interfaces": {
                name: {"ipv4": i.ipv4, "ipv6": i.ipv6, "rx": i.rx, "tx": i.tx}
                for name, i in self.interfaces.items()
            },
            "errors": list(self.errors),
        }
