"""SSH-based remote metric collector for Linux hosts."""

import logging

from fleetwatch.collectors.base import BaseCollector
from fleetwatch.models import CPUUsage, FSInfo, MetricsSnapshot, NetInterface
from fleetwatch.session import CommandError, ServerHandle, SessionPool

logger = logging.getLogger(__name__)

CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal", "guest")


class SSHCollector(BaseCollector):
    """Collect system metrics from remote Linux hosts over an open session."""

    COMMANDS = {
        "uptime": "cat /proc/uptime",
        "hostname": "hostname -f",
        "load": "cat /proc/loadavg",
        "memory": "cat /proc/meminfo",
        "cpu": "cat /proc/stat",
        "filesystems": "df -B1",
        "addresses": "ip -o addr",
        "net_dev": "cat /proc/net/dev",
    }

    METRICS = ("uptime", "hostname", "load", "memory", "cpu", "filesystems", "interfaces")

    def __init__(self, pool: SessionPool, command_timeout: float | None = None) -> None:
        self.pool = pool
        self.command_timeout = command_timeout
        # Last raw /proc/stat counters per host, for CPU deltas
        self._prev_cpu: dict[str, list[int]] = {}

    def collect(self, handle: ServerHandle) -> MetricsSnapshot:
        """Collect all metrics; each one fails independently."""
        snapshot = MetricsSnapshot(name=handle.name)

        for metric in self.METRICS:
            collect_metric = getattr(self, f"_collect_{metric}")
            try:
                collect_metric(handle, snapshot)
            except (CommandError, ValueError, IndexError) as e:
                logger.debug(f"Failed to collect {metric} from {handle.name}: {e}")
                snapshot.errors.append(f"{metric}: {e}")

        return snapshot

    def _run(self, handle: ServerHandle, key: str) -> str:
        output, error = self.pool.run(handle, self.COMMANDS[key], timeout=self.command_timeout)
        if error is not None:
            raise error
        return output

    def _collect_uptime(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        # /proc/uptime: 350735.47 234388.90
        output = self._run(handle, "uptime")
        snapshot.uptime_seconds = float(output.split()[0])

    def _collect_hostname(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        snapshot.hostname = self._run(handle, "hostname").strip()

    def _collect_load(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        # /proc/loadavg: 0.38 0.32 0.29 1/234 5678
        parts = self._run(handle, "load").split()
        if len(parts) < 4:
            raise ValueError(f"unexpected loadavg format: {' '.join(parts)!r}")

        snapshot.load1, snapshot.load5, snapshot.load15 = parts[0], parts[1], parts[2]
        running, _, total = parts[3].partition("/")
        snapshot.running_procs = running
        snapshot.total_procs = total

    def _collect_memory(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        fields = {
            "MemTotal": "mem_total",
            "MemFree": "mem_free",
            "Buffers": "mem_buffers",
            "Cached": "mem_cached",
            "SwapTotal": "swap_total",
            "SwapFree": "swap_free",
        }
        for line in self._run(handle, "memory").splitlines():
            # MemTotal:       16318428 kB
            key, _, rest = line.partition(":")
            attr = fields.get(key.strip())
            if attr is None:
                continue
            parts = rest.split()
            value = int(parts[0])
            if len(parts) > 1 and parts[1].lower() == "kb":
                value *= 1024
            setattr(snapshot, attr, value)

    def _collect_cpu(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        output = self._run(handle, "cpu")
        for line in output.splitlines():
            parts = line.split()
            if parts and parts[0] == "cpu":
                break
        else:
            raise ValueError("no aggregate cpu line in /proc/stat")

        counters = [int(v) for v in parts[1:len(CPU_FIELDS) + 1]]
        counters += [0] * (len(CPU_FIELDS) - len(counters))

        previous = self._prev_cpu.get(handle.name, [0] * len(CPU_FIELDS))
        self._prev_cpu[handle.name] = counters

        deltas = [cur - prev for cur, prev in zip(counters, previous)]
        total = sum(deltas)
        if total <= 0:
            return

        snapshot.cpu = CPUUsage(**{
            name: delta * 100.0 / total for name, delta in zip(CPU_FIELDS, deltas)
        })

    def _collect_filesystems(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        # Filesystem 1B-blocks Used Available Use% Mounted on
        for line in self._run(handle, "filesystems").splitlines()[1:]:
            parts = line.split()
            if len(parts) < 6 or not parts[0].startswith("/"):
                continue
            snapshot.filesystems.append(FSInfo(
                mount_point=parts[5],
                used=int(parts[2]),
                free=int(parts[3]),
            ))

    def _collect_interfaces(self, handle: ServerHandle, snapshot: MetricsSnapshot) -> None:
        interfaces: dict[str, NetInterface] = {}

        # 2: eth0    inet 10.0.0.5/24 brd 10.0.0.255 scope global eth0 ...
        for line in self._run(handle, "addresses").splitlines():
            parts = line.split()
            if len(parts) < 4 or parts[2] not in ("inet", "inet6"):
                continue
            name = parts[1]
            if name == "lo":
                continue
            intf = interfaces.setdefault(name, NetInterface())
            if parts[2] == "inet" and not intf.ipv4:
                intf.ipv4 = parts[3]
            elif parts[2] == "inet6" and not intf.ipv6:
                intf.ipv6 = parts[3]
        snapshot.interfaces = interfaces

        #   eth0: 1234 10 0 0 0 0 0 0 5678 20 0 0 0 0 0 0
        for line in self._run(handle, "net_dev").splitlines()[2:]:
            name, sep, counters = line.partition(":")
            name = name.strip()
            if not sep or name not in interfaces:
                continue
            fields = counters.split()
            interfaces[name].rx = int(fields[0])
            interfaces[name].tx = int(fields[8])
