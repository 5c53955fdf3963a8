"""Console rendering of host metrics."""

import json
from abc import ABC, abstractmethod

import click
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from fleetwatch.models import MetricsSnapshot


def fmt_bytes(value: float) -> str:
    """Format a byte count with a binary unit suffix."""
    if abs(value) < 1024:
        return f"{int(value)} B"
    for unit in ("KiB", "MiB", "GiB"):
        value /= 1024
        if abs(value) < 1024:
            return f"{value:.2f} {unit}"
    return f"{value / 1024:.2f} TiB"


def fmt_uptime(seconds: float) -> str:
    """Format seconds as e.g. ``3 days, 04:05:06``."""
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    clock = f"{hours:02d}:{minutes:02d}:{secs:02d}"
    if days == 1:
        return f"1 day, {clock}"
    if days > 1:
        return f"{days} days, {clock}"
    return clock


class BaseRenderer(ABC):
    """Abstract base class for snapshot renderers."""

    def begin_sweep(self) -> None:
        """Called once before the hosts of a sweep are rendered."""

    @abstractmethod
    def render(self, name: str, snapshot: MetricsSnapshot) -> None:
        """Display one host's snapshot.

        Args:
            name: Display name of the host.
            snapshot: Metrics collected during this sweep.
        """
        ...


class ConsoleRenderer(BaseRenderer):
    """Render each host as a Rich panel, clearing the screen every sweep."""

    def __init__(self, console: Console | None = None, clear: bool = True) -> None:
        self.console = console or Console()
        self.clear = clear

    def begin_sweep(self) -> None:
        if self.clear:
            self.console.clear()

    def render(self, name: str, snapshot: MetricsSnapshot) -> None:
        self.console.print(create_host_panel(name, snapshot))


class JSONRenderer(BaseRenderer):
    """Emit one JSON document per host snapshot."""

    def render(self, name: str, snapshot: MetricsSnapshot) -> None:
        click.echo(json.dumps(snapshot.to_dict()))


def create_host_panel(name: str, snapshot: MetricsSnapshot) -> Panel:
    """Create a Rich panel displaying one host's metrics."""
    if snapshot.error_message:
        return Panel(
            Text(snapshot.error_message, style="red"),
            title=name,
            border_style="red",
        )

    s = snapshot
    cpu = s.cpu
    lines = [
        f"[bold]{s.hostname or name}[/] up [bold]{fmt_uptime(s.uptime_seconds)}[/]",
        "",
        f"[bold]Load:[/] {s.load1 or '-'} {s.load5 or '-'} {s.load15 or '-'}",
        f"[bold]CPU:[/] {cpu.user:.2f}% user, {cpu.system:.2f}% sys, {cpu.nice:.2f}% nice, "
        f"{cpu.idle:.2f}% idle, {cpu.iowait:.2f}% iowait, {cpu.irq:.2f}% hardirq, "
        f"{cpu.softirq:.2f}% softirq, {cpu.guest:.2f}% guest",
        f"[bold]Processes:[/] {s.running_procs or '-'} running of {s.total_procs or '-'} total",
        "",
        "[bold]Memory:[/]",
        f"    free    = {fmt_bytes(s.mem_free)}",
        f"    used    = {fmt_bytes(s.mem_used)}",
        f"    buffers = {fmt_bytes(s.mem_buffers)}",
        f"    cached  = {fmt_bytes(s.mem_cached)}",
        f"    swap    = {fmt_bytes(s.swap_free)} free of {fmt_bytes(s.swap_total)}",
    ]

    parts: list = [Text.from_markup("\n".join(lines))]

    if s.filesystems:
        fs_table = Table(title="Filesystems", show_header=True, header_style="bold")
        fs_table.add_column("Mount", style="cyan", no_wrap=True)
        fs_table.add_column("Free", justify="right")
        fs_table.add_column("Total", justify="right")
        for fs in s.filesystems:
            fs_table.add_row(fs.mount_point, fmt_bytes(fs.free), fmt_bytes(fs.total))
        parts.append(fs_table)

    if s.interfaces:
        net_table = Table(title="Network Interfaces", show_header=True, header_style="bold")
        net_table.add_column("Interface", style="cyan", no_wrap=True)
        net_table.add_column("Addresses")
        net_table.add_column("RX", justify="right")
        net_table.add_column("TX", justify="right")
        for intf_name in sorted(s.interfaces):
            intf = s.interfaces[intf_name]
            addresses = ", ".join(a for a in (intf.ipv4, intf.ipv6) if a)
            net_table.add_row(intf_name, addresses, fmt_bytes(intf.rx), fmt_bytes(intf.tx))
        parts.append(net_table)

    if s.errors:
        parts.append(Text("Unavailable: " + "; ".join(s.errors), style="dim"))

    return Panel(
        Group(*parts),
        title=name,
        border_style="cyan" if s.complete else "yellow",
    )
