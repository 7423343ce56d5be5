"""
Rich rendering for PVC usage tables and performance metrics.
"""

from typing import List, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table

from usage_collector.models import UsageRecord
from monitoring.metrics import MetricsSnapshot, SOURCE_DIAGNOSTIC_POD

IEC_UNIT = 1024
IEC_PREFIXES = "KMGTPE"

USAGE_COLUMNS = ("Namespace", "PVC", "Size", "Used", "Avail", "Use%")

# Performance panel colour thresholds (warning, critical)
USED_PERCENT_WARNING, USED_PERCENT_CRITICAL = 70, 90
LOAD_WARNING, LOAD_CRITICAL = 1.0, 2.0
IOWAIT_WARNING, IOWAIT_CRITICAL = 5, 20

USAGE_BAR_WIDTH = 40
STOP_HINT = "Press Ctrl+C to stop monitoring"


def humanize_bytes(num_bytes: Optional[int]) -> str:
    """Format a byte count as an IEC size, e.g. 1.5GiB"""
    if num_bytes is None:
        return "n/a"
    if num_bytes < IEC_UNIT:
        return f"{num_bytes}B"
    div, exp = IEC_UNIT, 0
    n = num_bytes // IEC_UNIT
    while n >= IEC_UNIT and exp < len(IEC_PREFIXES) - 1:
        div *= IEC_UNIT
        exp += 1
        n //= IEC_UNIT
    return f"{num_bytes / div:.1f}{IEC_PREFIXES[exp]}iB"


def usage_style(percentage: float) -> str:
    if percentage >= 90:
        return "bold red"
    if percentage >= 75:
        return "yellow"
    return "green"


def threshold_style(value: float, warning: float, critical: float) -> str:
    if value > critical:
        return "bold red"
    if value > warning:
        return "yellow"
    return "green"


class UsageUI:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def build_usage_table(self, records: List[UsageRecord]) -> Table:
        """Builds the PVC usage table, one row per claim in the given order."""
        table = Table(title="PVC Usage", show_lines=False)
        for column in USAGE_COLUMNS:
            justify = "left" if column in ("Namespace", "PVC") else "right"
            table.add_column(column, justify=justify)

        for record in records:
            table.add_row(
                record.namespace,
                record.pvc,
                humanize_bytes(record.capacity_bytes),
                humanize_bytes(record.used_bytes),
                humanize_bytes(record.available_bytes),
                f"[{usage_style(record.percentage_used)}]{record.percentage_used:.0f}%"
            )
        return table

    def display_usage(self, records: List[UsageRecord], errors: Optional[List[str]] = None):
        """Displays the usage table and any per-node collection errors."""
        if not records:
            self.console.print("[yellow]No PVC usage data found[/yellow]")
        else:
            self.console.print(self.build_usage_table(records))
        for error in errors or []:
            self.console.print(f"[red]{error}[/red]")

    def build_metrics_panel(self, namespace: str, pvc_name: str, snapshot: MetricsSnapshot) -> Panel:
        """Builds the performance panel for one snapshot."""
        timestamp = snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S") if snapshot.timestamp else "-"

        if snapshot.source == SOURCE_DIAGNOSTIC_POD:
            source_line = "[green]diagnostic pod[/green]"
        else:
            source_line = f"[yellow]{snapshot.source} (estimated figures)[/yellow]"

        grid = Table.grid(padding=(0, 1))
        grid.add_column(style="bold white", no_wrap=True)
        grid.add_column()
        grid.add_row("Time:", timestamp)
        grid.add_row("Source:", source_line)
        grid.add_row("Mode:", "read-only" if snapshot.read_only else "read-write")

        if snapshot.has_usage:
            style = threshold_style(snapshot.used_percent, USED_PERCENT_WARNING, USED_PERCENT_CRITICAL)
            grid.add_row(
                "Usage:",
                f"{humanize_bytes(snapshot.used_bytes)} / {humanize_bytes(snapshot.capacity_bytes)} "
                f"[{style}]({snapshot.used_percent:.1f}%)[/{style}]"
            )
            grid.add_row("", ProgressBar(total=100, completed=min(snapshot.used_percent, 100),
                                         width=USAGE_BAR_WIDTH, complete_style=style))
        else:
            grid.add_row("Usage:", f"n/a / {humanize_bytes(snapshot.capacity_bytes)}")

        load_style = threshold_style(snapshot.system_load, LOAD_WARNING, LOAD_CRITICAL)
        wait_style = threshold_style(snapshot.cpu_wait_pct, IOWAIT_WARNING, IOWAIT_CRITICAL)
        grid.add_row("IOPS:", str(snapshot.iops))
        grid.add_row("Throughput:", f"{humanize_bytes(snapshot.throughput)}/s")
        grid.add_row("Latency:", f"{snapshot.latency_ms} ms")
        grid.add_row("Disk utilization:", f"{snapshot.disk_util_pct:.1f}%")
        grid.add_row("System load:", f"[{load_style}]{snapshot.system_load:.2f}[/{load_style}]")
        grid.add_row("CPU I/O wait:", f"[{wait_style}]{snapshot.cpu_wait_pct:.1f}%[/{wait_style}]")

        return Panel(
            Group(grid, "", f"[dim]{STOP_HINT}[/dim]"),
            title=f"[bold cyan]PVC PERFORMANCE: {namespace}/{pvc_name}",
            border_style="cyan",
            padding=(1, 2)
        )

    def display_metrics(self, namespace: str, pvc_name: str, snapshot: MetricsSnapshot):
        self.console.print(self.build_metrics_panel(namespace, pvc_name, snapshot))

    def display_banner(self, title: str, message: str, style: str = "cyan"):
        self.console.print(Panel(f"[bold white]{message}", title=f"[bold {style}]{title}",
                                 border_style=style, padding=(1, 2)))

    def clear(self):
        self.console.clear()
