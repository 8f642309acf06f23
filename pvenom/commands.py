"""
CLI command handlers and output formatting.
"""

import csv
import json
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .config import ExitCode
from .errors import (
    ConfigError,
    InvalidCredentials,
    NotFound,
    PvenomError,
    RequestTimeout,
    SessionExpired,
)
from .inventory import InventoryQueries
from .models import Guest, Node

console = Console()
err_console = Console(stderr=True)

GIB = 1024 ** 3


def gb(value: Optional[int], digits: int = 2) -> str:
    return f"{value / GIB:.{digits}f}" if value is not None else "N/A"


def cpu_percent(value: Optional[float]) -> str:
    return f"{value * 100:.1f}" if value is not None else "N/A"


def uptime_str(seconds: Optional[int]) -> str:
    if not seconds:
        return "-"
    days, rest = divmod(seconds, 86400)
    return f"{days}d {rest // 3600}h"


def exit_code_for(error: Exception) -> ExitCode:
    if isinstance(error, (InvalidCredentials, SessionExpired)):
        return ExitCode.PERMISSION_DENIED
    if isinstance(error, NotFound):
        return ExitCode.NOT_FOUND
    if isinstance(error, RequestTimeout):
        return ExitCode.TIMEOUT
    if isinstance(error, ConfigError):
        return ExitCode.INVALID_INPUT
    if isinstance(error, PvenomError):
        return ExitCode.SERVER_ERROR
    return ExitCode.GENERAL_ERROR


def node_row(node: Node) -> Dict[str, Any]:
    return {
        "node": node.node,
        "status": node.status,
        "cpu_percent": cpu_percent(node.cpu),
        "cpu_cores": node.maxcpu if node.maxcpu is not None else "N/A",
        "mem_gb": gb(node.mem),
        "mem_max_gb": gb(node.maxmem),
        "disk_gb": gb(node.disk),
        "disk_max_gb": gb(node.maxdisk),
        "uptime_days": f"{node.uptime / 86400:.1f}" if node.uptime is not None else "N/A",
    }


class CLICommands:
    """Command handlers for the CLI interface."""

    def __init__(self, inventory: InventoryQueries, output_format: str = 'table', controller: str = ''):
        self.inventory = inventory
        self.output_format = output_format
        self.controller = controller

    def _print_json(self, data: Any):
        print(json.dumps(data, indent=2))

    def _print_csv(self, rows: List[Dict[str, Any]]):
        if not rows:
            return
        writer = csv.DictWriter(sys.stdout, fieldnames=list(rows[0].keys()), lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)

    def list_nodes(self, args):
        nodes = self.inventory.list_nodes()
        rows = [node_row(n) for n in nodes]

        if self.output_format == 'json':
            version = self.inventory.version()
            self._print_json({
                'root_controller': self.controller,
                'proxmox_version': version.get('version', 'unknown'),
                'nodes': rows,
            })
            return
        if self.output_format == 'csv':
            self._print_csv(rows)
            return

        if not nodes:
            console.print("[yellow]No nodes found[/yellow]")
            return

        table = Table(title="Cluster Nodes")
        table.add_column("Node", style="cyan", no_wrap=True)
        table.add_column("Status", style="yellow")
        table.add_column("CPU %", justify="right")
        table.add_column("Cores", justify="right")
        table.add_column("Memory (GB)", justify="right")
        table.add_column("Disk (GB)", justify="right")
        table.add_column("Uptime (days)", justify="right")

        for row in rows:
            color = 'green' if row['status'] == 'online' else 'red'
            table.add_row(
                row['node'],
                f"[{color}]{row['status']}[/{color}]",
                row['cpu_percent'],
                str(row['cpu_cores']),
                f"{row['mem_gb']} / {row['mem_max_gb']}",
                f"{row['disk_gb']} / {row['disk_max_gb']}",
                row['uptime_days'],
            )
        console.print(table)

    def _guest_rows(self, guests: List[Guest], ips: Dict[int, Optional[str]]) -> List[Dict[str, Any]]:
        rows = []
        for guest in guests:
            row = guest.to_dict()
            row['ip'] = ips.get(guest.vmid)
            rows.append(row)
        return rows

    def _guest_table(self, node: str, rows: List[Dict[str, Any]]) -> Table:
        table = Table(title=f"Guests on {node}")
        table.add_column("VMID", style="cyan", no_wrap=True)
        table.add_column("Name", style="magenta")
        table.add_column("Type", style="blue")
        table.add_column("Status", style="yellow")
        table.add_column("IP Address", style="bright_cyan")
        table.add_column("CPUs", justify="right")
        table.add_column("RAM (GB)", justify="right")
        table.add_column("Uptime", justify="right")

        for row in rows:
            color = {'running': 'green', 'stopped': 'red'}.get(row['status'], 'white')
            table.add_row(
                str(row['vmid']),
                row['name'],
                row['type'],
                f"[{color}]{row['status'] or '-'}[/{color}]",
                row['ip'] or "-",
                str(row['cpus']) if row['cpus'] is not None else "N/A",
                gb(row['maxmem'], 1),
                uptime_str(row['uptime']),
            )
        return table

    def list_guests(self, args):
        guests = self.inventory.list_guests(args.node)
        rows = self._guest_rows(guests, self.inventory.guest_ips(guests, args.node))

        if self.output_format == 'json':
            self._print_json(rows)
        elif self.output_format == 'csv':
            self._print_csv(rows)
        elif not rows:
            console.print(f"[yellow]No guests found on {args.node}[/yellow]")
        else:
            console.print(self._guest_table(args.node, rows))

    def node_info(self, args):
        node = self.inventory.node_status(args.node)
        ip = self.inventory.node_ip(args.node)
        guests = self.inventory.list_guests(args.node)
        rows = self._guest_rows(guests, self.inventory.guest_ips(guests, args.node))

        info = node_row(node)
        info['ipv4'] = ip or "N/A"
        info['is_root_controller'] = "yes" if self.controller in (args.node, ip) else "no"

        if self.output_format == 'json':
            info['guests'] = rows
            self._print_json(info)
            return
        if self.output_format == 'csv':
            self._print_csv([info])
            self._print_csv(rows)
            return

        console.print(f"\n[bold cyan]═══ Node {node.node} ═══[/bold cyan]\n")
        console.print(f"  Status: [green]{node.status}[/green]")
        console.print(f"  Address: {info['ipv4']}")
        console.print(f"  CPU Usage: {info['cpu_percent']}% of {info['cpu_cores']} cores")
        console.print(f"  Memory: {info['mem_gb']} GB / {info['mem_max_gb']} GB")
        console.print(f"  Root FS: {info['disk_gb']} GB / {info['disk_max_gb']} GB")
        console.print(f"  Uptime: {uptime_str(node.uptime)}")
        if info['is_root_controller'] == "yes":
            console.print("  [dim]Root controller for this session[/dim]")
        console.print()
        if rows:
            console.print(self._guest_table(node.node, rows))
        else:
            console.print("[yellow]No guests found[/yellow]")
