"""CLI interface for convoy.

This module provides read-only commands to inspect a cluster configuration:
the derived host topology and the addon catalog with config validation.
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from convoy import __version__
from convoy.addons.registry import AddonRegistry, load_addons
from convoy.cluster.config import ClusterConfig
from convoy.config import ConvoyConfig
from convoy.utils.errors import ConvoyError, InvalidConfigError

console = Console()


def setup_logging(log_level: str = "info") -> None:
    """Setup logging with Rich handler.

    Args:
        log_level: Logging level (debug, info, warning, error)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                show_time=False,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="convoy",
        description="Convoy - converge Kubernetes clusters to a declared state",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Verbose output with debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"convoy {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    hosts = subparsers.add_parser("hosts", help="Show the host topology of a cluster file")
    hosts.add_argument("cluster_file", help="Path to the cluster YAML file")

    addons = subparsers.add_parser(
        "addons", help="List addons and validate a cluster file's addon config"
    )
    addons.add_argument("cluster_file", nargs="?", help="Path to the cluster YAML file")

    return parser


def _render_errors(error: InvalidConfigError) -> None:
    console.print(f"[red]{escape(str(error))}[/red]")
    for path, messages in error.errors.items():
        for message in messages:
            console.print(f"  • [yellow]{escape(path)}[/yellow]: {escape(message)}")


def show_hosts(config: ClusterConfig) -> None:
    """Render the derived topology of ``config``."""
    masters = {id(h): i for i, h in enumerate(config.master_hosts, start=1)}
    etcd = {id(h): i for i, h in enumerate(config.etcd_hosts, start=1)}

    table = Table(title=f"Cluster {config.name or '(unnamed)'}")
    table.add_column("Address", style="cyan")
    table.add_column("Role")
    table.add_column("Region")
    table.add_column("Peer address")
    table.add_column("Runtime")
    table.add_column("Master #", justify="right")
    table.add_column("Etcd #", justify="right")

    for host in config.hosts:
        table.add_row(
            host.address,
            host.role,
            host.region or "-",
            config.etcd_peer_address(host) if id(host) in etcd else host.peer_address,
            host.container_runtime,
            str(masters.get(id(host), "")),
            str(etcd.get(id(host), "")),
        )

    console.print(table)
    if config.etcd and config.etcd.endpoints:
        console.print(f"External etcd: {', '.join(config.etcd.endpoints)}")
    console.print(f"DNS replicas: [bold]{config.dns_replicas}[/bold]")
    if config.regions:
        console.print(f"Regions: {', '.join(config.regions)}")


def show_addons(registry: AddonRegistry, config: ClusterConfig | None) -> int:
    """List registered addons and validate the config blocks of ``config``.

    Returns:
        Number of addon config violations
    """
    configs = config.addons if config else {}

    table = Table(title="Addons")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("License")
    if config:
        table.add_column("State")

    for addon_class in registry:
        info = addon_class.to_dict()
        row = [info["name"], info["version"] or "-", info["license"] or "-"]
        if config:
            block = configs.get(addon_class.name)
            row.append("enabled" if block and block.get("enabled") else "disabled")
        table.add_row(*row)
    console.print(table)

    violations = 0
    for name, result in registry.validate(configs).items():
        for message in result.messages():
            console.print(f"[red]addons.{escape(name)}[/red]: {escape(message)}")
            violations += 1

    if config and not violations:
        console.print("[green]Addon configuration is valid[/green]")
    return violations


def run(args: argparse.Namespace) -> int:
    """Execute a parsed command and return the process exit code."""
    settings = ConvoyConfig()
    settings.validate()
    setup_logging("debug" if args.verbose else settings.log_level)

    config = None
    if args.cluster_file:
        try:
            config = ClusterConfig.load_file(args.cluster_file)
        except InvalidConfigError as e:
            _render_errors(e)
            return 1

    if args.command == "hosts":
        show_hosts(config)
        return 0

    registry = load_addons(config.addon_paths if config else ())
    return 1 if show_addons(registry, config) else 0


def main() -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted[/dim]")
        sys.exit(130)
    except (ConvoyError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
