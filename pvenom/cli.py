#!/usr/bin/env python3
"""
pvenom entrypoint: argument parsing, session setup and command dispatch.
"""

import argparse
import logging
import sys
import traceback
from functools import partial

from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .client import SessionClient
from .commands import CLICommands, exit_code_for
from .config import Config, ExitCode
from .errors import ConfigError, PvenomError
from .inventory import InventoryQueries
from .resolver import EndpointResolver

err_console = Console(stderr=True)


def create_parser():
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog='pvenom',
        description='Proxmox VE node observability monitor (username/password login)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument('--profile', default='default', help='Configuration profile to use')
    parser.add_argument('-c', '--controller', help='Controller hostname or IP (optionally with http:// or https://)')
    parser.add_argument('-u', '--username', help='Username, e.g. root@pam')
    parser.add_argument('-p', '--password', help='Password (prefer PVENOM_PASSWORD or the config file)')
    parser.add_argument('--port', type=int, help='API port (default 8006)')
    parser.add_argument('--insecure', action='store_true', help='Disable SSL certificate verification (use with caution)')
    parser.add_argument('--no-http-fallback', action='store_true', help='Never fall back to plain HTTP')
    parser.add_argument('--output', choices=['table', 'json', 'csv'], default='table', help='Output format')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser('nodes', help='List cluster nodes')

    node_parser = subparsers.add_parser('node', help='Show node status and its guests')
    node_parser.add_argument('node', help='Node name')

    guests_parser = subparsers.add_parser('guests', help='List VMs and containers of a node')
    guests_parser.add_argument('node', help='Node name')

    return parser


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Build the logger handed to the resolver, client and queries."""
    logger = logging.getLogger('pvenom')
    logger.handlers.clear()
    logger.addHandler(RichHandler(console=err_console, show_path=False, rich_tracebacks=verbose))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False
    return logger


def connect(config: Config, logger: logging.Logger) -> SessionClient:
    """Resolve the transport and authenticate; the probe is the login itself."""
    client = SessionClient(timeout=config.timeout, ca_cert_path=config.ca_cert_path, logger=logger)
    probe = partial(_login, client, config)
    resolver = EndpointResolver(probe, port=config.port, logger=logger)
    resolver.resolve(config.host, insecure_allowed=config.allow_http)
    return client


def _login(client: SessionClient, config: Config, base_url: str):
    return client.authenticate(base_url, config.credentials(), cert_verification=config.verify_ssl)


def main(argv=None):
    """Main entry point for the CLI application."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(ExitCode.SUCCESS.value)

    logger = configure_logging(args.verbose)

    try:
        config = Config.from_env(
            args.profile,
            host=args.controller,
            user=args.username,
            password=args.password,
            port=args.port,
            verify_ssl=False if args.insecure else None,
            allow_http=False if args.no_http_fallback else None,
        )
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(ExitCode.INVALID_INPUT.value)

    if args.insecure:
        err_console.print("[yellow]⚠ Warning: SSL verification disabled via --insecure flag[/yellow]")

    command_map = {
        'nodes': 'list_nodes',
        'node': 'node_info',
        'guests': 'list_guests',
    }

    client = None
    try:
        client = connect(config, logger)
        commands = CLICommands(InventoryQueries(client, logger=logger), output_format=args.output,
                               controller=config.host)
        getattr(commands, command_map[args.command])(args)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(ExitCode.SUCCESS.value)
    except PvenomError as e:
        if args.verbose:
            err_console.print("[red]Debug trace:[/red]")
            traceback.print_exc()
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(exit_code_for(e).value)
    finally:
        if client is not None:
            client.close()


if __name__ == "__main__":
    main()
