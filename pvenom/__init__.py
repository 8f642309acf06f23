"""
pvenom - inspect Proxmox VE clusters from the command line with no API keys.
"""

__version__ = "0.1.0"

from .cli import main
from .client import SessionClient
from .config import Config, ExitCode
from .inventory import InventoryQueries
from .resolver import EndpointResolver

__all__ = ["main", "Config", "ExitCode", "SessionClient", "EndpointResolver", "InventoryQueries"]
