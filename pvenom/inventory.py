"""
Typed, read-only inventory queries built on SessionClient.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .client import API_PREFIX, SessionClient
from .errors import ControllerError, DecodeError, NotFound
from .ip_utils import agent_interfaces, container_interfaces, node_address, primary_address
from .models import Container, Guest, GuestKind, Node, VM

T = TypeVar("T")

_log = logging.getLogger(__name__)


class InventoryQueries:
    """Node and guest inventory for one authenticated client."""

    def __init__(self, client: SessionClient, logger: Optional[logging.Logger] = None, max_workers: int = 4):
        self.client = client
        self.log = logger or _log
        self.max_workers = max_workers

    def _decode(self, path: str, payload: Any, build: Callable[[Any], T]) -> T:
        try:
            return build(payload)
        except (KeyError, TypeError, ValueError) as e:
            self.log.error("Unexpected response shape from %s: %s", path, e)
            raise DecodeError(path, e) from e

    def _decode_list(self, path: str, build: Callable[[Any], T]) -> List[T]:
        payload = self.client.get_json(path)
        if not isinstance(payload, list):
            raise DecodeError(path, TypeError(f"expected a list, got {type(payload).__name__}"))
        return [self._decode(path, item, build) for item in payload]

    def version(self) -> Dict[str, Any]:
        path = f"{API_PREFIX}/version"
        return self._decode(path, self.client.get_json(path), dict)

    def list_nodes(self) -> List[Node]:
        self.log.info("Fetching cluster nodes...")
        nodes = self._decode_list(f"{API_PREFIX}/nodes", Node.from_api)
        self.log.debug("Found %d node(s)", len(nodes))
        return nodes

    def node_status(self, node: str) -> Node:
        self.log.info("Fetching status for node '%s'...", node)
        path = f"{API_PREFIX}/nodes/{node}/status"
        try:
            payload = self.client.get_json(path)
        except NotFound:
            raise
        except ControllerError as e:
            raise NotFound(e.url, e.status, e.body_snippet) from e
        return self._decode(path, payload, lambda data: Node.from_status(node, data))

    def list_vms(self, node: str) -> List[VM]:
        vms = self._decode_list(f"{API_PREFIX}/nodes/{node}/qemu", VM.from_api)
        self.log.debug("Found %d VM(s) on node '%s'", len(vms), node)
        return vms

    def list_containers(self, node: str) -> List[Container]:
        containers = self._decode_list(f"{API_PREFIX}/nodes/{node}/lxc", Container.from_api)
        self.log.debug("Found %d LXC container(s) on node '%s'", len(containers), node)
        return containers

    def list_guests(self, node: str) -> List[Guest]:
        """VMs and containers of ``node``, fetched concurrently and sorted by name."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            vms = executor.submit(self.list_vms, node)
            containers = executor.submit(self.list_containers, node)
            guests = [Guest.from_vm(vm) for vm in vms.result()]
            guests.extend(Guest.from_container(ct) for ct in containers.result())
        return sorted(guests, key=lambda g: g.name)

    def node_ip(self, node: str) -> Optional[str]:
        address = node_address(self.client.get_json(f"{API_PREFIX}/nodes/{node}/network"))
        self.log.debug("Node '%s' address: %s", node, address or "none")
        return address

    def guest_ip(self, guest: Guest, node: str) -> Optional[str]:
        """Best address reported from inside the guest, or None when unavailable.

        Guests without a running agent make the controller answer with an
        error status; that is expected and not surfaced.
        """
        if guest.kind is GuestKind.VM:
            path = f"{API_PREFIX}/nodes/{node}/qemu/{guest.vmid}/agent/network-get-interfaces"
            normalize = agent_interfaces
        else:
            path = f"{API_PREFIX}/nodes/{node}/lxc/{guest.vmid}/interfaces"
            normalize = container_interfaces
        try:
            payload = self.client.get_json(path)
        except (ControllerError, DecodeError) as e:
            self.log.debug("No address for %s %s: %s", guest.kind.label, guest.vmid, e)
            return None
        return primary_address(normalize(payload))

    def guest_ips(self, guests: Iterable[Guest], node: str) -> Dict[int, Optional[str]]:
        """Look up addresses of running guests concurrently, keyed by vmid."""
        running = [g for g in guests if g.status == "running"]
        if not running:
            return {}
        workers = min(self.max_workers, len(running))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {g.vmid: executor.submit(self.guest_ip, g, node) for g in running}
            return {vmid: fut.result() for vmid, fut in futures.items()}
