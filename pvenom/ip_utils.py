"""
Address helpers for guest-agent, container-interface and node-network
payloads.
"""

from ipaddress import ip_address, ip_interface
from typing import Any, Dict, List, Optional, Tuple

PREFERRED_IFACE_PREFIXES = ("eth", "en", "eno", "ens", "enp", "vmbr", "bond", "br0")
SKIP_IFACE_PREFIXES = ("lo", "docker", "veth", "cni", "flannel", "kube", "virbr",
                       "tailscale", "zt", "tun", "tap", "wg", "br-")


def agent_interfaces(payload: Any) -> List[Dict[str, Any]]:
    """Normalize a QEMU agent ``network-get-interfaces`` answer.

    The controller wraps the agent reply as ``{'result': [...]}``; a bare
    list is accepted as well. Anything else yields [].
    """
    if isinstance(payload, dict):
        payload = payload.get("result")
    if not isinstance(payload, list):
        return []
    interfaces = []
    for iface in payload:
        if not isinstance(iface, dict):
            continue
        addrs = [a.get("ip-address") for a in iface.get("ip-addresses") or [] if isinstance(a, dict)]
        interfaces.append({"name": str(iface.get("name") or ""), "addresses": [a for a in addrs if a]})
    return interfaces


def container_interfaces(payload: Any) -> List[Dict[str, Any]]:
    """Normalize ``/lxc/{vmid}/interfaces`` entries (``inet``/``inet6`` in CIDR form)."""
    if not isinstance(payload, list):
        return []
    interfaces = []
    for iface in payload:
        if not isinstance(iface, dict):
            continue
        addrs = []
        for key in ("inet", "inet6"):
            value = iface.get(key)
            if not value:
                continue
            try:
                addrs.append(str(ip_interface(value).ip))
            except ValueError:
                continue
        interfaces.append({"name": str(iface.get("name") or ""), "addresses": addrs})
    return interfaces


def _usable(addr: str) -> bool:
    try:
        ipa = ip_address(addr)
    except ValueError:
        return False
    return not (ipa.is_loopback or ipa.is_link_local or ipa.is_unspecified)


def _iface_priority(name: str) -> int:
    if name.startswith(SKIP_IFACE_PREFIXES):
        return 3
    if name.startswith(PREFERRED_IFACE_PREFIXES):
        return 0
    return 1 if name else 2


def ordered_addresses(interfaces: List[Dict[str, Any]]) -> List[str]:
    """Order usable addresses: primary NICs first, IPv4 before IPv6."""
    scored: List[Tuple[int, int, int, str]] = []
    seen = set()
    for position, iface in enumerate(interfaces):
        name = iface.get("name", "")
        for addr in iface.get("addresses", []):
            if addr in seen or not _usable(addr):
                continue
            seen.add(addr)
            scored.append((_iface_priority(name), ip_address(addr).version, position, addr))
    scored.sort()
    return [addr for _, _, _, addr in scored]


def primary_address(interfaces: List[Dict[str, Any]]) -> Optional[str]:
    ordered = ordered_addresses(interfaces)
    return ordered[0] if ordered else None


def node_address(network: Any) -> Optional[str]:
    """First configured, non-loopback ``address`` from ``/nodes/{node}/network``."""
    if not isinstance(network, list):
        return None
    for iface in network:
        if not isinstance(iface, dict):
            continue
        address = iface.get("address")
        if address and address != "127.0.0.1":
            return str(address)
    return None
