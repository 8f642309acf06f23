"""
Value records shared by the session layer and the inventory queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class TransportMode(Enum):
    """Encrypted (HTTPS, certificate checks apply) or plaintext (HTTP)."""

    ENCRYPTED = "https"
    PLAINTEXT = "http"

    @property
    def scheme(self) -> str:
        return self.value

    @classmethod
    def from_url(cls, url: str) -> "TransportMode":
        return cls.PLAINTEXT if url.lower().startswith("http://") else cls.ENCRYPTED


@dataclass(frozen=True)
class Credentials:
    controller_host: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Session:
    """Ticket and CSRF token minted by the controller for one base URL."""

    auth_ticket: str = field(repr=False)
    csrf_token: str = field(repr=False)
    base_url: str
    username: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def mode(self) -> TransportMode:
        return TransportMode.from_url(self.base_url)


def _expect_mapping(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise TypeError(f"expected an object, got {type(payload).__name__}")
    return payload


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Node:
    node: str
    status: str
    cpu: Optional[float] = None
    maxcpu: Optional[int] = None
    mem: Optional[int] = None
    maxmem: Optional[int] = None
    disk: Optional[int] = None
    maxdisk: Optional[int] = None
    uptime: Optional[int] = None
    ip: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Node":
        """Build from an entry of the ``/nodes`` listing."""
        data = _expect_mapping(payload)
        return cls(
            node=str(data["node"]),
            status=str(data["status"]),
            cpu=_opt_float(data.get("cpu")),
            maxcpu=_opt_int(data.get("maxcpu")),
            mem=_opt_int(data.get("mem")),
            maxmem=_opt_int(data.get("maxmem")),
            disk=_opt_int(data.get("disk")),
            maxdisk=_opt_int(data.get("maxdisk")),
            uptime=_opt_int(data.get("uptime")),
        )

    @classmethod
    def from_status(cls, node: str, payload: Any) -> "Node":
        """Build from ``/nodes/{node}/status``, whose figures are nested.

        The status endpoint only answers for online nodes.
        """
        data = _expect_mapping(payload)
        cpuinfo = _expect_mapping(data.get("cpuinfo") or {})
        memory = _expect_mapping(data.get("memory") or {})
        rootfs = _expect_mapping(data.get("rootfs") or {})
        return cls(
            node=node,
            status="online",
            cpu=_opt_float(data.get("cpu")),
            maxcpu=_opt_int(cpuinfo.get("cpus")),
            mem=_opt_int(memory.get("used")),
            maxmem=_opt_int(memory.get("total")),
            disk=_opt_int(rootfs.get("used")),
            maxdisk=_opt_int(rootfs.get("total")),
            uptime=_opt_int(data.get("uptime")),
        )


@dataclass(frozen=True)
class _GuestRecord:
    vmid: int
    name: str
    status: str = ""
    cpus: Optional[int] = None
    maxmem: Optional[int] = None
    maxdisk: Optional[int] = None
    uptime: Optional[int] = None
    ip: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any):
        data = _expect_mapping(payload)
        return cls(
            vmid=int(data["vmid"]),
            name=str(data["name"]),
            status=str(data.get("status") or ""),
            cpus=_opt_int(data.get("cpus")),
            maxmem=_opt_int(data.get("maxmem")),
            maxdisk=_opt_int(data.get("maxdisk")),
            uptime=_opt_int(data.get("uptime")),
        )


@dataclass(frozen=True)
class VM(_GuestRecord):
    """A QEMU virtual machine as listed by ``/nodes/{node}/qemu``."""


@dataclass(frozen=True)
class Container(_GuestRecord):
    """An LXC container as listed by ``/nodes/{node}/lxc``."""


class GuestKind(Enum):
    VM = "qemu"
    CONTAINER = "lxc"

    @property
    def label(self) -> str:
        return "VM" if self is GuestKind.VM else "LXC"


@dataclass(frozen=True)
class Guest:
    """Tagged union over VM and Container, discriminated by ``kind``."""

    kind: GuestKind
    record: Union[VM, Container]

    @classmethod
    def from_vm(cls, vm: VM) -> "Guest":
        return cls(GuestKind.VM, vm)

    @classmethod
    def from_container(cls, container: Container) -> "Guest":
        return cls(GuestKind.CONTAINER, container)

    @property
    def vmid(self) -> int:
        return self.record.vmid

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def status(self) -> str:
        return self.record.status

    @property
    def cpus(self) -> Optional[int]:
        return self.record.cpus

    @property
    def maxmem(self) -> Optional[int]:
        return self.record.maxmem

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.label,
            "vmid": self.vmid,
            "name": self.name,
            "status": self.status,
            "cpus": self.cpus,
            "maxmem": self.maxmem,
            "maxdisk": self.record.maxdisk,
            "uptime": self.record.uptime,
        }
