"""
Local address resolution.

Works out which address the local mongod listens on, and therefore which
address the rest of the replica set should use for it. Sources, first hit wins:

1. `net.bindIp` in the YAML mongod.conf
2. a legacy `bind_ip = ...` line in the same file
3. the first non-loopback IPv4 address on the host (optionally one interface)
"""

import logging
import re
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil
import yaml

from replboot.errors import AddressResolutionError

logger = logging.getLogger(__name__)

WILDCARD_ADDRESSES = {"0.0.0.0", "::", "*"}

_LEGACY_BIND_IP = re.compile(r"^\s*bind_ip\s*=\s*(?P<value>[^#\s]+)")


@dataclass(frozen=True)
class NodeIdentity:
    address: str
    port: int

    @property
    def host_port(self) -> str:
        return f"{self.address}:{self.port}"


def _first_usable(raw) -> Optional[str]:
    if isinstance(raw, str):
        candidates = raw.split(",")
    elif isinstance(raw, list):
        candidates = [str(item) for item in raw if item is not None]
    else:
        return None
    for candidate in candidates:
        candidate = candidate.strip()
        if candidate and candidate not in WILDCARD_ADDRESSES:
            return candidate
    return None


class AddressResolver:
    """
    Resolve the local node's reachable address.

    Args:
        config_path: Path to mongod.conf (YAML, or legacy key=value lines)
        interface: Restrict interface scanning to this interface name
        interfaces_fn: Returns {name: [snicaddr, ...]}, psutil.net_if_addrs by default
    """

    def __init__(
        self,
        config_path: str,
        interface: Optional[str] = None,
        interfaces_fn: Optional[Callable[[], Dict[str, List]]] = None
    ):
        self.config_path = Path(config_path)
        self.interface = interface
        self.interfaces_fn = interfaces_fn or psutil.net_if_addrs

    def _read_config(self) -> Optional[str]:
        try:
            return self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No config file at {self.config_path}")
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Ignoring {self.config_path}, not valid UTF-8: {e}")
            return None
        except OSError as e:
            logger.warning(f"Cannot read {self.config_path}: {e}")
            return None

    def from_structured_config(self, text: str) -> Optional[str]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError:
            return None
        if not isinstance(data, dict):
            return None
        net = data.get("net")
        if not isinstance(net, dict):
            return None
        if net.get("bindIpAll"):
            return None
        bind_ip = net.get("bindIp")
        if bind_ip is None:
            return None
        return _first_usable(bind_ip)

    def from_legacy_config(self, text: str) -> Optional[str]:
        for line in text.splitlines():
            match = _LEGACY_BIND_IP.match(line)
            if match:
                address = _first_usable(match.group("value"))
                if address:
                    return address
        return None

    def from_interfaces(self) -> Optional[str]:
        interfaces = self.interfaces_fn()
        if self.interface:
            if self.interface not in interfaces:
                raise AddressResolutionError(f"network interface '{self.interface}' does not exist")
            interfaces = {self.interface: interfaces[self.interface]}

        for name, addrs in interfaces.items():
            for addr in addrs:
                if addr.family != socket.AF_INET:
                    continue
                if addr.address.startswith("127."):
                    continue
                logger.debug(f"Using address {addr.address} from interface {name}")
                return addr.address
        return None

    def resolve(self) -> str:
        text = self._read_config()
        if text is not None:
            address = self.from_structured_config(text)
            if address:
                logger.debug(f"Bind address from {self.config_path} net.bindIp: {address}")
                return address
            address = self.from_legacy_config(text)
            if address:
                logger.debug(f"Bind address from {self.config_path} bind_ip line: {address}")
                return address

        address = self.from_interfaces()
        if address:
            return address

        where = f"interface {self.interface}" if self.interface else "any interface"
        raise AddressResolutionError(
            f"could not determine local address from {self.config_path} or {where}"
        )
