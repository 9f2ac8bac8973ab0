"""
Discovery Client

Reads the Consul health API to find passing members of a named service.
The bootstrap uses it twice: once to decide whether a replica set already
exists, and once at the end to confirm the node is visible in the registry.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from replboot.errors import DiscoveryUnavailableError, StructuredParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeerInfo:
    node: str
    address: str
    port: Optional[int] = None


class DiscoveryClient:
    """
    Client for the Consul service health endpoint.

    Usage:
        client = DiscoveryClient(consul_url="http://127.0.0.1:8500")

        peers = client.healthy_members("mongodb")      # excludes this host
        seed = client.member_address("mongodb")        # first peer or None
        visible = client.passing_entries("mongodb")    # includes this host
    """

    def __init__(
        self,
        consul_url: str,
        timeout: int = 10,
        hostname_fn: Optional[Callable[[], str]] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize discovery client.

        Args:
            consul_url: Consul agent base URL (e.g., 'http://127.0.0.1:8500')
            timeout: Request timeout in seconds
            hostname_fn: Returns the local node name used for self-exclusion
            session: Optional requests session (shared connection pool)
        """
        self.consul_url = consul_url.rstrip("/")
        self.timeout = timeout
        self.hostname_fn = hostname_fn or socket.gethostname
        self._session = session or requests.Session()

    def _entry_to_peer(self, entry: dict) -> Optional[PeerInfo]:
        node = entry.get("Node") or {}
        service = entry.get("Service") or {}
        node_name = node.get("Node") or ""
        # Consul leaves Service.Address empty when the service uses the node address
        address = service.get("Address") or node.get("Address") or ""
        if not address:
            logger.debug(f"Skipping registry entry without address: node={node_name!r}")
            return None
        return PeerInfo(node=node_name, address=address, port=service.get("Port"))

    def passing_entries(self, service_name: str) -> List[PeerInfo]:
        """
        Fetch every passing instance of a service, local node included.

        Raises:
            DiscoveryUnavailableError: On network errors or HTTP error status
            StructuredParseError: If the body is not a JSON array
        """
        url = f"{self.consul_url}/v1/health/service/{service_name}"

        try:
            response = self._session.get(url, params={"passing": ""}, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            logger.error(f"Registry query failed: HTTP {e.response.status_code}")
            raise DiscoveryUnavailableError(
                f"registry returned HTTP {e.response.status_code} for service '{service_name}'"
            ) from e
        except requests.RequestException as e:
            logger.error(f"Registry query failed: {e}")
            raise DiscoveryUnavailableError(f"registry at {self.consul_url} unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise StructuredParseError(f"registry returned non-JSON body: {response.text[:200]}") from e
        if not isinstance(payload, list):
            raise StructuredParseError(f"registry returned {type(payload).__name__}, expected a list")

        peers = []
        for entry in payload:
            if not isinstance(entry, dict):
                raise StructuredParseError(f"unexpected registry entry: {entry!r}")
            peer = self._entry_to_peer(entry)
            if peer is not None:
                peers.append(peer)
        logger.debug(f"Registry lists {len(peers)} passing '{service_name}' instance(s)")
        return peers

    def healthy_members(self, service_name: str) -> List[PeerInfo]:
        """Passing members of a service, excluding this host."""
        local_node = self.hostname_fn()
        return [peer for peer in self.passing_entries(service_name) if peer.node != local_node]

    def member_addresses(self, service_name: str) -> List[str]:
        return [peer.address for peer in self.healthy_members(service_name)]

    def member_address(self, service_name: str) -> Optional[str]:
        addresses = self.member_addresses(service_name)
        return addresses[0] if addresses else None

    def close(self):
        self._session.close()
