"""
Bootstrap Orchestrator

Turns a freshly started mongod into a member of a self-forming replica set,
using the discovery registry to decide whether to found the set or join it.

State sequence:
    START -> LOCAL_ADDRESS_RESOLVED -> LOCAL_DB_UP -> ROLE_DECIDED
          -> ROLE_APPLIED -> REPLICATION_READY -> REGISTRY_CONFIRMED -> DONE
Any failure moves to FAILED and re-raises; nothing is rolled back, a
half-joined node is left for an operator to inspect.

Two nodes that query the registry before either is registered will both see
no peers and both initiate a replica set. Nothing here detects or repairs
that; stagger node startup or put a registry lock in front of this tool.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from replboot.address_resolver import AddressResolver, NodeIdentity
from replboot.db_admin import DatabaseAdmin
from replboot.discovery_client import DiscoveryClient
from replboot.errors import (
    BootstrapError,
    BootstrapTimeoutError,
    DatabaseUnreachableError,
    NotReadyError,
    ProbeTimeoutError,
    RegistryConfirmationTimeoutError,
    RoleApplicationError,
)
from replboot.readiness import ReadinessProbe
from replboot.settings import BootstrapSettings

logger = logging.getLogger(__name__)


class BootstrapState(str, Enum):
    START = "START"
    LOCAL_ADDRESS_RESOLVED = "LOCAL_ADDRESS_RESOLVED"
    LOCAL_DB_UP = "LOCAL_DB_UP"
    ROLE_DECIDED = "ROLE_DECIDED"
    ROLE_APPLIED = "ROLE_APPLIED"
    REPLICATION_READY = "REPLICATION_READY"
    REGISTRY_CONFIRMED = "REGISTRY_CONFIRMED"
    DONE = "DONE"
    FAILED = "FAILED"


class Role(str, Enum):
    FOUNDER = "FOUNDER"
    JOINER = "JOINER"


@dataclass(frozen=True)
class RoleDecision:
    role: Role
    peer: Optional[str] = None


@dataclass(frozen=True)
class BootstrapOutcome:
    identity: NodeIdentity
    decision: RoleDecision
    state: BootstrapState


class BootstrapOrchestrator:
    """
    Sequence address resolution, readiness waits and the founder/joiner action.

    Args:
        settings: Immutable run configuration
        resolver: Local address resolver
        discovery: Registry client
        admin: mongo shell wrapper
        probe: Bounded polling primitive (shared by all wait phases)
        pause: Sleep used for the fixed pause after the role is applied
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        resolver: AddressResolver,
        discovery: DiscoveryClient,
        admin: DatabaseAdmin,
        probe: ReadinessProbe,
        pause: Optional[Callable[[float], None]] = None
    ):
        self.settings = settings
        self.resolver = resolver
        self.discovery = discovery
        self.admin = admin
        self.probe = probe
        self.pause = pause or time.sleep

        self.state = BootstrapState.START
        self.failure_reason: Optional[str] = None
        self.identity: Optional[NodeIdentity] = None

    @classmethod
    def from_settings(cls, settings: BootstrapSettings) -> "BootstrapOrchestrator":
        return cls(
            settings=settings,
            resolver=AddressResolver(settings.mongod_conf, interface=settings.interface),
            discovery=DiscoveryClient(settings.consul_url, timeout=settings.http_timeout),
            admin=DatabaseAdmin(settings.mongo_shell, timeout=settings.shell_timeout),
            probe=ReadinessProbe(interval_seconds=settings.poll_interval),
        )

    def _transition(self, state: BootstrapState):
        logger.info(f"{self.state.value} -> {state.value}")
        self.state = state

    # conditions

    def _local_db_accepts_commands(self) -> bool:
        try:
            return self.admin.server_status(self.identity.host_port).ok
        except DatabaseUnreachableError as e:
            logger.debug(f"Local mongod not reachable yet: {e}")
            return False

    def _local_node_replicating(self) -> bool:
        try:
            result = self.admin.replication_status(self.identity.host_port)
        except DatabaseUnreachableError as e:
            logger.debug(f"Replication status unavailable: {e}")
            return False
        logger.debug(f"Replication status ok={result.ok} myState={result.my_state}")
        return result.is_replicating

    def _service_visible(self) -> bool:
        return bool(self.discovery.passing_entries(self.settings.service_name))

    # steps

    def resolve_identity(self) -> NodeIdentity:
        if self.identity is None:
            self.identity = NodeIdentity(address=self.resolver.resolve(), port=self.settings.db_port)
            self._transition(BootstrapState.LOCAL_ADDRESS_RESOLVED)
            logger.info(f"Local node is {self.identity.host_port}")
        return self.identity

    def wait_for_local_db(self):
        try:
            self.probe.wait_until(
                self.settings.local_db_deadline,
                self._local_db_accepts_commands,
                description="local mongod",
                interval_seconds=self.settings.local_db_poll_interval,
            )
        except ProbeTimeoutError as e:
            raise BootstrapTimeoutError(
                "local mongod", self.settings.local_db_deadline, elapsed=e.elapsed, attempts=e.attempts
            ) from e
        self._transition(BootstrapState.LOCAL_DB_UP)

    def decide_role(self) -> RoleDecision:
        peer = self.discovery.member_address(self.settings.service_name)
        if peer:
            decision = RoleDecision(role=Role.JOINER, peer=peer)
            logger.info(f"Found peer {peer} in '{self.settings.service_name}', joining replica set")
        else:
            decision = RoleDecision(role=Role.FOUNDER)
            logger.info(f"No peers in '{self.settings.service_name}', initiating replica set")
        self._transition(BootstrapState.ROLE_DECIDED)
        return decision

    def apply_role(self, decision: RoleDecision):
        replica_set = self.settings.replica_set
        if decision.role is Role.FOUNDER:
            result = self.admin.initiate(replica_set, self.identity.host_port)
            action = f"rs.initiate on {self.identity.host_port}"
        else:
            seed = f"{decision.peer}:{self.settings.db_port}"
            result = self.admin.add_member(replica_set, seed, self.identity.host_port)
            action = f"rs.add({self.identity.host_port}) via {replica_set}/{seed}"

        if not result.ok:
            raise RoleApplicationError(f"{action} failed: {result.error_message}")
        logger.info(f"{action} ok")
        self._transition(BootstrapState.ROLE_APPLIED)

    def wait_for_replication(self):
        # mongod reports the pre-reconfiguration state for a moment after initiate/add
        self.pause(self.settings.reconfigure_pause)
        try:
            self.probe.wait_until(
                self.settings.replication_deadline,
                self._local_node_replicating,
                description="replica set member state",
            )
        except ProbeTimeoutError as e:
            raise BootstrapTimeoutError(
                "replica set member state", self.settings.replication_deadline,
                elapsed=e.elapsed, attempts=e.attempts,
            ) from e
        self._transition(BootstrapState.REPLICATION_READY)

    def wait_for_registry(self):
        try:
            self.probe.wait_until(
                self.settings.registry_deadline,
                self._service_visible,
                description=f"registry service '{self.settings.service_name}'",
            )
        except ProbeTimeoutError as e:
            raise RegistryConfirmationTimeoutError(
                f"registry service '{self.settings.service_name}'", self.settings.registry_deadline,
                elapsed=e.elapsed, attempts=e.attempts,
            ) from e
        self._transition(BootstrapState.REGISTRY_CONFIRMED)

    def run(self) -> BootstrapOutcome:
        try:
            identity = self.resolve_identity()
            self.wait_for_local_db()
            decision = self.decide_role()
            self.apply_role(decision)
            self.wait_for_replication()
            self.wait_for_registry()
        except BootstrapError as e:
            self.failure_reason = e.reason
            logger.error(f"Bootstrap failed in {self.state.value}: {e}")
            self.state = BootstrapState.FAILED
            raise

        self._transition(BootstrapState.DONE)
        return BootstrapOutcome(identity=identity, decision=decision, state=self.state)

    def check(self) -> NodeIdentity:
        """
        One-shot health evaluation of the local node.

        Raises:
            NotReadyError: Server not ok, or member state is not PRIMARY/SECONDARY
            StructuredParseError: Shell output could not be parsed
            DatabaseUnreachableError: Shell could not connect
        """
        identity = self.resolve_identity()

        status = self.admin.server_status(identity.host_port)
        status.raise_for_parse_error()
        if not status.ok:
            raise NotReadyError(f"{identity.host_port} serverStatus not ok: {status.error_message}")

        replication = self.admin.replication_status(identity.host_port)
        replication.raise_for_parse_error()
        if not replication.is_replicating:
            raise NotReadyError(f"{identity.host_port} member state is {replication.my_state}, not PRIMARY/SECONDARY")

        logger.info(f"{identity.host_port} healthy (myState={replication.my_state})")
        return identity

    def close(self):
        self.discovery.close()
