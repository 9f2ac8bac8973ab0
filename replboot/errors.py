"""
Bootstrap error taxonomy.

Every failure carries the process exit code it maps to. Core modules only
raise these; the CLI boundary is the single place that turns one into an
exit status.
"""

from typing import Optional


class BootstrapError(Exception):
    """Base class for all bootstrap failures."""

    exit_code = 6

    def __init__(self, message: str, *, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message


class DependencyMissingError(BootstrapError):
    """A required external tool is not on PATH."""

    exit_code = 1


class ArgumentParseError(BootstrapError):
    exit_code = 2


class DiscoveryUnavailableError(BootstrapError):
    """The discovery registry could not be reached or answered with an HTTP error."""

    exit_code = 3


class StructuredParseError(BootstrapError):
    """Registry or shell output could not be parsed as structured data."""

    exit_code = 4


class ConfigurationError(BootstrapError):
    """A required setting is missing or invalid."""

    exit_code = 5


class AddressResolutionError(ConfigurationError):
    """No local address could be determined from config file or interfaces."""


class DatabaseUnreachableError(BootstrapError):
    """The administrative shell could not be launched or could not connect."""


class RoleApplicationError(BootstrapError):
    """Initiate or AddMember did not report ok."""


class NotReadyError(BootstrapError):
    """One-shot health check found the node not serving its replica-set role."""


class ProbeTimeoutError(BootstrapError):
    """A readiness condition did not succeed before its deadline."""

    def __init__(self, message: str, *, elapsed: float = 0.0, attempts: int = 0):
        super().__init__(message)
        self.elapsed = elapsed
        self.attempts = attempts


class BootstrapTimeoutError(ProbeTimeoutError):
    """The node never became ready during one of the orchestrator's wait phases."""

    def __init__(self, phase: str, deadline_seconds: float, *, elapsed: float = 0.0, attempts: int = 0):
        super().__init__(
            f"{phase} not ready after {deadline_seconds}s ({attempts} attempts)",
            elapsed=elapsed,
            attempts=attempts,
        )
        self.phase = phase
        self.deadline_seconds = deadline_seconds


class RegistryConfirmationTimeoutError(BootstrapTimeoutError):
    """The node replicates but never showed up as a passing registry member."""
