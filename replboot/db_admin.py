"""
Database administration through the mongo shell.

Commands are evaluated with `mongo --quiet --host <target> --eval <js>`, where
target is either `host:port` or `replicaSet/seedHost:port`. The latter lets the
shell locate the current primary of an existing replica set.

Shell output goes through shell_output.parse(). Output that cannot be parsed
comes back as AdminResult(ok=False) with `parse_error` set; only launch and
connection failures raise DatabaseUnreachableError.
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from replboot import shell_output
from replboot.errors import DatabaseUnreachableError, StructuredParseError

logger = logging.getLogger(__name__)

PRIMARY = 1
SECONDARY = 2
READY_STATES = {PRIMARY, SECONDARY}

SERVER_STATUS = "printjson(db.serverStatus())"
REPLICATION_STATUS = "printjson(rs.status())"

_CONNECTION_FAILURE = re.compile(
    r"couldn't connect to server|connect failed|Connection refused|ECONNREFUSED|MongoNetworkError",
    re.IGNORECASE,
)


def initiate_command(replica_set: str, host_port: str) -> str:
    rs_config = {"_id": replica_set, "members": [{"_id": 0, "host": host_port}]}
    return f"printjson(rs.initiate({json.dumps(rs_config)}))"


def add_member_command(host_port: str) -> str:
    return f"printjson(rs.add({json.dumps(host_port)}))"


def replica_set_target(replica_set: str, seed_host_port: str) -> str:
    return f"{replica_set}/{seed_host_port}"


def _is_ok(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return False


@dataclass
class AdminResult:
    ok: bool
    data: Dict[str, Any] = field(default_factory=dict)
    raw: str = ""
    parse_error: Optional[str] = None

    @property
    def my_state(self) -> Optional[int]:
        value = self.data.get("myState")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)

    @property
    def is_replicating(self) -> bool:
        return self.ok and self.my_state in READY_STATES

    @property
    def error_message(self) -> str:
        if self.parse_error:
            return self.parse_error
        return str(self.data.get("errmsg") or self.data.get("codeName") or "command not ok")

    def raise_for_parse_error(self):
        if self.parse_error:
            raise StructuredParseError(self.parse_error)

    @classmethod
    def from_output(cls, output: str) -> "AdminResult":
        try:
            data = shell_output.parse(output)
        except StructuredParseError as e:
            return cls(ok=False, raw=output, parse_error=str(e))
        return cls(ok=_is_ok(data.get("ok")), data=data, raw=output)


class DatabaseAdmin:
    """
    Run administrative commands against a local or remote mongod.

    Args:
        shell: mongo shell binary name or path
        timeout: Seconds a single shell invocation may take
    """

    def __init__(self, shell: str = "mongo", timeout: int = 60):
        self.shell = shell
        self.timeout = timeout

    def run_command(self, target: str, command: str) -> AdminResult:
        argv = [self.shell, "--quiet", "--host", target, "--eval", command]
        logger.debug(f"Running on {target}: {command}")

        try:
            completed = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise DatabaseUnreachableError(f"mongo shell '{self.shell}' not found") from e
        except subprocess.TimeoutExpired as e:
            raise DatabaseUnreachableError(f"mongo shell timed out after {self.timeout}s talking to {target}") from e

        output = (completed.stdout or "") + (completed.stderr or "")
        if completed.returncode != 0 and _CONNECTION_FAILURE.search(output):
            raise DatabaseUnreachableError(f"cannot connect to {target}: {output.strip()[:200]}")

        result = AdminResult.from_output(completed.stdout or output)
        if result.parse_error:
            logger.debug(f"Unparseable output from {target} (exit {completed.returncode}): {result.parse_error}")
        elif not result.ok:
            logger.debug(f"Command not ok on {target}: {result.error_message}")
        return result

    def server_status(self, target: str) -> AdminResult:
        return self.run_command(target, SERVER_STATUS)

    def replication_status(self, target: str) -> AdminResult:
        return self.run_command(target, REPLICATION_STATUS)

    def initiate(self, replica_set: str, host_port: str) -> AdminResult:
        return self.run_command(host_port, initiate_command(replica_set, host_port))

    def add_member(self, replica_set: str, seed_host_port: str, host_port: str) -> AdminResult:
        return self.run_command(replica_set_target(replica_set, seed_host_port), add_member_command(host_port))
