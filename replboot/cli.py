"""
Command-line entry point.

    replboot --service mongodb bootstrap
    replboot --service mongodb check

Exit codes:
    0  success
    1  missing dependency or no subcommand
    2  argument parse error
    3  discovery registry unreachable
    4  structured output could not be parsed
    5  missing or invalid setting
    6  bootstrap, role application or readiness failure

Environment Variables:
    REPLBOOT_SERVICE_NAME, REPLBOOT_REPLICA_SET, REPLBOOT_INTERFACE,
    REPLBOOT_CONSUL_URL, REPLBOOT_DB_PORT, REPLBOOT_MONGOD_CONF,
    REPLBOOT_MONGO_SHELL, REPLBOOT_DEBUG
"""

import argparse
import logging
import sys
from typing import List, Optional

from replboot import config
from replboot.errors import ArgumentParseError, BootstrapError
from replboot.orchestrator import BootstrapOrchestrator
from replboot.settings import build_settings, require_commands
from shared.logging_config import setup_logging

logger = logging.getLogger(__name__)


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise ArgumentParseError(f"{self.prog}: {message}")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="replboot",
        description="Bootstrap a MongoDB replica set member using Consul service discovery",
    )
    parser.add_argument("--service", "-s", default=config.SERVICE_NAME or None,
                        help="Consul service name the replica set members register under")
    parser.add_argument("--interface", "-i", default=config.INTERFACE or None,
                        help="Network interface to take the local address from")
    parser.add_argument("--replica-set", "-r", default=config.REPLICA_SET,
                        help="Replica set name (default: %(default)s)")
    parser.add_argument("--consul-url", default=config.CONSUL_URL,
                        help="Consul agent URL (default: %(default)s)")
    parser.add_argument("--db-port", type=int, default=config.DB_PORT,
                        help="mongod port (default: %(default)s)")
    parser.add_argument("--mongod-conf", default=config.MONGOD_CONF,
                        help="mongod config file used to find the bind address (default: %(default)s)")
    parser.add_argument("--debug", action="store_true", default=config.DEBUG,
                        help="Write step-by-step diagnostics to stderr")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("bootstrap", help="Initiate or join the replica set and wait until ready")
    subparsers.add_parser("check", help="Exit 0 if the local member is PRIMARY or SECONDARY")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except ArgumentParseError as e:
        print(str(e), file=sys.stderr)
        return e.exit_code

    setup_logging("replboot", debug=args.debug)

    if not args.command:
        parser.print_usage(sys.stderr)
        return 1

    try:
        settings = build_settings(
            service_name=args.service,
            replica_set=args.replica_set,
            interface=args.interface,
            consul_url=args.consul_url,
            db_port=args.db_port,
            mongod_conf=args.mongod_conf,
            debug=args.debug,
        )
        require_commands(settings.mongo_shell)

        orchestrator = BootstrapOrchestrator.from_settings(settings)
        try:
            if args.command == "bootstrap":
                outcome = orchestrator.run()
                logger.info(f"Bootstrap complete as {outcome.decision.role.value} ({outcome.identity.host_port})")
            else:
                orchestrator.check()
        finally:
            orchestrator.close()
    except BootstrapError as e:
        logger.error(f"{type(e).__name__}: {e} (exit {e.exit_code})")
        return e.exit_code

    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
