"""
Replica Set Bootstrap Launcher

Runs the bootstrap state machine for the local mongod from a source checkout.

Usage:
    python scripts/run_bootstrap.py --service mongodb bootstrap
    python scripts/run_bootstrap.py --service mongodb --interface eth0 check

Environment Variables:
    REPLBOOT_SERVICE_NAME: Consul service name (required unless --service is given)
    REPLBOOT_CONSUL_URL: Consul agent URL (default: http://127.0.0.1:8500)
    REPLBOOT_DEBUG: Set to 1 for diagnostics on stderr
"""
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from replboot.cli import main


if __name__ == "__main__":
    sys.exit(main())
