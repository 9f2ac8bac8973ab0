import os


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name, str(default))).strip()
    try:
        return int(raw)
    except Exception:
        return default


def _str_env(name: str, default: str = "") -> str:
    return str(os.getenv(name, default)).strip()


def _bool_env(name: str, default: bool = False) -> bool:
    raw = _str_env(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


CONSUL_URL = _str_env("REPLBOOT_CONSUL_URL", "http://127.0.0.1:8500")
SERVICE_NAME = _str_env("REPLBOOT_SERVICE_NAME")
REPLICA_SET = _str_env("REPLBOOT_REPLICA_SET", "rs0")
INTERFACE = _str_env("REPLBOOT_INTERFACE")
DB_PORT = _int_env("REPLBOOT_DB_PORT", 27017)
MONGOD_CONF = _str_env("REPLBOOT_MONGOD_CONF", "/etc/mongod.conf")
MONGO_SHELL = _str_env("REPLBOOT_MONGO_SHELL", "mongo")
DEBUG = _bool_env("REPLBOOT_DEBUG")
HTTP_TIMEOUT = _int_env("REPLBOOT_HTTP_TIMEOUT", 10)
SHELL_TIMEOUT = _int_env("REPLBOOT_SHELL_TIMEOUT", 60)

LOCAL_DB_DEADLINE = 300
LOCAL_DB_POLL_INTERVAL = 1
REPLICATION_DEADLINE = 1800
REGISTRY_DEADLINE = 60
POLL_INTERVAL = 5
RECONFIGURE_PAUSE = 10
