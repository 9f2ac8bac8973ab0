import dataclasses

import pytest

from replboot import config, settings as settings_module
from replboot.errors import ConfigurationError, DependencyMissingError
from replboot.settings import BootstrapSettings, build_settings, require_commands, validate_settings


def test_defaults(monkeypatch):
    monkeypatch.setattr(config, "REPLICA_SET", "rs0")
    built = build_settings(service_name="db-cluster")
    assert built.replica_set == "rs0"
    assert built.db_port == 27017
    assert built.poll_interval == 5
    assert built.local_db_deadline == 300
    assert built.replication_deadline == 1800
    assert built.registry_deadline == 60
    assert built.reconfigure_pause == 10


def test_settings_are_immutable():
    built = build_settings(service_name="db-cluster")
    with pytest.raises(dataclasses.FrozenInstanceError):
        built.service_name = "other"


def test_missing_service_name(monkeypatch):
    monkeypatch.setattr(config, "SERVICE_NAME", "")
    with pytest.raises(ConfigurationError) as excinfo:
        build_settings()
    assert excinfo.value.exit_code == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"replica_set": "rs/0"},
        {"db_port": 0},
        {"consul_url": "consul:8500"},
    ],
)
def test_invalid_settings(overrides):
    with pytest.raises(ConfigurationError):
        validate_settings(BootstrapSettings(service_name="db-cluster", **overrides))


def test_require_commands(monkeypatch):
    monkeypatch.setattr(settings_module.shutil, "which", lambda name: None if name == "mongo" else f"/usr/bin/{name}")
    require_commands("curl")
    with pytest.raises(DependencyMissingError) as excinfo:
        require_commands("curl", "mongo")
    assert excinfo.value.exit_code == 1
