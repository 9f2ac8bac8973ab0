import subprocess

import pytest

from replboot import db_admin
from replboot.db_admin import AdminResult, DatabaseAdmin
from replboot.errors import DatabaseUnreachableError, StructuredParseError


class FakeRun:
    def __init__(self, stdout="", stderr="", returncode=0, exc=None):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.exc = exc
        self.calls = []

    def __call__(self, argv, **kwargs):
        self.calls.append(argv)
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(argv, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def fake_run(monkeypatch):
    def install(**kwargs):
        fake = FakeRun(**kwargs)
        monkeypatch.setattr(db_admin.subprocess, "run", fake)
        return fake
    return install


def test_run_command_argv(fake_run):
    fake = fake_run(stdout='{ "ok" : 1 }')
    result = DatabaseAdmin("mongo").run_command("10.0.0.4:27017", "printjson(db.serverStatus())")
    assert result.ok
    assert fake.calls[0] == ["mongo", "--quiet", "--host", "10.0.0.4:27017", "--eval", "printjson(db.serverStatus())"]


def test_initiate_uses_local_node_as_sole_member(fake_run):
    fake = fake_run(stdout='{ "ok" : 1 }')
    assert DatabaseAdmin().initiate("rs0", "10.0.0.4:27017").ok
    argv = fake.calls[0]
    assert argv[3] == "10.0.0.4:27017"
    assert argv[5] == 'printjson(rs.initiate({"_id": "rs0", "members": [{"_id": 0, "host": "10.0.0.4:27017"}]}))'


def test_add_member_targets_replica_set_seed(fake_run):
    fake = fake_run(stdout='{ "ok" : 1 }')
    assert DatabaseAdmin().add_member("rs0", "10.0.0.5:27017", "10.0.0.4:27017").ok
    argv = fake.calls[0]
    assert argv[3] == "rs0/10.0.0.5:27017"
    assert argv[5] == 'printjson(rs.add("10.0.0.4:27017"))'


def test_replication_status_my_state(fake_run):
    fake_run(stdout='{ "set" : "rs0", "date" : ISODate("2024-05-01T10:00:00Z"), "myState" : 2, "ok" : 1 }')
    result = DatabaseAdmin().replication_status("10.0.0.4:27017")
    assert result.my_state == 2
    assert result.is_replicating


@pytest.mark.parametrize("state", [0, 3, 5, None])
def test_other_states_not_replicating(state):
    data = {"ok": 1} if state is None else {"ok": 1, "myState": state}
    assert not AdminResult(ok=True, data=data).is_replicating


def test_command_error_is_not_ok(fake_run):
    fake_run(stdout='{ "ok" : 0, "errmsg" : "already initialized", "code" : 23 }', returncode=0)
    result = DatabaseAdmin().initiate("rs0", "10.0.0.4:27017")
    assert not result.ok
    assert result.error_message == "already initialized"


def test_unparseable_output_is_soft_failure(fake_run):
    fake_run(stdout="uncaught exception: Error: something odd", returncode=252)
    result = DatabaseAdmin().server_status("10.0.0.4:27017")
    assert not result.ok
    assert result.parse_error
    with pytest.raises(StructuredParseError):
        result.raise_for_parse_error()


def test_connection_refused_raises(fake_run):
    fake_run(
        stderr="Error: couldn't connect to server 10.0.0.4:27017, connection attempt failed: "
               "SocketException: Error connecting to 10.0.0.4:27017 :: caused by :: Connection refused",
        returncode=1,
    )
    with pytest.raises(DatabaseUnreachableError):
        DatabaseAdmin().server_status("10.0.0.4:27017")


def test_missing_binary_raises(fake_run):
    fake_run(exc=FileNotFoundError("mongo"))
    with pytest.raises(DatabaseUnreachableError):
        DatabaseAdmin("mongo").server_status("10.0.0.4:27017")


def test_timeout_raises(fake_run):
    fake_run(exc=subprocess.TimeoutExpired(["mongo"], 60))
    with pytest.raises(DatabaseUnreachableError):
        DatabaseAdmin().server_status("10.0.0.4:27017")
