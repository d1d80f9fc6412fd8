"""Tests for the command-line entry point."""

import json

import pytest

import main
from fakes import FakeResourceManager
from launcher.controller import LaunchController
from utils.errors import NoLiveMembersError
from utils.models import ApplicationState


@pytest.fixture
def artifacts(tmp_path):
    jar = tmp_path / "solr-yarn.jar"
    jar.write_bytes(b"jar")
    archive = tmp_path / "solr.tgz"
    archive.write_bytes(b"tgz")
    return str(jar), str(archive)


@pytest.fixture
def quiet_controller(monkeypatch):
    """Controller that never sleeps and whose smoke test always fails."""
    def failing_health_check(address):
        raise NoLiveMembersError(f"No live nodes found at {address}!")

    class QuietController(LaunchController):
        def __init__(self, rm, cluster_config, poll_timeout=None):
            super().__init__(rm, cluster_config, health_check=failing_health_check,
                             poll_timeout=poll_timeout, sleep=lambda s: None)

    monkeypatch.setattr(main, "LaunchController", QuietController)


def use_resource_manager(monkeypatch, rm):
    monkeypatch.setattr(main, "create_resource_manager", lambda cluster_config: rm)


def test_missing_required_option_is_usage_error(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main.main(["submit", "--solr", "solr.tgz"])
    assert exc_info.value.code != 0
    assert "usage" in capsys.readouterr().err


def test_no_command_is_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        main.main([])
    assert exc_info.value.code != 0


def test_health_check_failure_keeps_exit_code_zero(monkeypatch, artifacts, quiet_controller):
    rm = FakeResourceManager([ApplicationState.ACCEPTED, ApplicationState.RUNNING])
    use_resource_manager(monkeypatch, rm)
    jar, archive = artifacts

    assert main.main(["submit", "--jar", jar, "--solr", archive, "--zkHost", "zk1:2181", "--nodes", "3"]) == 0
    assert rm.closed
    _, spec = rm.submitted[0]
    assert "-nodes=3" in spec.command


def test_submission_failure_exits_non_zero(monkeypatch, artifacts, quiet_controller):
    rm = FakeResourceManager([ApplicationState.RUNNING], reject=True)
    use_resource_manager(monkeypatch, rm)
    jar, archive = artifacts

    assert main.main(["submit", "--jar", jar, "--solr", archive]) == 1
    assert rm.closed


def test_invalid_option_exits_non_zero(monkeypatch, artifacts, quiet_controller):
    use_resource_manager(monkeypatch, FakeResourceManager([ApplicationState.RUNNING]))
    jar, archive = artifacts
    assert main.main(["submit", "--jar", jar, "--solr", archive, "--memory", "-5"]) == 1


def test_missing_artifact_exits_non_zero(monkeypatch, artifacts, quiet_controller, tmp_path):
    rm = FakeResourceManager([ApplicationState.RUNNING])
    use_resource_manager(monkeypatch, rm)
    jar, _ = artifacts

    assert main.main(["submit", "--jar", jar, "--solr", str(tmp_path / "missing.tgz")]) == 1
    assert rm.submitted == []


def test_ping_prints_system_info(monkeypatch, capsys):
    monkeypatch.setattr(main, "verify_cluster_health", lambda address: {"zkHost": address})
    assert main.main(["ping", "--zkHost", "zk1:2181"]) == 0
    assert json.loads(capsys.readouterr().out) == {"zkHost": "zk1:2181"}


def test_ping_failure_exits_non_zero(monkeypatch):
    def no_members(address):
        raise NoLiveMembersError(f"No live nodes found at {address}!")

    monkeypatch.setattr(main, "verify_cluster_health", no_members)
    assert main.main(["ping"]) == 1
