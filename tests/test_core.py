import os
import re

import pytest

from homelabsetup.core import BootstrapError, HomelabBootstrap
from homelabsetup.errors import WriteError
from homelabsetup.models import HostFacts

ANSWERS = {
    "grafana_admin_password": "Fixed!Passw0rd#2024",
    "tz": "Europe/Lisbon",
}


class RecordingChown:
    def __init__(self):
        self.calls = []

    def __call__(self, path, uid, gid):
        self.calls.append((path, uid, gid))


def _facts(**overrides):
    values = dict(
        network_interface="eth0",
        server_ip="192.168.1.10",
        username="alice",
        uid=1000,
        gid=1000,
        home="/home/alice",
        timezone="UTC",
        docker_version="24.0.7",
        compose_version="2.21.0",
        interfaces=("eth0",),
    )
    values.update(overrides)
    return HostFacts(**values)


def build_bootstrap(tmp_path, command="wizard", facts=None, euid=1000, **kwargs):
    kwargs.setdefault("non_interactive", True)
    kwargs.setdefault("answers", dict(ANSWERS))
    kwargs.setdefault("start_services", False)
    kwargs.setdefault("stop_services", False)
    kwargs.setdefault("docker_group", False)
    kwargs.setdefault("chown", RecordingChown())
    bootstrap = HomelabBootstrap(
        command=command,
        project_dir=str(tmp_path),
        geteuid=lambda: euid,
        **kwargs,
    )
    resolved = facts or _facts()
    bootstrap.environment_resolver.resolve = lambda username=None: resolved
    return bootstrap


def test_unknown_command_is_rejected(tmp_path):
    with pytest.raises(BootstrapError, match="Unknown command"):
        HomelabBootstrap(command="deploy", project_dir=str(tmp_path))


def test_wizard_writes_env_file(tmp_path):
    bootstrap = build_bootstrap(tmp_path)

    assert bootstrap.run() == 0

    values = bootstrap.config_emitter.read(str(tmp_path / ".env"))
    assert values["SERVER_IP"] == "192.168.1.10"
    assert values["TZ"] == "Europe/Lisbon"
    assert values["GRAFANA_ADMIN_PASSWORD"] == "Fixed!Passw0rd#2024"


def test_wizard_generates_password_when_none_given(tmp_path):
    bootstrap = build_bootstrap(tmp_path, answers={})

    assert bootstrap.run() == 0

    password = bootstrap.config_emitter.read(str(tmp_path / ".env"))["GRAFANA_ADMIN_PASSWORD"]
    assert re.match(r"^.{16,}$", password)
    assert re.search(r"[0-9]", password)
    assert re.search(r"[!@#$%^&*]", password)


def test_declining_overwrite_leaves_everything_untouched(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_bytes(b"# original\nPUID=1\n")
    bootstrap = build_bootstrap(
        tmp_path,
        non_interactive=False,
        confirm=lambda _text, _default: False,
    )

    assert bootstrap.run() == 0

    assert env_file.read_bytes() == b"# original\nPUID=1\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == [".env"]


def test_accepting_overwrite_keeps_timestamped_backup(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_bytes(b"# original\nPUID=1\n")
    bootstrap = build_bootstrap(tmp_path, overwrite=True)

    assert bootstrap.run() == 0

    backups = [p for p in tmp_path.iterdir() if p.name.startswith(".env.backup.")]
    assert len(backups) == 1
    assert re.match(r"^\.env\.backup\.\d{8}_\d{6}$", backups[0].name)
    assert backups[0].read_bytes() == b"# original\nPUID=1\n"
    assert b"PUID=1000" in env_file.read_bytes()


def test_identical_input_produces_identical_files(tmp_path):
    first_dir = tmp_path / "first"
    second_dir = tmp_path / "second"
    first_dir.mkdir()
    second_dir.mkdir()

    assert build_bootstrap(first_dir).run() == 0
    assert build_bootstrap(second_dir).run() == 0

    assert (first_dir / ".env").read_bytes() == (second_dir / ".env").read_bytes()


def test_missing_runtime_aborts_before_any_change(tmp_path):
    bootstrap = build_bootstrap(tmp_path, facts=_facts(docker_version=""))

    assert bootstrap.run() == 3
    assert list(tmp_path.iterdir()) == []


def test_setup_requires_root(tmp_path):
    bootstrap = build_bootstrap(tmp_path, command="setup", euid=1000)

    assert bootstrap.run() == 7
    assert list(tmp_path.iterdir()) == []


def test_wizard_does_not_require_root(tmp_path):
    assert build_bootstrap(tmp_path, command="wizard", euid=1000).run() == 0


def test_setup_writes_env_and_provisions_directories(tmp_path):
    chown = RecordingChown()
    bootstrap = build_bootstrap(tmp_path, command="setup", euid=0, chown=chown)
    written_owner = {}
    original_write = bootstrap.config_emitter.write

    def capture_write(config, path, owner=None):
        written_owner["owner"] = owner
        original_write(config, path)

    bootstrap.config_emitter.write = capture_write

    assert bootstrap.run() == 0

    assert (tmp_path / ".env").exists()
    assert written_owner["owner"] == (1000, 1000)
    assert (tmp_path / "grafana" / "data").is_dir()
    assert (tmp_path / "jellyfin" / "cache").is_dir()
    assert not (tmp_path / "nvidia-gpu-exporter").exists()
    assert (str(tmp_path / "grafana" / "data"), 472, 472) in chown.calls
    assert (str(tmp_path / "portainer" / "data"), 1000, 1000) in chown.calls


def test_setup_adds_user_to_docker_group_when_enabled(tmp_path):
    bootstrap = build_bootstrap(tmp_path, command="setup", euid=0, docker_group=True)
    calls = []
    bootstrap.docker_runtime_service.ensure_docker_group = calls.append

    assert bootstrap.run() == 0
    assert calls == ["alice"]


def test_fix_permissions_reports_failures_with_distinct_exit_code(tmp_path):
    (tmp_path / "grafana").write_text("not a directory", encoding="utf-8")
    bootstrap = build_bootstrap(tmp_path, command="fix-permissions", euid=0)

    assert bootstrap.run() == 6
    assert (tmp_path / "loki" / "data").is_dir()
    assert not (tmp_path / ".env").exists()


def test_fix_permissions_stops_services_first_when_requested(tmp_path):
    bootstrap = build_bootstrap(tmp_path, command="fix-permissions", euid=0, stop_services=True)
    stopped = []
    bootstrap.docker_runtime_service.stop_services = stopped.append

    assert bootstrap.run() == 0
    assert stopped == [os.path.abspath(str(tmp_path))]


def test_write_error_exit_code(tmp_path):
    bootstrap = build_bootstrap(tmp_path)

    def failing_write(*_args, **_kwargs):
        raise WriteError("Could not write configuration file")

    bootstrap.config_emitter.write = failing_write

    assert bootstrap.run() == 5


def test_keyboard_interrupt_during_wizard_writes_nothing(tmp_path):
    def interrupt(_text, _default):
        raise KeyboardInterrupt

    bootstrap = build_bootstrap(tmp_path, non_interactive=False, prompt=interrupt)

    assert bootstrap.run() == 130
    assert list(tmp_path.iterdir()) == []


def test_invalid_answer_in_non_interactive_mode(tmp_path):
    bootstrap = build_bootstrap(tmp_path, answers={"ntopng_http_port": "99999"})

    assert bootstrap.run() == 4
    assert not (tmp_path / ".env").exists()
