import re
import string

import pytest

from homelabsetup.errors import ValidationError
from homelabsetup.models import HostFacts
from homelabsetup.services.configurator import InteractiveConfigurator, generate_password


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def __init__(self):
        self.lines = []

    def print(self, *args, **_kwargs):
        self.lines.append(" ".join(str(arg) for arg in args))


class ScriptedPrompt:
    """Returns queued answers per prompt text, then empty input."""

    def __init__(self, answers=None):
        self.answers = {text: list(values) for text, values in (answers or {}).items()}
        self.asked = []

    def __call__(self, text, default):
        self.asked.append((text, default))
        queue = self.answers.get(text)
        return queue.pop(0) if queue else ""


class ScriptedConfirm:
    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.asked = []

    def __call__(self, text, default):
        self.asked.append(text)
        return self.answers.get(text, default)


def _facts(tmp_path=None, **overrides):
    values = dict(
        network_interface="eth0",
        server_ip="192.168.1.10",
        username="alice",
        uid=1000,
        gid=1000,
        home=str(tmp_path) if tmp_path else "/home/alice",
        timezone="Europe/Lisbon",
        docker_version="24.0.7",
        compose_version="2.21.0",
        interfaces=("eth0", "wlan0"),
    )
    values.update(overrides)
    return HostFacts(**values)


def _configurator(prompt=None, confirm=None, console=None, **kwargs):
    return InteractiveConfigurator(
        logger=DummyLogger(),
        console=console or DummyConsole(),
        prompt=prompt or ScriptedPrompt(),
        confirm=confirm or ScriptedConfirm(),
        password_factory=kwargs.pop("password_factory", lambda: "Generated!Passw0rd"),
        **kwargs,
    )


def test_empty_input_accepts_host_defaults():
    config = _configurator().configure(_facts()).as_dict()

    assert config["SERVER_IP"] == "192.168.1.10"
    assert config["NETWORK_INTERFACE"] == "eth0"
    assert (config["PUID"], config["PGID"]) == ("1000", "1000")
    assert config["TZ"] == "Europe/Lisbon"
    assert config["GRAFANA_ADMIN_USER"] == "admin"
    assert config["GRAFANA_ADMIN_PASSWORD"] == "Generated!Passw0rd"
    assert config["PROMETHEUS_RETENTION"] == "15d"
    assert config["LOKI_RETENTION_PERIOD"] == "720h"
    assert config["NTOPNG_HTTP_PORT"] == "3001"
    assert config["MEDIA_MOVIES"] == "/path/to/movies"
    assert config["JELLYFIN_PUBLISHED_URL"] == "http://192.168.1.10:8096"
    assert config["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://otel-collector:4317"


def test_invalid_ip_is_reprompted_until_valid():
    prompt = ScriptedPrompt({"Server IP address": ["300.1.1.1", "not-an-ip", "10.0.0.5"]})

    config = _configurator(prompt=prompt).configure(_facts(server_ip=""))

    asked = [text for text, _default in prompt.asked if text == "Server IP address"]
    assert len(asked) == 3
    assert config.server_ip == "10.0.0.5"
    assert config.jellyfin_published_url == "http://10.0.0.5:8096"


def test_invalid_port_and_duration_are_reprompted():
    prompt = ScriptedPrompt(
        {
            "ntopng HTTP port": ["70000", "3005"],
            "Metrics retention period": ["two weeks", "14d"],
            "Log retention period (hours)": ["abc", "168"],
        }
    )

    config = _configurator(prompt=prompt).configure(_facts())

    assert config.ntopng_http_port == "3005"
    assert config.prometheus_retention == "14d"
    assert config.loki_retention_period == "168h"


def test_real_generated_password_satisfies_character_classes():
    config = _configurator(password_factory=generate_password).configure(_facts())
    password = config.grafana_admin_password

    assert re.match(r"^.{16,}$", password)
    assert any(c.isdigit() for c in password)
    assert any(c in "!@#%^&*" for c in password)
    assert any(c in string.ascii_uppercase for c in password)
    assert any(c in string.ascii_lowercase for c in password)


def test_generate_password_is_random():
    assert generate_password() != generate_password()
    assert len(generate_password(32)) == 32


def test_media_paths_prompt_and_create_directories(tmp_path):
    movies = tmp_path / "movies"
    existing_tv = tmp_path / "tv"
    existing_tv.mkdir()
    prompt = ScriptedPrompt(
        {
            "Path to Movies directory": [str(movies)],
            "Path to TV Shows directory": [str(existing_tv)],
            "Path to Music directory": [str(tmp_path / "music")],
            "Path to Photos directory": [str(tmp_path / "photos")],
        }
    )
    confirm_answers = iter([True, True, False, False])

    def confirm(text, default):
        if text == "Configure Jellyfin media paths?":
            return True
        return next(confirm_answers)

    config = _configurator(prompt=prompt, confirm=confirm).configure(_facts(tmp_path))

    assert config.media_movies == str(movies)
    assert movies.is_dir()
    assert config.media_tv == str(existing_tv)
    assert (tmp_path / "music").is_dir()
    assert not (tmp_path / "photos").exists()
    assert config.media_photos == str(tmp_path / "photos")


def test_media_dirs_are_reported_from_home(tmp_path):
    (tmp_path / "Videos").mkdir()
    console = DummyConsole()

    found = _configurator(console=console).report_media_dirs(str(tmp_path))

    assert str(tmp_path / "Videos") in found


def test_interfaces_are_listed_before_interface_prompt():
    console = DummyConsole()

    _configurator(console=console).configure(_facts())

    assert "  - wlan0" in console.lines


def test_answers_replace_defaults():
    answers = {
        "server_ip": "10.1.1.1",
        "puid": 1500,
        "grafana_admin_password": "FromAnswers!123",
        "loki_retention_period": "48h",
        "configure_media": False,
        "media_movies": "/srv/movies",
    }

    config = _configurator().configure(_facts(), answers)

    assert config.server_ip == "10.1.1.1"
    assert config.puid == "1500"
    assert config.grafana_admin_password == "FromAnswers!123"
    assert config.loki_retention_period == "48h"
    assert config.media_movies == "/srv/movies"


def test_non_interactive_never_prompts():
    def fail(*_args):
        raise AssertionError("prompted in non-interactive mode")

    configurator = InteractiveConfigurator(
        logger=DummyLogger(),
        console=DummyConsole(),
        prompt=fail,
        confirm=fail,
        non_interactive=True,
    )

    config = configurator.configure(_facts())

    assert config.server_ip == "192.168.1.10"


def test_non_interactive_raises_on_undetected_ip():
    configurator = _configurator(non_interactive=True)

    with pytest.raises(ValidationError, match="SERVER_IP") as exc_info:
        configurator.configure(_facts(server_ip=""))

    assert exc_info.value.key == "SERVER_IP"


def test_declining_directory_creation_keeps_value(tmp_path):
    target = tmp_path / "missing"
    configurator = _configurator(confirm=ScriptedConfirm({"Create it?": False}))

    assert configurator.ensure_directory(str(target)) is False
    assert not target.exists()
