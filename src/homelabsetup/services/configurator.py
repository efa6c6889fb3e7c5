"""Interactive configuration wizard for homelab-setup."""

import os
import secrets
import string
from typing import Any, Callable, Dict, List, Optional

from rich.prompt import Confirm, Prompt

from homelabsetup.constants import (
    COMMON_MEDIA_DIRS,
    DEFAULT_OTLP_ENDPOINT,
    JELLYFIN_PORT,
    PASSWORD_LENGTH,
    PASSWORD_SYMBOLS,
)
from homelabsetup.errors import ValidationError
from homelabsetup.errors_catalog import actionable_error
from homelabsetup.models import HostFacts, StackConfig
from homelabsetup.services.validation import ValidationService

MEDIA_PROMPTS = (
    ("MEDIA_MOVIES", "Path to Movies directory", "/media/movies", "/path/to/movies"),
    ("MEDIA_TV", "Path to TV Shows directory", "/media/tv", "/path/to/tv"),
    ("MEDIA_MUSIC", "Path to Music directory", "/media/music", "/path/to/music"),
    ("MEDIA_PHOTOS", "Path to Photos directory", "/media/photos", "/path/to/photos"),
)


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Random password with at least one lowercase, uppercase, digit and symbol."""
    classes = [string.ascii_lowercase, string.ascii_uppercase, string.digits, PASSWORD_SYMBOLS]
    alphabet = "".join(classes)
    chars = [secrets.choice(group) for group in classes]
    chars.extend(secrets.choice(alphabet) for _ in range(max(length, len(classes)) - len(classes)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


class InteractiveConfigurator:
    """Collects StackConfig values from the operator.

    Defaults come from HostFacts, then from the answers file when one is
    given. In non-interactive mode every default is accepted as-is and an
    invalid value raises ValidationError instead of re-prompting.
    """

    def __init__(
        self,
        logger,
        console,
        validation_service: Optional[ValidationService] = None,
        prompt: Optional[Callable[[str, str], str]] = None,
        confirm: Optional[Callable[[str, bool], bool]] = None,
        password_factory: Callable[[], str] = generate_password,
        non_interactive: bool = False,
    ):
        self.logger = logger
        self.console = console
        self.validation = validation_service or ValidationService()
        self.prompt = prompt or self._rich_prompt
        self.confirm = confirm or self._rich_confirm
        self.password_factory = password_factory
        self.non_interactive = non_interactive

    def _rich_prompt(self, text: str, default: str) -> str:
        return Prompt.ask(text, default=default or None, console=self.console) or ""

    def _rich_confirm(self, text: str, default: bool) -> bool:
        return Confirm.ask(text, default=default, console=self.console)

    def ask_confirm(self, text: str, default: bool = False) -> bool:
        if self.non_interactive:
            return default
        return self.confirm(text, default)

    def configure(self, facts: HostFacts, answers: Optional[Dict[str, Any]] = None) -> StackConfig:
        answers = {key: str(value) for key, value in (answers or {}).items() if value is not None}
        values: Dict[str, str] = {}

        self._section("Network Configuration")
        values["SERVER_IP"] = self._ask(
            "SERVER_IP", "Server IP address", answers.get("server_ip", facts.server_ip)
        )
        if facts.interfaces:
            self.console.print("\nAvailable network interfaces:")
            for name in facts.interfaces:
                self.console.print(f"  - {name}")
        values["NETWORK_INTERFACE"] = self._ask(
            "NETWORK_INTERFACE",
            "Network interface for ntopng",
            answers.get("network_interface", facts.network_interface),
        )

        self._section("System Configuration")
        values["PUID"] = self._ask("PUID", "User ID (PUID)", answers.get("puid", str(facts.uid)))
        values["PGID"] = self._ask("PGID", "Group ID (PGID)", answers.get("pgid", str(facts.gid)))
        values["TZ"] = self._ask("TZ", "Timezone", answers.get("tz", facts.timezone))

        self._section("Security Configuration")
        values["GRAFANA_ADMIN_USER"] = self._ask(
            "GRAFANA_ADMIN_USER",
            "Grafana admin username",
            answers.get("grafana_admin_user", "admin"),
        )
        suggested = answers.get("grafana_admin_password") or self.password_factory()
        if "grafana_admin_password" not in answers:
            self.console.print(f"[yellow]Suggested password:[/yellow] {suggested}")
        values["GRAFANA_ADMIN_PASSWORD"] = self._ask(
            "GRAFANA_ADMIN_PASSWORD", "Grafana admin password", suggested
        )

        self._section("Prometheus Configuration")
        values["PROMETHEUS_RETENTION"] = self._ask(
            "PROMETHEUS_RETENTION",
            "Metrics retention period",
            answers.get("prometheus_retention", "15d"),
        )

        self._section("Loki Configuration")
        values["LOKI_RETENTION_PERIOD"] = self._ask(
            "LOKI_RETENTION_PERIOD",
            "Log retention period (hours)",
            answers.get("loki_retention_period", "720"),
            normalize=self._hours_to_duration,
        )

        self._section("ntopng Configuration")
        values["NTOPNG_HTTP_PORT"] = self._ask(
            "NTOPNG_HTTP_PORT", "ntopng HTTP port", answers.get("ntopng_http_port", "3001")
        )

        self._section("Jellyfin Configuration")
        configure_media = self.ask_confirm(
            "Configure Jellyfin media paths?",
            answers.get("configure_media", "false").lower() in ("1", "true", "yes", "y"),
        )
        if configure_media:
            self.report_media_dirs(facts.home)
            for key, text, default, _placeholder in MEDIA_PROMPTS:
                values[key] = self._ask(key, text, answers.get(key.lower(), default))
                self.ensure_directory(values[key])
        else:
            for key, _text, _default, placeholder in MEDIA_PROMPTS:
                values[key] = answers.get(key.lower(), placeholder)
        values["JELLYFIN_PUBLISHED_URL"] = self._ask(
            "JELLYFIN_PUBLISHED_URL",
            "Jellyfin published URL",
            answers.get(
                "jellyfin_published_url", f"http://{values['SERVER_IP']}:{JELLYFIN_PORT}"
            ),
        )

        self._section("OpenTelemetry Collector")
        values["OTEL_EXPORTER_OTLP_ENDPOINT"] = self._ask(
            "OTEL_EXPORTER_OTLP_ENDPOINT",
            "OTLP exporter endpoint",
            answers.get("otel_exporter_otlp_endpoint", DEFAULT_OTLP_ENDPOINT),
        )

        return StackConfig.from_env(values)

    def _section(self, title: str):
        self.console.print(f"\n[green]==>[/green] {title}")

    @staticmethod
    def _hours_to_duration(value: str) -> str:
        return f"{value}h" if value.isascii() and value.isdigit() else value

    def _ask(
        self,
        key: str,
        text: str,
        default: Optional[str],
        normalize: Optional[Callable[[str], str]] = None,
    ) -> str:
        default = default or ""
        while True:
            raw = "" if self.non_interactive else self.prompt(text, default)
            value = (raw or "").strip() or default
            if normalize:
                value = normalize(value)

            reason = self.validation.check(key, value)
            if reason is None:
                return value

            if self.non_interactive:
                raise ValidationError(
                    actionable_error(
                        "invalid_value",
                        key=key,
                        value=value,
                        reason=reason,
                        option=key.lower(),
                    ),
                    key=key,
                )
            self.logger.debug("Rejected %s=%r: %s", key, value, reason)
            self.console.print(f"[red]✗[/red] Invalid value: {reason}")

    def report_media_dirs(self, home: str) -> List[str]:
        self.console.print("\n[green]==>[/green] Searching for Media Directories")
        self.console.print("Checking common media locations...")
        found = []
        for location in COMMON_MEDIA_DIRS:
            path = location.replace("~", home, 1) if location.startswith("~") else location
            if os.path.isdir(path):
                self.console.print(f"[green]✓[/green] Found: {path}")
                found.append(path)
        return found

    def ensure_directory(self, path: str) -> bool:
        """Offer to create a missing directory. Declining keeps the value as typed."""
        if os.path.isdir(path):
            return True

        self.console.print(f"[yellow]⚠[/yellow] Directory does not exist: {path}")
        if not self.ask_confirm("Create it?", False):
            return False

        try:
            os.makedirs(path, exist_ok=True)
        except OSError as exc:
            self.logger.warning("Could not create %s: %s", path, exc)
            self.console.print(f"[yellow]Warning:[/yellow] Could not create {path}: {exc}")
            return False

        self.console.print(f"[green]✓[/green] Created directory: {path}")
        return True
