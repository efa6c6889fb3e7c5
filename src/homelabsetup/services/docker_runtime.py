"""Docker runtime services for homelab-setup."""

import grp
import pwd
import re

from packaging import version

from homelabsetup.constants import DOCKER_GROUP, MIN_COMPOSE_VERSION
from homelabsetup.errors import BootstrapError, RuntimeMissing
from homelabsetup.errors_catalog import actionable_error


class DockerRuntimeService:
    """Detects the container runtime and drives `docker compose` for the stack."""

    VERSION_PATTERN = re.compile(r"v?(\d+\.\d+(?:\.\d+)?)")

    def __init__(self, logger, console, command_runner, grp_module=grp, pwd_module=pwd):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.grp = grp_module
        self.pwd = pwd_module

    def _probe_version(self, cmd) -> str:
        try:
            result = self.command_runner.run(cmd, check=False, capture_output=True)
        except BootstrapError as exc:
            self.logger.debug("Version probe failed for %s: %s", " ".join(cmd), exc)
            return ""

        if result.returncode != 0:
            return ""

        match = self.VERSION_PATTERN.search(result.stdout or "")
        return match.group(1) if match else ""

    def get_docker_version(self) -> str:
        return self._probe_version(["docker", "--version"])

    def get_compose_version(self) -> str:
        return self._probe_version(["docker", "compose", "version", "--short"])

    def ensure_runtime(self, docker_version: str, compose_version: str):
        if not docker_version:
            raise RuntimeMissing(actionable_error("docker_missing"))
        if not compose_version:
            raise RuntimeMissing(actionable_error("compose_missing"))
        if version.parse(compose_version) < version.parse(MIN_COMPOSE_VERSION):
            raise RuntimeMissing(
                actionable_error(
                    "compose_too_old",
                    version=compose_version,
                    minimum=MIN_COMPOSE_VERSION,
                )
            )

        self.console.print(f"[green]✓[/green] Docker installed: {docker_version}")
        self.console.print(f"[green]✓[/green] Docker Compose installed: {compose_version}")

    def is_in_docker_group(self, username: str) -> bool:
        try:
            group = self.grp.getgrnam(DOCKER_GROUP)
        except KeyError:
            return False

        if username in group.gr_mem:
            return True
        try:
            return self.pwd.getpwnam(username).pw_gid == group.gr_gid
        except KeyError:
            return False

    def ensure_docker_group(self, username: str) -> bool:
        """Add ``username`` to the docker group. Returns True when membership changed."""
        if self.is_in_docker_group(username):
            self.console.print(f"[green]✓[/green] User {username} is already in docker group")
            return False

        try:
            self.command_runner.run(["usermod", "-aG", DOCKER_GROUP, username], capture_output=True)
        except BootstrapError as exc:
            self.logger.warning("Could not add %s to the %s group: %s", username, DOCKER_GROUP, exc)
            self.console.print(
                f"[yellow]Warning:[/yellow] Could not add {username} to the {DOCKER_GROUP} group."
            )
            return False

        self.console.print(f"[green]✓[/green] User {username} added to docker group")
        self.console.print(
            "[yellow]⚠[/yellow]  You may need to log out and back in for group changes to take effect"
        )
        return True

    def stop_services(self, project_dir: str):
        self.console.print("[yellow]Stopping services...[/yellow]")
        self.command_runner.run(["docker", "compose", "down"], cwd=project_dir)
        self.console.print("[green]✓[/green] Services stopped")

    def start_services(self, project_dir: str):
        self.console.print("[blue]Starting services...[/blue]")
        self.command_runner.run(["docker", "compose", "pull"], cwd=project_dir)
        self.command_runner.run(["docker", "compose", "up", "-d"], cwd=project_dir)
        self.console.print("[green]✓[/green] Services started!")
        self.console.print("Check status with: [blue]docker compose ps[/blue]")
        self.console.print("View logs with:    [blue]docker compose logs -f[/blue]")
