"""Host fact detection for homelab-setup."""

import os
import pwd
import socket
from typing import Optional, Tuple

import psutil

from homelabsetup.constants import DEFAULT_TIMEZONE
from homelabsetup.errors import BootstrapError, ValidationError
from homelabsetup.errors_catalog import actionable_error
from homelabsetup.models import HostFacts


class EnvironmentResolver:
    """Builds a HostFacts snapshot from the live host.

    Network and timezone detection never raise: an undetectable fact becomes an
    empty value (or UTC for the timezone) and the wizard asks the operator.
    """

    TIMEZONE_FILE = "/etc/timezone"
    LOCALTIME_LINK = "/etc/localtime"
    ZONEINFO_MARKER = "zoneinfo/"

    def __init__(
        self,
        logger,
        console,
        command_runner,
        docker_runtime_service,
        psutil_module=psutil,
        pwd_module=pwd,
        environ=None,
    ):
        self.logger = logger
        self.console = console
        self.command_runner = command_runner
        self.docker_runtime_service = docker_runtime_service
        self.psutil = psutil_module
        self.pwd = pwd_module
        self.environ = os.environ if environ is None else environ

    def resolve(self, username: Optional[str] = None) -> HostFacts:
        self.console.print("\n[green]==>[/green] Detecting System Information")

        interface = self.detect_interface()
        self.console.print(f"[green]✓[/green] Detected network interface: {interface or '<none>'}")

        server_ip = self.detect_ipv4(interface)
        self.console.print(f"[green]✓[/green] Detected IP address: {server_ip or '<none>'}")

        user_name, uid, gid, home = self.resolve_user(username)
        self.console.print(f"[green]✓[/green] Detected UID/GID: {uid}/{gid} ({user_name})")

        timezone = self.detect_timezone()
        self.console.print(f"[green]✓[/green] Detected timezone: {timezone}")

        return HostFacts(
            network_interface=interface,
            server_ip=server_ip,
            username=user_name,
            uid=uid,
            gid=gid,
            home=home,
            timezone=timezone,
            docker_version=self.docker_runtime_service.get_docker_version(),
            compose_version=self.docker_runtime_service.get_compose_version(),
            interfaces=self.list_interfaces(),
        )

    def detect_interface(self) -> str:
        try:
            result = self.command_runner.run(
                ["ip", "route", "show", "default"],
                check=False,
                capture_output=True,
            )
        except BootstrapError as exc:
            self.logger.debug("Default route detection failed: %s", exc)
            return ""

        if result.returncode != 0:
            return ""

        for line in (result.stdout or "").splitlines():
            tokens = line.split()
            if tokens[:1] == ["default"] and "dev" in tokens:
                index = tokens.index("dev") + 1
                if index < len(tokens):
                    return tokens[index]
        return ""

    def detect_ipv4(self, interface: str) -> str:
        if not interface:
            return ""

        try:
            addresses = self.psutil.net_if_addrs().get(interface, [])
        except OSError as exc:
            self.logger.debug("Interface address lookup failed: %s", exc)
            return ""

        for address in addresses:
            if address.family == socket.AF_INET and address.address:
                return address.address
        return ""

    def list_interfaces(self) -> Tuple[str, ...]:
        try:
            names = self.psutil.net_if_addrs().keys()
        except OSError as exc:
            self.logger.debug("Interface listing failed: %s", exc)
            return ()
        return tuple(sorted(name for name in names if name != "lo"))

    def resolve_user(self, username: Optional[str] = None) -> Tuple[str, int, int, str]:
        """Resolve the account that owns user-managed files.

        Precedence: explicit ``username``, then ``$SUDO_USER``, then the real UID.
        """
        name = username or self.environ.get("SUDO_USER")
        if name:
            try:
                entry = self.pwd.getpwnam(name)
            except KeyError as exc:
                raise ValidationError(actionable_error("unknown_user", username=name)) from exc
        else:
            uid = os.getuid()
            try:
                entry = self.pwd.getpwuid(uid)
            except KeyError:
                return str(uid), uid, os.getgid(), os.path.expanduser("~")

        return entry.pw_name, entry.pw_uid, entry.pw_gid, entry.pw_dir

    def detect_timezone(self) -> str:
        try:
            with open(self.TIMEZONE_FILE, "r", encoding="utf-8") as file_obj:
                value = file_obj.read().strip()
            if value:
                return value
        except OSError:
            pass

        try:
            target = os.readlink(self.LOCALTIME_LINK)
        except OSError:
            return DEFAULT_TIMEZONE

        if self.ZONEINFO_MARKER in target:
            return target.split(self.ZONEINFO_MARKER, 1)[1]
        return DEFAULT_TIMEZONE
