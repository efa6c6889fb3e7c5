import logging
import os
import subprocess
from typing import Any, Callable, Dict, Optional

from rich.console import Console

from .constants import ENV_FILE_NAME
from .errors import BootstrapError, PrivilegeError, ProvisionError
from .errors_catalog import actionable_error
from .models import HostFacts, ProvisionReport, StackConfig
from .services.command_runner import CommandRunner
from .services.configurator import InteractiveConfigurator
from .services.docker_runtime import DockerRuntimeService
from .services.env_file import ConfigEmitter
from .services.environment import EnvironmentResolver
from .services.provisioner import DirectoryProvisioner

console = Console()
logger = logging.getLogger("homelabsetup")


class HomelabBootstrap:
    """Runs the Resolve -> Configure -> Emit -> Provision pipeline for one command."""

    SETUP = "setup"
    WIZARD = "wizard"
    FIX_PERMISSIONS = "fix-permissions"
    COMMANDS = (SETUP, WIZARD, FIX_PERMISSIONS)

    PRIVILEGED_COMMANDS = (SETUP, FIX_PERMISSIONS)
    CONFIGURE_COMMANDS = (SETUP, WIZARD)

    def __init__(
        self,
        command: str,
        project_dir: str = ".",
        username: Optional[str] = None,
        answers: Optional[Dict[str, Any]] = None,
        non_interactive: bool = False,
        overwrite: Optional[bool] = None,
        start_services: Optional[bool] = None,
        stop_services: Optional[bool] = None,
        docker_group: bool = True,
        prompt: Optional[Callable[[str, str], str]] = None,
        confirm: Optional[Callable[[str, bool], bool]] = None,
        chown: Callable[[str, int, int], None] = os.chown,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        if command not in self.COMMANDS:
            raise BootstrapError(f"Unknown command: {command}. Supported: {', '.join(self.COMMANDS)}")

        self.command = command
        self.project_dir = os.path.abspath(project_dir)
        self.env_file = os.path.join(self.project_dir, ENV_FILE_NAME)
        self.username = username
        self.answers = answers or {}
        self.overwrite = overwrite
        self.start_services = start_services
        self.stop_services = stop_services
        self.docker_group = docker_group
        self.geteuid = geteuid

        self.command_runner = CommandRunner(logger=logger, subprocess_module=subprocess)
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
        )
        self.environment_resolver = EnvironmentResolver(
            logger=logger,
            console=console,
            command_runner=self.command_runner,
            docker_runtime_service=self.docker_runtime_service,
        )
        self.configurator = InteractiveConfigurator(
            logger=logger,
            console=console,
            prompt=prompt,
            confirm=confirm,
            non_interactive=non_interactive,
        )
        self.config_emitter = ConfigEmitter(logger=logger, console=console)
        self.provisioner = DirectoryProvisioner(
            project_dir=self.project_dir,
            logger=logger,
            console=console,
            chown=chown,
        )

    def check_privilege(self):
        if self.command in self.PRIVILEGED_COMMANDS and self.geteuid() != 0:
            raise PrivilegeError(actionable_error("privilege_required", command=self.command))

    def resolve(self) -> HostFacts:
        facts = self.environment_resolver.resolve(self.username)
        self.docker_runtime_service.ensure_runtime(facts.docker_version, facts.compose_version)
        return facts

    def confirm_overwrite(self) -> bool:
        if self.overwrite is not None and os.path.exists(self.env_file):
            return self.overwrite
        return self.config_emitter.confirm_overwrite(
            self.env_file,
            lambda text: self.configurator.ask_confirm(text, False),
        )

    def configure(self, facts: HostFacts) -> StackConfig:
        return self.configurator.configure(facts, self.answers)

    def emit(self, config: StackConfig, facts: HostFacts):
        console.print("\n[green]==>[/green] Generating Configuration")
        self.config_emitter.backup_existing(self.env_file)
        owner = (facts.uid, facts.gid) if self.geteuid() == 0 else None
        self.config_emitter.write(config, self.env_file, owner=owner)

    def provision(self, facts: HostFacts) -> ProvisionReport:
        report = self.provisioner.provision(facts)
        report.extend(self.provisioner.provision_config_dirs(facts))

        counts = ", ".join(f"{name}: {count}" for name, count in report.summary().items() if count)
        logger.info("Provisioning finished (%s)", counts or "nothing to do")
        if report.failures:
            console.print(f"[red]✗[/red] Provisioning finished with failures ({counts})")
        else:
            console.print("[green]✓[/green] All data directories created with proper permissions")
        return report

    def _print_config_summary(self, config: StackConfig):
        values = config.as_dict()
        console.print("\n[green]==>[/green] Configuration Summary\n")
        console.print(f"Server IP:            [blue]{values['SERVER_IP']}[/blue]")
        console.print(f"Network Interface:    [blue]{values['NETWORK_INTERFACE']}[/blue]")
        console.print(f"Grafana Admin:        [blue]{values['GRAFANA_ADMIN_USER']}[/blue]")
        console.print(f"Prometheus Retention: [blue]{values['PROMETHEUS_RETENTION']}[/blue]")
        console.print(f"Loki Retention:       [blue]{values['LOKI_RETENTION_PERIOD']}[/blue]")

    def _print_next_steps(self, server_ip: Optional[str]):
        console.print("\n[green]==>[/green] Next Steps\n")
        console.print(f"1. Review the generated {ENV_FILE_NAME} file:")
        console.print(f"   [blue]nano {self.env_file}[/blue]")
        console.print("2. Start the monitoring stack:")
        console.print(f"   [blue]cd {self.project_dir} && docker compose up -d[/blue]")
        if server_ip:
            console.print("3. Access Grafana:")
            console.print(f"   [blue]http://{server_ip}:3000[/blue]")

    def _maybe_stop_services(self):
        stop = self.stop_services
        if stop is None:
            stop = self.configurator.ask_confirm(
                "Stop all services before fixing permissions? (recommended)", True
            )
        if stop:
            self.docker_runtime_service.stop_services(self.project_dir)

    def _maybe_start_services(self):
        start = self.start_services
        if start is None:
            start = self.configurator.ask_confirm("Start services now?", False)
        if start:
            self.docker_runtime_service.start_services(self.project_dir)

    def run(self) -> int:
        try:
            console.print(f"[bold blue]Homelab Monitoring Stack - {self.command}[/bold blue]")
            console.print(f"Project Directory: {self.project_dir}")
            self.check_privilege()

            facts = self.resolve()
            config: Optional[StackConfig] = None

            if self.command in self.CONFIGURE_COMMANDS:
                if not self.confirm_overwrite():
                    console.print("Exiting without changes.")
                    return 0
                config = self.configure(facts)
                self.emit(config, facts)
                self._print_config_summary(config)

            if self.command == self.SETUP and self.docker_group:
                console.print("\n[green]==>[/green] Configuring User Groups")
                self.docker_runtime_service.ensure_docker_group(facts.username)

            report: Optional[ProvisionReport] = None
            if self.command == self.FIX_PERMISSIONS:
                self._maybe_stop_services()
            if self.command in self.PRIVILEGED_COMMANDS:
                report = self.provision(facts)

            if report is not None and report.failures:
                count = len(report.failures)
                message = actionable_error(
                    "provision_failed",
                    count=count,
                    plural="y" if count == 1 else "ies",
                )
                console.print(f"[bold red]Error:[/bold red] {message}")
                logger.error(message)
                return ProvisionError.exit_code

            if self.command in self.CONFIGURE_COMMANDS:
                self._print_next_steps(config.as_dict()["SERVER_IP"] if config else None)
                self._maybe_start_services()
                console.print("[bold green]Setup complete![/bold green]")
            else:
                console.print("[bold green]✓ All permissions fixed![/bold green]")
                console.print("\n[blue]You can now start the services:[/blue]")
                console.print(f"   [blue]cd {self.project_dir} && docker compose up -d[/blue]")
            return 0

        except KeyboardInterrupt:
            console.print("\n[bold red]Operation cancelled by user.[/bold red]")
            logger.warning("Operation cancelled by user")
            return 130
        except BootstrapError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error("Bootstrap failed: %s", exc)
            return exc.exit_code
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
