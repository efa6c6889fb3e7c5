"""Directory provisioning for homelab-setup."""

import errno
import os
import stat
from typing import Callable, Iterable, Optional, Sequence

from homelabsetup.constants import DIR_MODE, GRAFANA_UID, LOKI_UID, PROMETHEUS_UID, ROOT_UID
from homelabsetup.errors import ProvisionError
from homelabsetup.models import (
    INVOKING_USER,
    DirectorySpec,
    HostFacts,
    ProvisionOutcome,
    ProvisionReport,
    ProvisionResult,
)

DIRECTORY_SPECS = (
    DirectorySpec("grafana", "grafana/data", GRAFANA_UID, GRAFANA_UID, "Grafana default user"),
    DirectorySpec(
        "prometheus", "prometheus/data", PROMETHEUS_UID, PROMETHEUS_UID, "Prometheus nobody user"
    ),
    DirectorySpec("loki", "loki/data", LOKI_UID, LOKI_UID, "Loki default user"),
    DirectorySpec(
        "portainer",
        "portainer/data",
        INVOKING_USER,
        INVOKING_USER,
        "User-owned (Portainer runs as root)",
    ),
    DirectorySpec(
        "nginx-proxy-manager",
        "nginx-proxy-manager/data",
        ROOT_UID,
        ROOT_UID,
        "Root-owned (binds privileged ports)",
    ),
    DirectorySpec(
        "nginx-proxy-manager",
        "nginx-proxy-manager/letsencrypt",
        ROOT_UID,
        ROOT_UID,
        "Root-owned certificates",
    ),
    DirectorySpec("ntopng", "ntopng/data", ROOT_UID, ROOT_UID, "Root-owned (host network mode)"),
    DirectorySpec("jellyfin", "jellyfin/config", INVOKING_USER, INVOKING_USER, "Jellyfin PUID/PGID"),
    DirectorySpec("jellyfin", "jellyfin/cache", INVOKING_USER, INVOKING_USER, "Jellyfin PUID/PGID"),
    DirectorySpec(
        "otel-collector", "otel-collector/data", INVOKING_USER, INVOKING_USER, "User-owned"
    ),
    DirectorySpec(
        "nvidia-gpu-exporter",
        "nvidia-gpu-exporter/data",
        INVOKING_USER,
        INVOKING_USER,
        "User-owned",
        optional=True,
    ),
)

GRAFANA_PROVISIONING = "grafana/provisioning"


class DirectoryProvisioner:
    """Converges service directories to their declared owner and mode.

    Every pass reasserts ownership and mode, so running it again after a
    manual change restores the declared state. A failing entry is reported
    and the remaining entries are still processed.
    """

    def __init__(
        self,
        project_dir: str,
        logger,
        console,
        specs: Sequence[DirectorySpec] = DIRECTORY_SPECS,
        chown: Callable[[str, int, int], None] = os.chown,
    ):
        self.project_dir = project_dir
        self.logger = logger
        self.console = console
        self.specs = specs
        self.chown = chown

    def provision(self, facts: HostFacts) -> ProvisionReport:
        self.console.print("\n[green]==>[/green] Creating Data Directories")
        report = ProvisionReport()
        for spec in self.specs:
            report.add(self.provision_one(spec, facts))
        return report

    def provision_config_dirs(self, facts: HostFacts) -> ProvisionReport:
        """Hand every ``<service>/config`` tree and Grafana provisioning to the invoking user."""
        self.console.print("\n[green]==>[/green] Fixing Configuration Directory Permissions")
        report = ProvisionReport()
        for relative_path in self._config_dirs():
            spec = DirectorySpec(
                relative_path.split("/", 1)[0],
                relative_path,
                INVOKING_USER,
                INVOKING_USER,
                "Readable configuration",
            )
            report.add(self.provision_one(spec, facts))
        return report

    def _config_dirs(self) -> Iterable[str]:
        """Config trees not already declared in the directory table."""
        declared = {spec.relative_path for spec in self.specs}
        found = []
        try:
            entries = sorted(os.listdir(self.project_dir))
        except OSError as exc:
            self.logger.warning("Could not list %s: %s", self.project_dir, exc)
            return found

        for name in entries:
            if os.path.isdir(os.path.join(self.project_dir, name, "config")):
                found.append(f"{name}/config")
        if os.path.isdir(os.path.join(self.project_dir, GRAFANA_PROVISIONING)):
            found.append(GRAFANA_PROVISIONING)
        return [relative_path for relative_path in found if relative_path not in declared]

    def provision_one(self, spec: DirectorySpec, facts: HostFacts) -> ProvisionResult:
        path = os.path.join(self.project_dir, spec.relative_path)

        if spec.optional and not os.path.isdir(os.path.join(self.project_dir, spec.service)):
            self.logger.debug("Skipping optional %s: service directory absent", spec.relative_path)
            return ProvisionResult(spec=spec, path=path, outcome=ProvisionOutcome.SKIPPED)

        uid, gid = spec.resolve_owner(facts)
        try:
            outcome = self._converge(path, uid, gid, spec.mode)
        except OSError as exc:
            error = ProvisionError(path, exc.strerror or str(exc))
            self.logger.error(str(error))
            self.console.print(f"[red]✗[/red] {spec.relative_path}/: {error.reason}")
            return ProvisionResult(
                spec=spec,
                path=path,
                outcome=ProvisionOutcome.FAILED,
                uid=uid,
                gid=gid,
                reason=error.reason,
            )

        label = {
            ProvisionOutcome.CREATED: "[yellow]Creating:[/yellow]",
            ProvisionOutcome.FIXED: "[yellow]Fixed:[/yellow]",
            ProvisionOutcome.UNCHANGED: "[green]Exists:[/green]",
        }[outcome]
        self.console.print(
            f"{label} {spec.relative_path}/ (owner: {uid}:{gid}, mode: {spec.mode:o}) - {spec.purpose}"
        )
        self.logger.debug("%s -> %s", path, outcome.value)
        return ProvisionResult(spec=spec, path=path, outcome=outcome, uid=uid, gid=gid)

    def _converge(self, path: str, uid: int, gid: int, mode: int) -> ProvisionOutcome:
        before = self._stat(path)
        if before is None:
            os.makedirs(path, mode=DIR_MODE, exist_ok=True)
        elif not stat.S_ISDIR(before.st_mode):
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)

        owner_changed = self._apply_owner(path, uid, gid)
        mode_changed = self._apply_mode(path, mode)

        if before is None:
            return ProvisionOutcome.CREATED
        if owner_changed or mode_changed:
            return ProvisionOutcome.FIXED
        return ProvisionOutcome.UNCHANGED

    @staticmethod
    def _stat(path: str) -> Optional[os.stat_result]:
        try:
            return os.stat(path)
        except FileNotFoundError:
            return None

    @staticmethod
    def _walk_error(exc: OSError):
        raise exc

    def _apply_owner(self, root: str, uid: int, gid: int) -> bool:
        """Chown ``root`` and everything below it; True when any entry had another owner."""
        changed = False
        targets = [root]
        for current_root, dirs, files in os.walk(root, onerror=self._walk_error):
            targets.extend(os.path.join(current_root, name) for name in dirs + files)

        for target in targets:
            if target != root and os.path.islink(target):
                continue
            current = os.lstat(target)
            changed = changed or (current.st_uid, current.st_gid) != (uid, gid)
            self.chown(target, uid, gid)
        return changed

    def _apply_mode(self, root: str, mode: int) -> bool:
        changed = False
        targets = [root]
        for current_root, dirs, _files in os.walk(root, onerror=self._walk_error):
            targets.extend(os.path.join(current_root, directory) for directory in dirs)

        for target in targets:
            if target != root and os.path.islink(target):
                continue
            changed = changed or stat.S_IMODE(os.lstat(target).st_mode) != mode
            os.chmod(target, mode)
        return changed
