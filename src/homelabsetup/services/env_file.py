"""Environment file rendering and persistence for homelab-setup."""

import os
import re
import shutil
import tempfile
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from homelabsetup.constants import (
    BACKUP_TIMESTAMP_FORMAT,
    ENV_BACKUP_PREFIX,
    ENV_FILE_MODE,
    ENV_SECTIONS,
)
from homelabsetup.errors import WriteError
from homelabsetup.errors_catalog import actionable_error
from homelabsetup.models import StackConfig

HEADER = (
    "# Homelab Monitoring Stack - Environment Variables",
    "# Generated by homelab-setup. Re-run `homelab-setup wizard` to regenerate.",
)
BANNER = "# " + "=" * 44
# Characters docker compose would interpolate or treat as a comment or separator.
QUOTE_TRIGGERS = re.compile(r"[$#'\"\s\\]")


def quote_value(value: str) -> str:
    if not QUOTE_TRIGGERS.search(value):
        return value
    if "'" not in value:
        return f"'{value}'"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "$$")
    return f'"{escaped}"'


def unquote_value(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    if len(value) >= 2 and value[0] == value[-1] == '"':
        inner = value[1:-1].replace("$$", "$")
        return re.sub(r"\\(.)", r"\1", inner)
    return value


class ConfigEmitter:
    """Writes StackConfig to the key=value file read by docker compose."""

    def __init__(self, logger, console, clock: Callable[[], datetime] = datetime.now):
        self.logger = logger
        self.console = console
        self.clock = clock

    def render(self, config: StackConfig) -> str:
        values = config.as_dict()
        lines = list(HEADER)
        for title, keys in ENV_SECTIONS:
            lines.extend(["", BANNER, f"# {title}", BANNER])
            lines.extend(f"{key}={quote_value(values[key])}" for key in keys)
        return "\n".join(lines) + "\n"

    def read(self, path: str) -> Dict[str, str]:
        values: Dict[str, str] = {}
        with open(path, "r", encoding="utf-8") as file_obj:
            for line in file_obj:
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                values[key.strip()] = unquote_value(value.strip())
        return values

    def backup_path(self, path: str) -> str:
        directory = os.path.dirname(path) or "."
        stamp = self.clock().strftime(BACKUP_TIMESTAMP_FORMAT)
        candidate = os.path.join(directory, f"{ENV_BACKUP_PREFIX}{stamp}")
        counter = 1
        while os.path.exists(candidate):
            candidate = os.path.join(directory, f"{ENV_BACKUP_PREFIX}{stamp}.{counter}")
            counter += 1
        return candidate

    def confirm_overwrite(self, path: str, confirm: Callable[[str], bool]) -> bool:
        """Ask before replacing an existing file. Nothing on disk is touched here."""
        if not os.path.exists(path):
            return True

        self.console.print(f"[yellow]⚠[/yellow] Found existing {os.path.basename(path)} file")
        return bool(confirm("Do you want to overwrite it?"))

    def backup_existing(self, path: str) -> Optional[str]:
        """Copy an existing file to a timestamped backup and return the backup path."""
        if not os.path.exists(path):
            return None

        backup = self.backup_path(path)
        try:
            shutil.copy2(path, backup)
        except OSError as exc:
            raise WriteError(actionable_error("backup_failed", path=path, reason=exc)) from exc

        self.logger.info("Backed up %s to %s", path, backup)
        self.console.print(f"[green]✓[/green] Backed up existing file to {backup}")
        return backup

    def write(self, config: StackConfig, path: str, owner: Optional[Tuple[int, int]] = None):
        content = self.render(config)
        directory = os.path.dirname(os.path.abspath(path))
        temp_path = None

        try:
            fd, temp_path = tempfile.mkstemp(prefix=".env-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
            os.chmod(temp_path, ENV_FILE_MODE)
            if owner is not None:
                os.chown(temp_path, owner[0], owner[1])
            os.replace(temp_path, path)
            temp_path = None
        except OSError as exc:
            raise WriteError(
                actionable_error("write_failed", path=path, reason=exc, directory=directory)
            ) from exc
        finally:
            if temp_path and os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.logger.info("Wrote configuration to %s", path)
        self.console.print(f"[green]✓[/green] Created {os.path.basename(path)} file")
