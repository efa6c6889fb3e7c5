"""Answers file loader for homelab-setup."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from homelabsetup.errors import BootstrapError
from homelabsetup.models import StackConfig


class ConfigLoader:
    """Loads YAML answers that pre-seed the wizard defaults."""

    SUPPORTED_KEYS = set(StackConfig.field_names()) | {"configure_media"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise BootstrapError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise BootstrapError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise BootstrapError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(map(str, parsed.keys())) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise BootstrapError(f"Unknown configuration keys: {unknown_list}")

        return parsed
