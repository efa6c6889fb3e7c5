"""Actionable error catalog for homelab-setup."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "docker_missing": {
        "what": "Docker not found.",
        "next": "Install Docker Engine (https://docs.docker.com/engine/install/) and try again.",
    },
    "compose_missing": {
        "what": "Docker Compose v2 not found.",
        "next": "Install the `docker-compose-plugin` package so `docker compose version` works.",
    },
    "compose_too_old": {
        "what": "Docker Compose {version} is too old. Version {minimum} or newer is required.",
        "next": "Upgrade the `docker-compose-plugin` package.",
    },
    "privilege_required": {
        "what": "This command must be run with sudo.",
        "next": "Run `sudo homelab-setup {command} [username]`.",
    },
    "unknown_user": {
        "what": "User not found: {username}",
        "next": "Pass an existing account name as the USERNAME argument.",
    },
    "write_failed": {
        "what": "Could not write configuration file {path}: {reason}",
        "next": "Check that the project directory is writable, e.g. `ls -ld {directory}`.",
    },
    "backup_failed": {
        "what": "Could not back up existing configuration file {path}: {reason}",
        "next": "Move the file aside manually and run the wizard again.",
    },
    "provision_failed": {
        "what": "{count} director{plural} could not be provisioned.",
        "next": "Fix the reported paths and re-run `sudo homelab-setup fix-permissions`.",
    },
    "invalid_value": {
        "what": "Invalid value for {key}: {value!r} ({reason}).",
        "next": "Correct `{option}` in the answers file or run the wizard interactively.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
