"""Domain errors for homelab-setup."""


class BootstrapError(RuntimeError):
    """Raised when the bootstrap cannot continue safely."""

    exit_code = 1


class RuntimeMissing(BootstrapError):
    """Docker engine or the Compose v2 plugin is not installed."""

    exit_code = 3


class ValidationError(BootstrapError):
    """A configuration value does not satisfy its format."""

    exit_code = 4

    def __init__(self, message: str, key: str = ""):
        super().__init__(message)
        self.key = key


class WriteError(BootstrapError):
    """The configuration file could not be written."""

    exit_code = 5


class ProvisionError(BootstrapError):
    """A single managed directory could not be provisioned."""

    exit_code = 6

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not provision {path}: {reason}")
        self.path = path
        self.reason = reason


class PrivilegeError(BootstrapError):
    """Ownership changes require root."""

    exit_code = 7
