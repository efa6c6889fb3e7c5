"""Value validation helpers for homelab-setup."""

import re
from typing import Dict, Optional
from urllib.parse import urlparse

from homelabsetup.errors import ValidationError
from homelabsetup.errors_catalog import actionable_error


class ValidationService:
    """Format checks for configuration values."""

    IPV4_PATTERN = re.compile(r"^([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})$")
    DURATION_PATTERN = re.compile(r"^[0-9]+(ms|s|m|h|d|w|y)$")
    URL_SCHEMES = {"http", "https", "grpc"}

    # key -> (checker name, failure reason)
    FIELD_RULES = {
        "SERVER_IP": ("is_ipv4", "expected a dotted-quad IPv4 address"),
        "PUID": ("is_id", "expected a non-negative integer"),
        "PGID": ("is_id", "expected a non-negative integer"),
        "PROMETHEUS_RETENTION": ("is_duration", "expected a duration such as 15d"),
        "LOKI_RETENTION_PERIOD": ("is_duration", "expected a duration such as 720h"),
        "NTOPNG_HTTP_PORT": ("is_port", "expected a port between 1 and 65535"),
        "JELLYFIN_PUBLISHED_URL": ("is_url", "expected an http(s) URL"),
        "OTEL_EXPORTER_OTLP_ENDPOINT": ("is_url", "expected an http(s) or grpc URL"),
    }

    def is_ipv4(self, value: str) -> bool:
        match = self.IPV4_PATTERN.fullmatch(value or "")
        if not match:
            return False
        return all(int(octet) <= 255 for octet in match.groups())

    def is_duration(self, value: str) -> bool:
        return bool(self.DURATION_PATTERN.fullmatch(value or ""))

    def is_id(self, value: str) -> bool:
        return (value or "").isascii() and (value or "").isdigit()

    def is_port(self, value: str) -> bool:
        if not self.is_id(value):
            return False
        return 1 <= int(value) <= 65535

    def is_url(self, value: str) -> bool:
        parsed = urlparse(value or "")
        return parsed.scheme.lower() in self.URL_SCHEMES and bool(parsed.netloc)

    def check(self, key: str, value: str) -> Optional[str]:
        """Return the failure reason for ``value``, or None when it is acceptable."""
        if value is None or not str(value).strip():
            return "value must not be empty"

        rule = self.FIELD_RULES.get(key)
        if rule is None:
            return None

        checker, reason = rule
        if not getattr(self, checker)(str(value)):
            return reason
        return None

    def validate_value(self, key: str, value: str) -> str:
        reason = self.check(key, value)
        if reason:
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
        return value

    def validate_config(self, values: Dict[str, str]):
        for key, value in values.items():
            self.validate_value(key, value)
