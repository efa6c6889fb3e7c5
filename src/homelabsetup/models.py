"""Shared domain models for homelab-setup."""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .constants import DIR_MODE, ENV_SECTIONS
from .services.validation import ValidationService

ENV_KEYS: Tuple[str, ...] = tuple(key for _, keys in ENV_SECTIONS for key in keys)


@dataclass(frozen=True)
class HostFacts:
    """Host properties detected once at startup."""

    network_interface: str
    server_ip: str
    username: str
    uid: int
    gid: int
    home: str
    timezone: str
    docker_version: str = ""
    compose_version: str = ""
    interfaces: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StackConfig:
    """Validated values for the stack's environment file.

    Field names are the lowercase form of the emitted keys. Construction fails
    with ValidationError when any value is empty or malformed.
    """

    server_ip: str
    network_interface: str
    puid: str
    pgid: str
    tz: str
    grafana_admin_user: str
    grafana_admin_password: str
    prometheus_retention: str
    loki_retention_period: str
    ntopng_http_port: str
    jellyfin_published_url: str
    media_movies: str
    media_tv: str
    media_music: str
    media_photos: str
    otel_exporter_otlp_endpoint: str

    def __post_init__(self):
        ValidationService().validate_config(self.as_dict())

    @classmethod
    def field_names(cls) -> List[str]:
        return [item.name for item in fields(cls)]

    @classmethod
    def from_env(cls, values: Dict[str, str]) -> "StackConfig":
        return cls(**{key.lower(): str(values.get(key, "")) for key in ENV_KEYS})

    def as_dict(self) -> Dict[str, str]:
        raw = asdict(self)
        return {key: raw[key.lower()] for key in ENV_KEYS}

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self.as_dict().items())


class _InvokingUser:
    def __repr__(self) -> str:
        return "INVOKING_USER"


# Ownership placeholder resolved from HostFacts at provisioning time.
INVOKING_USER = _InvokingUser()

Owner = Union[int, _InvokingUser]


@dataclass(frozen=True)
class DirectorySpec:
    service: str
    relative_path: str
    uid: Owner
    gid: Owner
    purpose: str
    mode: int = DIR_MODE
    optional: bool = False

    def resolve_owner(self, facts: HostFacts) -> Tuple[int, int]:
        uid = facts.uid if self.uid is INVOKING_USER else self.uid
        gid = facts.gid if self.gid is INVOKING_USER else self.gid
        return int(uid), int(gid)


class ProvisionOutcome(str, Enum):
    CREATED = "created"
    FIXED = "already-present-fixed"
    UNCHANGED = "already-present-unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvisionResult:
    spec: DirectorySpec
    path: str
    outcome: ProvisionOutcome
    uid: Optional[int] = None
    gid: Optional[int] = None
    reason: Optional[str] = None


@dataclass
class ProvisionReport:
    """Per-directory outcomes of one provisioning pass."""

    results: List[ProvisionResult] = field(default_factory=list)

    def add(self, result: ProvisionResult):
        self.results.append(result)

    def extend(self, other: "ProvisionReport"):
        self.results.extend(other.results)

    @property
    def failures(self) -> List[ProvisionResult]:
        return [r for r in self.results if r.outcome is ProvisionOutcome.FAILED]

    @property
    def created(self) -> List[ProvisionResult]:
        return [r for r in self.results if r.outcome is ProvisionOutcome.CREATED]

    def summary(self) -> Dict[str, int]:
        counts = {outcome.value: 0 for outcome in ProvisionOutcome}
        for result in self.results:
            counts[result.outcome.value] += 1
        return counts
