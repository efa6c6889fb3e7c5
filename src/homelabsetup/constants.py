"""Static values shared across homelab-setup."""

ENV_FILE_NAME = ".env"
ENV_BACKUP_PREFIX = ".env.backup."
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_CONFIG_FILE = ".homelab-setup.yml"

DIR_MODE = 0o755
ENV_FILE_MODE = 0o600

DEFAULT_TIMEZONE = "UTC"
MIN_COMPOSE_VERSION = "2.0.0"
DOCKER_GROUP = "docker"

# User IDs baked into the upstream images. They change only if those images change.
GRAFANA_UID = 472
PROMETHEUS_UID = 65534
LOKI_UID = 10001
ROOT_UID = 0

PASSWORD_LENGTH = 20
PASSWORD_SYMBOLS = "!@#%^&*"

JELLYFIN_PORT = 8096
DEFAULT_OTLP_ENDPOINT = "http://otel-collector:4317"

COMMON_MEDIA_DIRS = (
    "/media",
    "/mnt/media",
    "~/Media",
    "~/Videos",
    "~/Music",
    "~/Pictures",
    "/srv/media",
    "/data/media",
)

# Emitted file layout: (section title, keys in order).
ENV_SECTIONS = (
    ("SYSTEM CONFIGURATION", ("SERVER_IP", "NETWORK_INTERFACE", "PUID", "PGID", "TZ")),
    ("GRAFANA CONFIGURATION", ("GRAFANA_ADMIN_USER", "GRAFANA_ADMIN_PASSWORD")),
    ("PROMETHEUS CONFIGURATION", ("PROMETHEUS_RETENTION",)),
    ("LOKI CONFIGURATION", ("LOKI_RETENTION_PERIOD",)),
    ("NTOPNG CONFIGURATION", ("NTOPNG_HTTP_PORT",)),
    (
        "JELLYFIN CONFIGURATION",
        ("JELLYFIN_PUBLISHED_URL", "MEDIA_MOVIES", "MEDIA_TV", "MEDIA_MUSIC", "MEDIA_PHOTOS"),
    ),
    ("OPENTELEMETRY COLLECTOR", ("OTEL_EXPORTER_OTLP_ENDPOINT",)),
)
