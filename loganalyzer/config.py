"""Log Analyzer Configuration."""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Parsing
PARSE_CHUNK_SIZE = max(1, _env_int("LOGANALYZER_PARSE_CHUNK_SIZE", 1000))
EVENT_MARKER = "!!!OnEventNotify!!!"
# Internal task the framework runs after a tasker stops; never shown to users.
POST_STOP_ENTRY = os.getenv("LOGANALYZER_POST_STOP_ENTRY", "MaaTaskerPostStop")
MAX_CONTENT_BYTES = _env_int("LOGANALYZER_MAX_CONTENT_BYTES", 256 * 1024 * 1024)

# Statistics
DURATION_OUTLIER_MS = _env_int("LOGANALYZER_DURATION_OUTLIER_MS", 3_600_000)
DEFAULT_TOP_N = _env_int("LOGANALYZER_DEFAULT_TOP_N", 10)

# Observability
OTEL_ENABLED = _env_bool("LOGANALYZER_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("LOGANALYZER_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("LOGANALYZER_OTEL_SERVICE_NAME", "loganalyzer")
PROM_PORT = _env_int("LOGANALYZER_PROM_PORT", 9464)

# CORS
FRONTEND_ORIGIN = os.getenv("LOGANALYZER_FRONTEND_ORIGIN", "http://localhost:3000")
