"""
Configuration schema for Bastion.

Every setting is a ConfigField: its key doubles as the environment variable
and the config.json key, and ``gateway_field`` names the GatewayConfig
attribute it feeds (server-only settings have none).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

TRUE_STRINGS = ("true", "1", "yes", "on")


class ConfigType(Enum):
    """How a raw value is converted."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    PATH = "path"
    LIST = "list"          # Comma-separated in env/.env, array in JSON


class ConfigCategory(Enum):
    PATHS = "paths"
    UPLOADS = "uploads"
    RATE_LIMITING = "rate_limiting"
    SEARCH = "search"
    SERVER = "server"


@dataclass(frozen=True)
class ConfigField:
    """One setting, with its conversion and sanity rules."""
    key: str
    config_type: ConfigType
    category: ConfigCategory
    default: Any
    description: str
    gateway_field: Optional[str] = None
    options: Optional[Tuple[str, ...]] = None
    required: bool = False

    @property
    def env_var(self) -> str:
        return self.key

    def convert(self, raw: Any) -> Any:
        """
        Convert a raw env/JSON value to this field's type.

        Values that cannot be converted are returned unchanged so that
        ``check`` can report them.
        """
        if raw is None or raw == "":
            return None

        try:
            if self.config_type == ConfigType.INTEGER:
                return raw if isinstance(raw, int) else int(str(raw).strip())
            if self.config_type == ConfigType.FLOAT:
                return float(raw)
            if self.config_type == ConfigType.BOOLEAN:
                return raw if isinstance(raw, bool) else str(raw).strip().lower() in TRUE_STRINGS
            if self.config_type == ConfigType.LIST:
                items = raw if isinstance(raw, (list, tuple)) else str(raw).split(",")
                return [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            return raw

        return str(raw)

    def check(self, value: Any) -> Optional[str]:
        """Describe what is wrong with a converted value, or None."""
        if value is None or value == "":
            return f"Required config missing: {self.key}" if self.required else None

        if self.config_type == ConfigType.INTEGER and (
            isinstance(value, bool) or not isinstance(value, int)
        ):
            return f"Invalid integer for {self.key}: {value}"
        if self.config_type == ConfigType.FLOAT and not isinstance(value, float):
            return f"Invalid number for {self.key}: {value}"
        if self.options and str(value).upper() not in self.options:
            return f"Invalid option for {self.key}: {value}"
        return None


def _field(key, config_type, category, default, description, **kwargs) -> ConfigField:
    return ConfigField(
        key=key,
        config_type=config_type,
        category=category,
        default=default,
        description=description,
        **kwargs,
    )


CONFIG_SCHEMA: List[ConfigField] = [
    # Paths
    _field("BASTION_ALLOWED_ROOT", ConfigType.PATH, ConfigCategory.PATHS, "~",
           "Base directory that all file operations must be within",
           gateway_field="allowed_root"),
    _field("BASTION_MAX_PATH_LENGTH", ConfigType.INTEGER, ConfigCategory.PATHS, 260,
           "Maximum length of a normalized path",
           gateway_field="max_path_length"),

    # Uploads
    _field("BASTION_MAX_FILE_SIZE", ConfigType.INTEGER, ConfigCategory.UPLOADS, 10 * 1024 * 1024,
           "Maximum upload size in bytes",
           gateway_field="max_file_size"),
    _field("BASTION_ALLOWED_EXTENSIONS", ConfigType.LIST, ConfigCategory.UPLOADS, [],
           "Upload extension whitelist; empty allows everything but dangerous types",
           gateway_field="allowed_extensions"),

    # Rate limiting
    _field("BASTION_RATE_LIMIT_WINDOW_MINUTES", ConfigType.FLOAT, ConfigCategory.RATE_LIMITING, 15,
           "Sliding window length in minutes",
           gateway_field="rate_limit_window_minutes"),
    _field("BASTION_MAX_REQUESTS_PER_WINDOW", ConfigType.INTEGER, ConfigCategory.RATE_LIMITING, 100,
           "Requests allowed per caller and operation in one window",
           gateway_field="max_requests_per_window"),

    # Search
    _field("BASTION_MAX_SEARCH_TERM_LENGTH", ConfigType.INTEGER, ConfigCategory.SEARCH, 100,
           "Maximum search term length",
           gateway_field="max_search_term_length"),
    _field("BASTION_MAX_SEARCH_DEPTH", ConfigType.INTEGER, ConfigCategory.SEARCH, 20,
           "Deepest directory level a search descends to",
           gateway_field="max_search_depth"),
    _field("BASTION_SEARCH_TIME_BUDGET_SECONDS", ConfigType.FLOAT, ConfigCategory.SEARCH, 30.0,
           "Wall-clock budget for one search walk",
           gateway_field="search_time_budget_seconds"),
    _field("BASTION_MAX_SEARCH_RESULTS", ConfigType.INTEGER, ConfigCategory.SEARCH, 10000,
           "Upper bound on results returned by one search",
           gateway_field="max_search_results"),

    # Server
    _field("BASTION_HOST", ConfigType.STRING, ConfigCategory.SERVER, "127.0.0.1",
           "Interface the HTTP server binds to"),
    _field("BASTION_PORT", ConfigType.INTEGER, ConfigCategory.SERVER, 5120,
           "Port the HTTP server listens on"),
    _field("BASTION_LOG_LEVEL", ConfigType.STRING, ConfigCategory.SERVER, "INFO",
           "Level for the bastion loggers",
           options=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")),
    _field("BASTION_CORS_ORIGINS", ConfigType.LIST, ConfigCategory.SERVER,
           ["http://localhost:3000", "http://localhost:5120"],
           "Origins allowed by CORS"),
]

_BY_KEY = {field.key: field for field in CONFIG_SCHEMA}


def get_schema_by_key(key: str) -> Optional[ConfigField]:
    return _BY_KEY.get(key)


def gateway_fields() -> List[ConfigField]:
    """Fields that feed GatewayConfig."""
    return [field for field in CONFIG_SCHEMA if field.gateway_field]
