"""Eventide configuration loading and validation.

Reads an optional ``eventide.toml``, resolves ``${VAR}`` references against
the environment, and returns a validated ``EventideConfig`` dataclass.
Database connection parameters fall back to ``DATABASE_URL`` / ``POSTGRES_*``
environment variables when the file has no ``[database]`` section.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

# Matches ${VAR_NAME} references (letters, digits and underscores).
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

CONFIG_ENV_VAR = "EVENTIDE_CONFIG"
DEFAULT_CONFIG_FILE = Path("eventide.toml")
DEFAULT_PORT = 40300

SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")


class ConfigError(Exception):
    """Raised when configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from the [logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_root: str | None = None


@dataclass
class ServerConfig:
    """HTTP server configuration from the [server] section."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])


@dataclass
class DatabaseConfig:
    """Row-store connection parameters from the [database] section."""

    host: str = "localhost"
    port: int = 5432
    user: str = "eventide"
    password: str = "eventide"
    name: str = "eventide"
    ssl: str | None = None
    min_pool_size: int = 1
    max_pool_size: int = 10


@dataclass
class IdentityConfig:
    """Identity provider settings from the [identity] section.

    ``url`` is the provider base URL; session tokens are verified against
    ``{url}/auth/v1/user``. ``api_key`` is sent as the ``apikey`` header
    when set.
    """

    url: str = "http://localhost:54321"
    api_key: str | None = None
    timeout_s: float = 10.0


@dataclass
class EventideConfig:
    """Complete parsed configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    identity: IdentityConfig = field(default_factory=IdentityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings. Non-string leaves pass through.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]

    if isinstance(value, str):
        return _resolve_string(value)

    return value


def _resolve_string(s: str) -> str:
    """Replace all ``${VAR_NAME}`` occurrences in *s* with env var values.

    Collects all missing variable names and reports them in a single error.
    """
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            missing.append(var_name)
            return match.group(0)
        return env_value

    result = _ENV_VAR_PATTERN.sub(_replace, s)

    if missing:
        vars_str = ", ".join(missing)
        raise ConfigError(
            f"Unresolved environment variable(s) in config value: {vars_str} (original: {s!r})"
        )

    return result


def _as_int(section: str, key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}") from exc


def _parse_server(raw: dict[str, Any]) -> ServerConfig:
    cfg = ServerConfig()
    if "host" in raw:
        cfg.host = str(raw["host"])
    if "port" in raw:
        cfg.port = _as_int("server", "port", raw["port"])
    if "cors_origins" in raw:
        origins = raw["cors_origins"]
        if not isinstance(origins, list):
            raise ConfigError("server.cors_origins must be a list of strings")
        cfg.cors_origins = [str(o) for o in origins]
    return cfg


def _ssl_mode(value: Any, source: str) -> str | None:
    if value is None or not str(value).strip():
        return None
    mode = str(value).strip().lower()
    if mode not in SSL_MODES:
        raise ConfigError(f"{source} must be one of {', '.join(SSL_MODES)}, got {value!r}")
    return mode


def database_from_env() -> DatabaseConfig:
    """Connection settings from ``DATABASE_URL``, else ``POSTGRES_*``.

    Anything the environment leaves out keeps the ``DatabaseConfig`` default.
    """
    cfg = DatabaseConfig()
    url = os.environ.get("DATABASE_URL")
    if url:
        parsed = urlparse(url)
        cfg.host = parsed.hostname or cfg.host
        cfg.port = parsed.port or cfg.port
        cfg.user = parsed.username or cfg.user
        cfg.password = parsed.password or cfg.password
        cfg.name = parsed.path.lstrip("/") or cfg.name
        sslmode = parse_qs(parsed.query).get("sslmode", [None])[0]
        cfg.ssl = _ssl_mode(sslmode, "DATABASE_URL sslmode")
        return cfg

    cfg.host = os.environ.get("POSTGRES_HOST", cfg.host)
    if "POSTGRES_PORT" in os.environ:
        port = os.environ["POSTGRES_PORT"]
        if not port.isdigit():
            raise ConfigError(f"POSTGRES_PORT must be an integer, got {port!r}")
        cfg.port = int(port)
    cfg.user = os.environ.get("POSTGRES_USER", cfg.user)
    cfg.password = os.environ.get("POSTGRES_PASSWORD", cfg.password)
    cfg.name = os.environ.get("POSTGRES_DB", cfg.name)
    cfg.ssl = _ssl_mode(os.environ.get("POSTGRES_SSLMODE"), "POSTGRES_SSLMODE")
    return cfg


def _parse_database(raw: dict[str, Any]) -> DatabaseConfig:
    """Parse [database] on top of the environment's connection settings."""
    cfg = database_from_env()

    for key in ("host", "user", "password", "name"):
        if key in raw:
            setattr(cfg, key, str(raw[key]))
    if "ssl" in raw:
        cfg.ssl = _ssl_mode(raw["ssl"], "database.ssl")
    for key in ("port", "min_pool_size", "max_pool_size"):
        if key in raw:
            setattr(cfg, key, _as_int("database", key, raw[key]))

    if not cfg.name.strip():
        raise ConfigError("database.name must be a non-empty string")
    if cfg.min_pool_size > cfg.max_pool_size:
        raise ConfigError("database.min_pool_size must not exceed database.max_pool_size")
    return cfg


def _parse_identity(raw: dict[str, Any]) -> IdentityConfig:
    cfg = IdentityConfig(
        url=os.environ.get("EVENTIDE_IDENTITY_URL", IdentityConfig.url),
        api_key=os.environ.get("EVENTIDE_IDENTITY_API_KEY"),
    )
    if "url" in raw:
        cfg.url = str(raw["url"])
    if "api_key" in raw:
        cfg.api_key = str(raw["api_key"])
    if "timeout_s" in raw:
        try:
            cfg.timeout_s = float(raw["timeout_s"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"identity.timeout_s must be a number, got {raw['timeout_s']!r}"
            ) from exc
    cfg.url = cfg.url.rstrip("/")
    return cfg


def _parse_logging(raw: dict[str, Any]) -> LoggingConfig:
    level = str(raw.get("level", "INFO")).upper()
    log_format = str(raw.get("format", "text")).lower()
    if log_format not in ("text", "json"):
        raise ConfigError(f"logging.format must be 'text' or 'json', got {log_format!r}")
    log_root = raw.get("log_root")
    return LoggingConfig(
        level=level,
        format=log_format,
        log_root=str(log_root) if log_root is not None else None,
    )


def parse_config(data: dict[str, Any]) -> EventideConfig:
    """Build an ``EventideConfig`` from an already-parsed TOML mapping."""
    data = resolve_env_vars(data)

    sections = {}
    for name in ("server", "database", "identity", "logging"):
        section = data.get(name, {})
        if not isinstance(section, dict):
            raise ConfigError(f"[{name}] must be a table")
        sections[name] = section

    return EventideConfig(
        server=_parse_server(sections["server"]),
        database=_parse_database(sections["database"]),
        identity=_parse_identity(sections["identity"]),
        logging=_parse_logging(sections["logging"]),
    )


def load_config(path: Path | None = None) -> EventideConfig:
    """Load configuration from *path*, ``$EVENTIDE_CONFIG`` or ``./eventide.toml``.

    A missing default file is not an error: defaults and environment
    variables are used instead. An explicitly requested file that does not
    exist raises ``ConfigError``.
    """
    explicit = path is not None or CONFIG_ENV_VAR in os.environ
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return parse_config({})

    try:
        data = tomllib.loads(path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    return parse_config(data)
