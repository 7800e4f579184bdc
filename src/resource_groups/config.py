"""Resource groups config-database connection settings.

Reads ``resource_groups.toml`` (or ``RESOURCE_GROUPS_DB_*`` environment
variables) and returns an immutable ResourceGroupsDbConfig.
"""

from __future__ import annotations

import dataclasses
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

# Matches ${VAR_NAME}: letters, digits and underscores, not starting with a digit.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_JDBC_PREFIX = "jdbc:"
_SUPPORTED_BACKENDS = frozenset({"postgresql"})
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

DEFAULT_CONFIG_FILENAME = "resource_groups.toml"

ENV_DB_URL = "RESOURCE_GROUPS_DB_URL"
ENV_DB_USER = "RESOURCE_GROUPS_DB_USER"
ENV_DB_PASSWORD = "RESOURCE_GROUPS_DB_PASSWORD"
ENV_MIGRATIONS_ENABLED = "RESOURCE_GROUPS_DB_MIGRATIONS_ENABLED"


class ConfigError(Exception):
    """Raised when resource groups configuration is missing, malformed, or invalid."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration from [resource_groups.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"


@dataclass(frozen=True)
class ResourceGroupsDbConfig:
    """Connection settings for the resource groups config database.

    ``user`` and ``password`` take precedence over credentials embedded in
    ``url``. JDBC-style URLs (``jdbc:postgresql://...``) are accepted and
    normalized to their SQLAlchemy form.
    """

    url: str
    user: str | None = None
    password: str | None = field(default=None, repr=False)
    migrations_enabled: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", _normalize_url(self.url))
        # Parse eagerly so a bad URL fails at construction, not at migration time.
        self._parsed_url()

    def with_url(self, url: str) -> ResourceGroupsDbConfig:
        return dataclasses.replace(self, url=url)

    def with_user(self, user: str | None) -> ResourceGroupsDbConfig:
        return dataclasses.replace(self, user=user)

    def with_password(self, password: str | None) -> ResourceGroupsDbConfig:
        return dataclasses.replace(self, password=password)

    def _parsed_url(self) -> URL:
        try:
            parsed = make_url(self.url)
        except ArgumentError as exc:
            raise ConfigError(f"Invalid database URL {self.url!r}: {exc}") from exc
        if parsed.get_backend_name() not in _SUPPORTED_BACKENDS:
            raise ConfigError(
                f"Unsupported database dialect {parsed.get_backend_name()!r}; "
                f"expected one of: {', '.join(sorted(_SUPPORTED_BACKENDS))}"
            )
        if not parsed.database:
            raise ConfigError(f"Database URL must name a database: {self.url!r}")
        return parsed

    def sqlalchemy_url(self) -> URL:
        """Return the connection URL with ``user``/``password`` merged in."""
        parsed = self._parsed_url()
        overrides: dict[str, Any] = {}
        if self.user is not None:
            overrides["username"] = self.user
        if self.password is not None:
            overrides["password"] = self.password
        return parsed.set(**overrides) if overrides else parsed

    def render_url(self, *, hide_password: bool = False) -> str:
        """Render the merged URL as a string suitable for ``create_engine``."""
        return self.sqlalchemy_url().render_as_string(hide_password=hide_password)

    @property
    def database_name(self) -> str:
        return self._parsed_url().database or ""


@dataclass(frozen=True)
class ResourceGroupsConfig:
    """Top-level parsed ``resource_groups.toml``."""

    db: ResourceGroupsDbConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _normalize_url(url: Any) -> str:
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("Database URL must be a non-empty string")
    normalized = url.strip()
    if normalized.lower().startswith(_JDBC_PREFIX):
        normalized = normalized[len(_JDBC_PREFIX) :]
    return normalized


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR_NAME}`` references in config values.

    Walks dicts, lists, and strings.  Non-string leaf values (int, bool,
    float, None) are returned unchanged.

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
    The original value is not echoed back since it may carry a password.
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
        raise ConfigError(f"Unresolved environment variable(s) in config value: {vars_str}")

    return result


def _parse_bool(value: Any, field_path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConfigError(f"{field_path} must be a boolean, got {value!r}")


def _optional_str(section: dict[str, Any], key: str, field_path: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{field_path} must be a string when set")
    return value


def _parse_logging(section: Any) -> LoggingConfig:
    if section is None:
        return LoggingConfig()
    if not isinstance(section, dict):
        raise ConfigError("[resource_groups.logging] must be a TOML table")
    level = section.get("level", "INFO")
    fmt = section.get("format", "text")
    if not isinstance(level, str) or not level.strip():
        raise ConfigError("resource_groups.logging.level must be a non-empty string")
    if fmt not in ("text", "json"):
        raise ConfigError(
            f"resource_groups.logging.format must be 'text' or 'json', got {fmt!r}"
        )
    return LoggingConfig(level=level.upper(), format=fmt)


def parse_config(data: dict[str, Any]) -> ResourceGroupsConfig:
    """Validate an already-parsed TOML document and build the config."""
    data = resolve_env_vars(data)

    root = data.get("resource_groups")
    if not isinstance(root, dict):
        raise ConfigError("Missing [resource_groups] section in config")

    db_section = root.get("db")
    if not isinstance(db_section, dict):
        raise ConfigError("Missing [resource_groups.db] section in config")

    url = db_section.get("url")
    if url is None:
        raise ConfigError("Missing required field: resource_groups.db.url")

    db = ResourceGroupsDbConfig(
        url=url,
        user=_optional_str(db_section, "user", "resource_groups.db.user"),
        password=_optional_str(db_section, "password", "resource_groups.db.password"),
        migrations_enabled=_parse_bool(
            db_section.get("migrations_enabled", True),
            "resource_groups.db.migrations_enabled",
        ),
    )
    return ResourceGroupsConfig(db=db, logging=_parse_logging(root.get("logging")))


def load_config(path: Path) -> ResourceGroupsConfig:
    """Load and validate a resource groups config file.

    Parameters
    ----------
    path:
        Either the TOML file itself or a directory containing
        ``resource_groups.toml``.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or lacks required fields.
    """
    toml_path = path / DEFAULT_CONFIG_FILENAME if path.is_dir() else path

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    return parse_config(data)


def config_from_env(environ: dict[str, str] | None = None) -> ResourceGroupsDbConfig:
    """Build the DB config from ``RESOURCE_GROUPS_DB_*`` environment variables."""
    env = os.environ if environ is None else environ
    url = env.get(ENV_DB_URL)
    if not url:
        raise ConfigError(f"{ENV_DB_URL} is not set")
    return ResourceGroupsDbConfig(
        url=url,
        user=env.get(ENV_DB_USER),
        password=env.get(ENV_DB_PASSWORD),
        migrations_enabled=_parse_bool(
            env.get(ENV_MIGRATIONS_ENABLED, "true"), ENV_MIGRATIONS_ENABLED
        ),
    )
