"""
Runtime configuration for container orchestration.

Values are layered: dataclass defaults, then a TOML file, then environment
variables.
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import toml

from chaincontainers.errors import ConfigurationError

CONFIG_PATH_ENV = "CHAINCONTAINERS_CONFIG"
DEFAULT_CONFIG_PATH = "~/.chaincontainers.toml"
ENV_PREFIX = "CHAINCONTAINERS_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class RuntimeConfig:
    startup_timeout: float = field(default=60.0)
    poll_interval: float = field(default=0.5)
    host_override: str | None = field(default=None)
    pull_images: bool = field(default=True)
    stop_timeout: int = field(default=10)

    def __post_init__(self):
        if self.startup_timeout <= 0:
            raise ConfigurationError(f"startup_timeout must be positive, got {self.startup_timeout}")
        if self.poll_interval <= 0:
            raise ConfigurationError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.stop_timeout < 0:
            raise ConfigurationError(f"stop_timeout must not be negative, got {self.stop_timeout}")

    def updated(self, values: dict[str, Any]) -> "RuntimeConfig":
        """Return a copy with ``values`` coerced and applied."""
        known = {f.name: f for f in fields(self)}
        coerced = {}
        for key, raw in values.items():
            if key not in known:
                raise ConfigurationError(f"unknown configuration key '{key}'")
            coerced[key] = _coerce(key, getattr(self, key), raw)
        return replace(self, **coerced)


def _coerce(key: str, current: Any, raw: Any) -> Any:
    if key == "host_override":
        return str(raw) if raw not in (None, "") else None
    if isinstance(current, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigurationError(f"'{key}' expects a boolean, got {raw!r}")
    try:
        return type(current)(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' expects {type(current).__name__}, got {raw!r}") from e


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(f"invalid configuration file {path}: {e}") from e
    # Either a flat file or one with a [chaincontainers] table.
    return data.get("chaincontainers", data)


def _read_env(environ: dict[str, str]) -> dict[str, str]:
    names = {f.name for f in fields(RuntimeConfig)}
    values = {}
    for name in names:
        env_name = ENV_PREFIX + name.upper()
        if env_name in environ:
            values[name] = environ[env_name]
    return values


def load_config(
    path: str | os.PathLike | None = None,
    environ: dict[str, str] | None = None,
) -> RuntimeConfig:
    """
    Load the runtime configuration.

    Args:
        path: TOML file to read. Defaults to ``$CHAINCONTAINERS_CONFIG`` or
            ``~/.chaincontainers.toml``; a missing default file is ignored.
        environ: Environment mapping, defaults to ``os.environ``

    Raises:
        ConfigurationError: On unreadable files, unknown keys or bad values
    """
    environ = dict(os.environ) if environ is None else environ
    explicit = path is not None or CONFIG_PATH_ENV in environ
    cfg_path = Path(path or environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)).expanduser()

    config = RuntimeConfig()
    if cfg_path.is_file():
        config = config.updated(_read_file(cfg_path))
    elif explicit:
        raise ConfigurationError(f"configuration file {cfg_path} does not exist")

    return config.updated(_read_env(environ))
