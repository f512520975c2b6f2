"""Configuration file loader for nuresolve.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``nuresolve.toml``: settings under a ``[nuresolve]`` table
- ``pyproject.toml``: settings under a ``[tool.nuresolve]`` table

Discovery order:

1. Explicit path from ``--config`` or ``NURESOLVE_CONFIG``
2. ``nuresolve.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.nuresolve]`` section

Service index precedence: ``--source`` options > ``nuget.config`` next to
the definition file > config file > built-in default.

Example (``nuresolve.toml``)::

    [nuresolve]
    service_index_urls = ["https://api.nuget.org/v3/index.json"]
    cache_max_age_days = 7
    cache_dir = ".nuresolve-cache"
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from nuresolve.exceptions import ConfigError
from nuresolve.utils.logger import get_logger
from nuresolve.constants import (
    DEFAULT_CACHE_MAX_AGE_DAYS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_SERVICE_INDEX_URL,
    DEFAULT_TIMEOUT,
    NEAREST_FRAMEWORK_URL,
)

logger = get_logger("config")

_SECTION_NAME = "nuresolve"


@dataclass
class NuResolveConfig:
    """Parsed and validated nuresolve configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        service_index_urls: NuGet V3 service indices to resolve against.
        nearest_framework_url: Address of the nearest-framework service.
        cache_max_age_days: Days a cached registry response stays fresh.
        timeout: HTTP timeout in seconds.
        max_retries: Retries for failed HTTP requests.
        cache_dir: Directory persisting registry responses, or ``None``
            for an in-memory cache only.
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    service_index_urls: List[str] = field(default_factory=lambda: [DEFAULT_SERVICE_INDEX_URL])
    nearest_framework_url: str = NEAREST_FRAMEWORK_URL
    cache_max_age_days: int = DEFAULT_CACHE_MAX_AGE_DAYS
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    cache_dir: Optional[Path] = None

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "service_index_urls": list(self.service_index_urls),
            "nearest_framework_url": self.nearest_framework_url,
            "cache_max_age_days": self.cache_max_age_days,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "cache_dir": str(self.cache_dir) if self.cache_dir else None,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    nuresolve_toml = cwd / "nuresolve.toml"
    if nuresolve_toml.is_file():
        logger.debug("Found nuresolve.toml: %s", nuresolve_toml)
        return nuresolve_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_section(pyproject_toml):
        logger.debug("Found [tool.nuresolve] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Return True if *path* has a ``[tool.nuresolve]`` table.

    An unreadable or invalid pyproject.toml is treated as not having one.
    """
    try:
        raw = _read_toml(path)
    except ConfigError as exc:
        logger.debug("Ignoring %s: %s", path, exc)
        return False
    return _SECTION_NAME in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> NuResolveConfig:
    """Load and validate nuresolve configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`NuResolveConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return NuResolveConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get(_SECTION_NAME, {})
    else:
        section = raw.get(_SECTION_NAME, {})

    if not section:
        logger.debug("Config file has no nuresolve section, using defaults")
        return NuResolveConfig(source_path=resolved)

    config = _parse_section(section, config_path=resolved)
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is invalid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _require_int(section: Dict[str, Any], key: str, minimum: int, config_path: str) -> int:
    value = section[key]
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(
            f"{key} must be an integer, got {type(value).__name__}",
            config_path=config_path,
            option=key,
        )
    if value < minimum:
        raise ConfigError(
            f"{key} must be at least {minimum}, got {value}",
            config_path=config_path,
            option=key,
        )
    return value


def _require_str(section: Dict[str, Any], key: str, config_path: str) -> str:
    value = section[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"{key} must be a non-empty string, got {value!r}",
            config_path=config_path,
            option=key,
        )
    return value.strip()


def _parse_section(section: Dict[str, Any], *, config_path: Path) -> NuResolveConfig:
    """Parse and validate a ``[nuresolve]`` or ``[tool.nuresolve]`` table.

    Relative ``cache_dir`` values are resolved against the config file's
    directory.

    Raises:
        ConfigError: Unknown keys or invalid values.
    """
    path_text = str(config_path)
    config = NuResolveConfig()

    known = {
        "service_index_urls",
        "nearest_framework_url",
        "cache_max_age_days",
        "timeout",
        "max_retries",
        "cache_dir",
    }
    unknown = set(section.keys()) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=path_text,
        )

    if "service_index_urls" in section:
        urls = section["service_index_urls"]
        if (
            not isinstance(urls, list)
            or not urls
            or not all(isinstance(u, str) and u.strip() for u in urls)
        ):
            raise ConfigError(
                "service_index_urls must be a non-empty list of strings",
                config_path=path_text,
                option="service_index_urls",
            )
        config.service_index_urls = [u.strip() for u in urls]

    if "nearest_framework_url" in section:
        config.nearest_framework_url = _require_str(section, "nearest_framework_url", path_text)

    if "cache_max_age_days" in section:
        config.cache_max_age_days = _require_int(section, "cache_max_age_days", 1, path_text)

    if "timeout" in section:
        config.timeout = _require_int(section, "timeout", 1, path_text)

    if "max_retries" in section:
        config.max_retries = _require_int(section, "max_retries", 0, path_text)

    if "cache_dir" in section:
        cache_dir = Path(_require_str(section, "cache_dir", path_text)).expanduser()
        if not cache_dir.is_absolute():
            cache_dir = config_path.parent / cache_dir
        config.cache_dir = cache_dir

    return config
