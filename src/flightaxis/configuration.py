"""Helpers to load project-level configuration files."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping as ABCMapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

from flightaxis.errors import ConfigurationError
from flightaxis.protocol.soap import DEFAULT_REQUEST_TIMEOUT
from flightaxis.transport.connection import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    Endpoint,
)
from flightaxis.transport.pools import DEFAULT_POOL_SIZE

__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_LOGGING",
    "FlightAxisSettings",
    "load_project_config",
    "load_settings",
]


CONFIG_ENV_VAR = "FLIGHTAXIS_CONFIG"
_PROJECT_FILENAME = "pyproject.toml"
_TOOL_SECTION = "flightaxis"

DEFAULT_LOGGING: Mapping[str, str] = {
    "level": "info",
    "output": "stderr",
    "format": "text",
}


def _default_logging() -> dict[str, Any]:
    return dict(DEFAULT_LOGGING)


@dataclass(frozen=True)
class FlightAxisSettings:
    """Runtime options for the FlightAxis bridge."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    pool_size: int = DEFAULT_POOL_SIZE
    request_timeout_ms: int = int(DEFAULT_REQUEST_TIMEOUT * 1000)
    connect_timeout_ms: int = int(DEFAULT_CONNECT_TIMEOUT * 1000)
    poll_interval_ms: int = 0
    logging: dict[str, Any] = field(default_factory=_default_logging)
    source: Path | None = None

    def __post_init__(self) -> None:
        try:
            Endpoint(self.host, self.port)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        for name in ("pool_size", "poll_interval_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
        for name in ("request_timeout_ms", "connect_timeout_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.host, self.port)

    @property
    def request_timeout(self) -> float:
        """Per-request timeout in seconds."""

        return self.request_timeout_ms / 1000.0

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000.0

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    def as_config(self) -> dict[str, Any]:
        """Return the mapping consumed by :func:`flightaxis.logging.setup_logging`."""

        return {"logging": dict(self.logging)}


def _as_dict(payload: ABCMapping[str, Any]) -> dict[str, Any]:
    """Recursively coerce TOML mappings into regular dictionaries."""

    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_str = str(key)
        if isinstance(value, ABCMapping):
            result[key_str] = _as_dict(value)
        elif isinstance(value, list):
            result[key_str] = [
                _as_dict(item) if isinstance(item, ABCMapping) else item for item in value
            ]
        else:
            result[key_str] = value
    return result


def _resolve_pyproject_path(candidate: Path) -> Path | None:
    """Return the concrete ``pyproject.toml`` path for ``candidate`` if possible."""

    candidate = candidate.expanduser()
    if candidate.name == _PROJECT_FILENAME:
        return candidate
    if candidate.suffix:
        return None
    return candidate / _PROJECT_FILENAME


def _iter_unique_paths(paths: Iterable[Path]) -> list[Path]:
    seen: dict[Path, None] = {}
    ordered: list[Path] = []
    for path in paths:
        resolved = path.expanduser().resolve(strict=False)
        if resolved in seen:
            continue
        seen[resolved] = None
        ordered.append(resolved)
    return ordered


def _load_toml_mapping(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    if isinstance(data, ABCMapping):
        return _as_dict(data)
    return None


def load_project_config(path: Path) -> tuple[dict[str, Any], Path] | None:
    """Load the ``[tool.flightaxis]`` section from ``pyproject.toml``."""

    pyproject_path = _resolve_pyproject_path(path)
    if pyproject_path is None:
        return None

    pyproject_path = pyproject_path.expanduser().resolve(strict=False)
    pyproject_payload = _load_toml_mapping(pyproject_path)
    if not pyproject_payload:
        return None

    tool_section = pyproject_payload.get("tool")
    if not isinstance(tool_section, ABCMapping):
        return None

    section = tool_section.get(_TOOL_SECTION)
    if not isinstance(section, ABCMapping):
        return None

    return _as_dict(section), pyproject_path


def _settings_from_mapping(
    payload: Mapping[str, Any], source: Path | None
) -> FlightAxisSettings:
    known = {item.name for item in fields(FlightAxisSettings)} - {"source"}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown [tool.{_TOOL_SECTION}] option(s): {', '.join(unknown)}"
        )
    options = dict(payload)
    logging_section = options.pop("logging", None)
    merged_logging = _default_logging()
    if logging_section is not None:
        if not isinstance(logging_section, ABCMapping):
            raise ConfigurationError("'logging' must be a table")
        merged_logging.update({str(key): value for key, value in logging_section.items()})
    return FlightAxisSettings(**options, logging=merged_logging, source=source)


def load_settings(
    path: Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> FlightAxisSettings:
    """Resolve :class:`FlightAxisSettings` from project configuration.

    ``path`` is tried first, then the ``FLIGHTAXIS_CONFIG`` environment
    variable, then the working directory.  Missing configuration yields the
    defaults.  ``overrides`` (for example command line arguments) win over
    file values; ``None`` entries are ignored.
    """

    candidates: list[Path] = []
    if path is not None:
        candidates.append(Path(path))
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        candidates.append(Path(env_config))
    candidates.append(Path.cwd())

    settings: FlightAxisSettings | None = None
    for candidate in _iter_unique_paths(candidates):
        loaded = load_project_config(candidate)
        if loaded is None:
            continue
        payload, source = loaded
        settings = _settings_from_mapping(payload, source)
        break
    if settings is None:
        settings = FlightAxisSettings()

    if overrides:
        changes = {key: value for key, value in overrides.items() if value is not None}
        if changes:
            try:
                settings = replace(settings, **changes)
            except TypeError as exc:
                raise ConfigurationError(str(exc)) from exc
    return settings
