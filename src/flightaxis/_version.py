"""Utilities for retrieving and validating the package version."""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

__all__ = ["__version__"]

_PACKAGE_NAME = "flightaxis"


def _version_from_sources() -> str:
    """Return the version parsed from the repository ``CHANGELOG.md``.

    Used in development checkouts where distribution metadata is missing.
    """

    parents = Path(__file__).resolve().parents
    candidates = [parents[index] / "CHANGELOG.md" for index in (1, 2) if len(parents) > index]

    for changelog in candidates:
        if not changelog.is_file():
            continue
        for line in changelog.read_text(encoding="utf-8").splitlines():
            match = re.match(r"^## v(?P<version>\d+\.\d+\.\d+)\b", line)
            if match:
                return match.group("version")

    raise RuntimeError(
        f"Unable to determine the {_PACKAGE_NAME!r} version from package metadata or "
        "repository sources."
    )


def _load_version() -> str:
    """Return the installed version, validated as ``MAJOR.MINOR.PATCH``."""

    try:
        raw_version = metadata.version(_PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        raw_version = _version_from_sources()

    try:
        parsed = Version(raw_version)
    except InvalidVersion as exc:
        raise RuntimeError(
            f"Invalid version string for {_PACKAGE_NAME!r}: "
            f"{raw_version!r}. Expected a semantic version."
        ) from exc

    if len(parsed.release) != 3:
        raise RuntimeError(
            f"The {_PACKAGE_NAME!r} version must follow the MAJOR.MINOR.PATCH format. "
            f"Found: {raw_version!r}."
        )

    return raw_version


__version__ = _load_version()
