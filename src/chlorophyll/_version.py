"""Package version lookup with a CHANGELOG fallback for source checkouts."""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

_PACKAGE_NAME = "chlorophyll"
_CHANGELOG_HEADING = re.compile(r"^## v(?P<version>\d+\.\d+\.\d+)\b")


def _version_from_changelog() -> str:
    """Return the newest version heading from ``CHANGELOG.md``.

    Used when the distribution metadata is unavailable, e.g. when the
    sources are imported straight from a checkout.
    """

    parents = Path(__file__).resolve().parents
    candidates = [parents[index] / "CHANGELOG.md" for index in (1, 2) if len(parents) > index]
    for changelog in candidates:
        if not changelog.is_file():
            continue
        for line in changelog.read_text(encoding="utf-8").splitlines():
            match = _CHANGELOG_HEADING.match(line)
            if match:
                return match.group("version")
    raise RuntimeError(
        f"Unable to determine the '{_PACKAGE_NAME}' version from package metadata or CHANGELOG.md."
    )


def _load_version() -> str:
    try:
        raw_version = metadata.version(_PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        raw_version = _version_from_changelog()

    try:
        parsed = Version(raw_version)
    except InvalidVersion as exc:
        raise RuntimeError(
            f"Invalid version string for '{_PACKAGE_NAME}': {raw_version!r}."
        ) from exc
    if len(parsed.release) != 3:
        raise RuntimeError(
            f"The '{_PACKAGE_NAME}' version must follow MAJOR.MINOR.PATCH. Found: {raw_version!r}."
        )
    return raw_version


__version__ = _load_version()

__all__ = ["__version__"]
