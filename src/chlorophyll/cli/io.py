"""Configuration discovery for the CLI.

Settings live in the ``[tool.chlorophyll]`` table of a ``pyproject.toml``.
Candidates are tried in order: the ``--config`` path, ``$CHLOROPHYLL_CONFIG``
and the current directory; the first file carrying the table wins.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

__all__ = [
    "CONFIG_ENV_VAR",
    "PROJECT_FILENAME",
    "TOOL_SECTION",
    "load_cli_config",
    "load_project_config",
    "resolve_pyproject_path",
]


CONFIG_ENV_VAR = "CHLOROPHYLL_CONFIG"
PROJECT_FILENAME = "pyproject.toml"
TOOL_SECTION = "chlorophyll"


def resolve_pyproject_path(candidate: Path) -> Optional[Path]:
    """Return the ``pyproject.toml`` for a file or directory ``candidate``.

    Files with any other name are not considered.
    """

    candidate = candidate.expanduser()
    if candidate.name == PROJECT_FILENAME:
        return candidate
    if candidate.suffix:
        return None
    return candidate / PROJECT_FILENAME


def load_project_config(path: Path) -> Optional[Tuple[Dict[str, Any], Path]]:
    """Read ``[tool.chlorophyll]`` from the ``pyproject.toml`` at ``path``.

    Returns the table and the resolved file, or ``None`` when either is
    missing.  Malformed TOML raises :class:`tomllib.TOMLDecodeError`.
    """

    pyproject = resolve_pyproject_path(path)
    if pyproject is None:
        return None
    pyproject = pyproject.resolve(strict=False)
    if not pyproject.is_file():
        return None
    with pyproject.open("rb") as handle:
        document = tomllib.load(handle)

    section = document.get("tool", {})
    if isinstance(section, Mapping):
        section = section.get(TOOL_SECTION)
    if not isinstance(section, Mapping):
        return None
    return dict(section), pyproject


def _candidates(path: Optional[Path]) -> Iterator[Path]:
    bases = [path, os.environ.get(CONFIG_ENV_VAR) or None, Path.cwd()]
    seen = set()
    for base in bases:
        if base is None:
            continue
        resolved = resolve_pyproject_path(Path(base))
        if resolved is None:
            continue
        resolved = resolved.resolve(strict=False)
        if resolved not in seen:
            seen.add(resolved)
            yield resolved


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load CLI defaults from the first ``pyproject.toml`` with a chlorophyll table.

    The returned mapping records where it came from under ``_config_path``
    (``None`` when nothing was found).
    """

    for candidate in _candidates(path):
        loaded = load_project_config(candidate)
        if loaded is None:
            continue
        payload, source = loaded
        payload["_config_path"] = str(source)
        return payload
    return {"_config_path": None}
