"""
Version information for the txflow SDK.

Installed distributions report the version from package metadata; a source
checkout reads it from the adjacent pyproject.toml.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "txflow-sdk"
DEFAULT_VERSION = "0.1.0"
PYPROJECT_PATH = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def read_pyproject_version(path: pathlib.Path = PYPROJECT_PATH) -> Optional[str]:
    """Return [project].version from a pyproject.toml, or None if unreadable"""
    try:
        with path.open("rb") as f:
            project = tomli.load(f).get("project", {})
    except (OSError, tomli.TOMLDecodeError):
        return None
    version = project.get("version")
    return version if isinstance(version, str) else None


def detect_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return read_pyproject_version() or DEFAULT_VERSION


__version__ = detect_version()
