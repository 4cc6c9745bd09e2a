"""
Package version of the confkyc SDK.

Installed distributions report their metadata version; a source checkout
reads it from pyproject.toml.
"""
import importlib.metadata
import pathlib

import tomli

DISTRIBUTION = "confkyc-sdk"
FALLBACK_VERSION = "0.1.0"


def _read_pyproject_version(path: pathlib.Path) -> str:
    with open(path, "rb") as f:
        return tomli.load(f)["project"]["version"]


def get_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        pass
    try:
        return _read_pyproject_version(pathlib.Path(__file__).parent.parent / "pyproject.toml")
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return FALLBACK_VERSION


__version__ = get_version()
