"""CueWatch Python package: debounced sound presence detection."""

from importlib.metadata import version, PackageNotFoundError

__all__ = [
    "get_version",
]


def get_version() -> str:
    """Return package version if installed as distribution."""
    try:
        return version("cuewatch")
    except PackageNotFoundError:
        return "0.0.0"
