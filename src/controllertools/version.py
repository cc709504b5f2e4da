"""Version of the installed controller-tools distribution."""

__all__ = ("__version__", "get_version")

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION = "controller-tools"

try:
    __version__ = version(DISTRIBUTION)
except PackageNotFoundError:
    # Imported from a source tree that was never installed.
    __version__ = "0.0.0"


def get_version() -> str:
    """Return the version of the installed distribution, or ``0.0.0``."""
    return __version__
