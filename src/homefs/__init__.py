"""homefs - Sandboxed home-directory filesystem tools over JSON-RPC."""

from importlib.metadata import PackageNotFoundError, version

# Read version from package metadata (pyproject.toml)
try:
    __version__ = version("homefs")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "0.0.0.dev"

__all__ = ["__version__"]
