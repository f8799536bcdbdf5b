"""prstack: manage a stack of local commits as reviewable PR units."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("prstack")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
