"""datashare.version — package version string (reported by `datashare --version`)."""

# Bump this when making a tagged release (semver).
__version__ = "0.1.0"

__all__ = ["__version__"]
