"""Exception hierarchy for pkgmeta.

All domain-specific exceptions inherit from ``PkgMetaError`` so callers can
catch the whole family with a single ``except`` clause.
"""

from typing import Optional


class PkgMetaError(Exception):
    """Base exception for all pkgmeta errors."""


class InputRequiredError(PkgMetaError, ValueError):
    """Raised when a search query or identifier is blank."""

    def __init__(self, what: str = "Input"):
        super().__init__(f"{what} is required")
        self.what = what


class RegistryError(PkgMetaError):
    """Raised when a registry answers with an error or cannot be reached.

    Not-found (404) is never a ``RegistryError``; adapters return ``None``.
    """

    def __init__(self, source: str, message: str, status: Optional[int] = None):
        self.source = source
        self.status = status
        self.message = message
        if status is not None:
            text = f"{source} API error: {status} {message}".rstrip()
        else:
            text = f"{source} API error: {message}"
        super().__init__(text)


class CatalogLoadError(PkgMetaError):
    """Raised when the seed catalog cannot be read or parsed."""

    exit_code = 2
