from __future__ import annotations


class FetchError(Exception):
    """Raised when a sheet could not be retrieved or decoded."""

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message)
        self.source = source


class TransportError(FetchError):
    """The remote call failed: network error or non-success status."""


class FormatError(FetchError):
    """The response did not match the gviz envelope, or its payload failed to decode."""
