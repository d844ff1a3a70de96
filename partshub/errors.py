"""Exception hierarchy for partshub.

Every error raised by the registry layer derives from ``PartsHubError`` so
the CLI can render a friendly message instead of a traceback.
"""

from __future__ import annotations


class PartsHubError(Exception):
    """Base error for the registry layer."""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidURIError(PartsHubError):
    """A registry URI could not be parsed. Never retried."""

    code = "INVALID_URI"

    def __init__(self, message: str, uri: str = "") -> None:
        super().__init__(message)
        self.uri = uri


class TransportError(PartsHubError):
    """The hosting provider could not be reached or answered with an error."""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ManifestError(PartsHubError):
    """A registry.yaml or parts.yaml could not be decoded or is malformed."""

    code = "MANIFEST_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class StructuralError(PartsHubError):
    """A path has the wrong shape: file vs. directory, or an unsupported entry."""

    code = "STRUCTURAL_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class ConfigError(PartsHubError):
    """Application configuration is missing or invalid."""

    code = "CONFIG_ERROR"
