"""Error taxonomy for the transformation pipeline."""

from __future__ import annotations


class RespimgError(Exception):
    """Base class for every fatal pipeline error."""


class DecodeError(RespimgError):
    """Raised when source bytes are not a readable image."""


class UnsupportedFormatError(RespimgError):
    """Raised when an adapter cannot encode the requested output format."""


class UnsupportedMimeError(RespimgError):
    """Raised when no mime type maps to the requested output extension."""

    def __init__(self, extension: str) -> None:
        super().__init__(f"No mime type for file with extension {extension!r} supported")
        self.extension = extension


class MissingCredentialError(RespimgError):
    """Raised when a required remote credential field is absent."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required cloudinary credential {field}")
        self.field = field


class RemoteUploadError(RespimgError):
    """Raised when uploading the source to the remote asset host fails."""


class ResizeError(RespimgError):
    """Raised when a planned resize fails for a reason outside the taxonomy."""

    def __init__(self, width: int, message: str) -> None:
        super().__init__(f"Resize to width {width} failed: {message}")
        self.width = width


class TransformServiceError(RespimgError):
    """Raised when a remote transform service cannot be reached or answers with an error."""


class UnknownAdapterError(RespimgError, LookupError):
    """Raised when no adapter is registered under a name."""


__all__ = [
    "DecodeError",
    "MissingCredentialError",
    "RemoteUploadError",
    "ResizeError",
    "RespimgError",
    "TransformServiceError",
    "UnknownAdapterError",
    "UnsupportedFormatError",
    "UnsupportedMimeError",
]
