"""Exception hierarchy for image preparation and remote generation."""

from typing import Optional


class TryOnError(Exception):
    """Base exception for the try-on service."""


class InputError(TryOnError):
    """Raised before any pipeline work when an upload is unusable."""


class DecodeError(InputError):
    """Input bytes are not a supported raster image."""


class FileTooLargeError(InputError):
    """Upload exceeds the accepted byte size."""


class UnsupportedFileTypeError(InputError):
    """Upload MIME type is not an image/* type."""


class GenerationError(TryOnError):
    """A remote generation attempt did not produce a usable result."""


class TransportError(GenerationError):
    """Network failure or non-2xx answer from the remote capability."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestTimeoutError(TransportError, TimeoutError):
    """The outbound call exceeded its deadline and was aborted."""


class NoCandidateImageError(GenerationError):
    """The call succeeded but carried no inline image part."""


class ValidationFailure(GenerationError):
    """The model returned the input image unchanged."""


class RetriesExhaustedError(GenerationError):
    """Every attempt failed and no error was recorded along the way."""
