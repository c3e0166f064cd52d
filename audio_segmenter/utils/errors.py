"""Custom exception hierarchy for the audio segmentation pipeline.

All exceptions inherit from SegmentationError, enabling targeted handling
at operation boundaries while preserving specific failure context.
"""


class SegmentationError(Exception):
    """Base exception for all audio segmentation errors."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"[operation={self.operation}] {super().__str__()}"
        return super().__str__()


class InputError(SegmentationError):
    """Raised when a request record is malformed or names an unknown task."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        field: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(message, operation)


class FormatError(SegmentationError):
    """Raised when audio is in a format the codec cannot handle."""


class DecodeError(FormatError):
    """Raised when input is not a well-formed linear-PCM WAV stream."""


class EncodeError(FormatError):
    """Raised when a sample buffer cannot be written as PCM WAV."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        bit_depth: int | None = None,
    ) -> None:
        self.bit_depth = bit_depth
        super().__init__(message, operation)


class DetectionError(SegmentationError):
    """Raised when voice activity detection fails."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.detail = detail
        super().__init__(message, operation)


class DetectionCancelledError(DetectionError):
    """Raised when detection is cancelled or exceeds its deadline."""


class ResourceError(SegmentationError):
    """Raised when scratch storage for encoding cannot be used or released."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.detail = detail
        super().__init__(message, operation)
