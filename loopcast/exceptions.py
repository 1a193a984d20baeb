"""Custom exceptions for the loopcast service.

The composer raises these internally and converts them into
``VideoGenerationResult`` records at its boundary. The HTTP layer maps them
to JSON error bodies.
"""

from typing import Any

from loopcast.constants.error_codes import get_error_spec


class LoopcastError(Exception):
    """Base exception for all loopcast application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return get_error_spec(self.code).get("retryable", False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        data: dict[str, Any] = {
            "error": self.code,
            "detail": self.message,
            "retryable": self.retryable,
        }
        suggested_fix = get_error_spec(self.code).get("suggested_fix")
        if suggested_fix:
            data["suggested_fix"] = suggested_fix
        return data


# =============================================================================
# Request errors
# =============================================================================


class AssetFileNotFoundError(LoopcastError):
    """An asset's media file is missing on disk."""

    code = "ASSET_FILE_NOT_FOUND"
    status_code = 404
    message = "Asset file not found"

    def __init__(self, path: str | None = None):
        self.path = path
        message = f"Asset file not found: {path}" if path else self.message
        super().__init__(message)


class NoMatchingAssetsError(LoopcastError):
    """No compatible asset pair exists for a content type."""

    code = "NO_MATCHING_ASSETS"
    status_code = 422
    message = "No matching assets found"

    def __init__(self, content_type: str | None = None):
        self.content_type = content_type
        message = (
            f"No matching assets found for content type: {content_type}"
            if content_type is not None
            else self.message
        )
        super().__init__(message)


class InvalidDurationError(LoopcastError):
    """Target duration is too short for the fades or above the maximum."""

    code = "INVALID_DURATION"
    status_code = 422
    message = "Invalid target duration"


# =============================================================================
# Encoder errors
# =============================================================================


class FilterGraphError(LoopcastError):
    """The filter chain could not be built."""

    code = "FILTER_GRAPH_INVALID"
    message = "Video filter chain is empty"


class ProbeError(LoopcastError):
    """ffprobe could not read a media file."""

    code = "PROBE_FAILED"
    message = "Failed to probe media file"


class EncoderError(LoopcastError):
    """ffmpeg exited with a non-zero status."""

    code = "ENCODER_FAILED"
    message = "FFmpeg error"

    def __init__(self, stderr: str | None = None, returncode: int | None = None):
        self.stderr = stderr or ""
        self.returncode = returncode
        detail = self.stderr.strip() or f"exit code {returncode}"
        super().__init__(f"FFmpeg error: {detail}")


# =============================================================================
# Job lifecycle errors
# =============================================================================


class RenderCancelledError(LoopcastError):
    """The encode was cancelled before completion."""

    code = "RENDER_CANCELLED"
    status_code = 409
    message = "Video generation cancelled"


class JobNotFoundError(LoopcastError):
    """No progress record or running job for an id."""

    code = "JOB_NOT_FOUND"
    status_code = 404
    message = "Job not found"

    def __init__(self, job_id: str | None = None):
        self.job_id = job_id
        message = f"Job not found: {job_id}" if job_id else self.message
        super().__init__(message)
