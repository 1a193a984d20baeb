"""Error codes dictionary for the composition service.

Single source of truth for error codes, their retryability and a short hint
for the caller. Used by exceptions and by the composer when it turns a
failure into a result record.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Request errors (not retryable without changing the request)
    # ==========================================================================
    "ASSET_FILE_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Add the asset file under the assets root or fix the catalog path",
    },
    "NO_MATCHING_ASSETS": {
        "retryable": False,
        "suggested_fix": "Add audio and visual assets for this content type",
    },
    "INVALID_DURATION": {
        "retryable": False,
        "suggested_fix": "Request a duration longer than the fades and within the maximum",
    },
    # ==========================================================================
    # Encoder errors (deterministic: retrying reproduces them)
    # ==========================================================================
    "FILTER_GRAPH_INVALID": {
        "retryable": False,
        "suggested_fix": "Check the video filter options",
    },
    "ENCODER_FAILED": {
        "retryable": False,
        "suggested_fix": "Inspect the ffmpeg error output for bad input or a missing codec",
    },
    "PROBE_FAILED": {
        "retryable": False,
        "suggested_fix": "Make sure the input is a readable media file",
    },
    # ==========================================================================
    # Job lifecycle
    # ==========================================================================
    "RENDER_CANCELLED": {
        "retryable": True,
        "suggested_fix": "Start a new job if the output is still needed",
    },
    "JOB_NOT_FOUND": {
        "retryable": True,
        "suggested_fix": "The job is unknown or expired; poll again or start a new job",
    },
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get the specification for an error code.

    Unknown codes fall back to INTERNAL_ERROR.
    """
    return ERROR_CODES.get(code, ERROR_CODES["INTERNAL_ERROR"])


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    return get_error_spec(code).get("retryable", False)
