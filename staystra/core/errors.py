"""Error taxonomy for the analysis pipeline.

Every error carries a stable ``code`` (also written to ``query_errors``), a
``user_message`` that is safe to return to the caller, and a ``detail`` string
that only ever goes to logs and alerts.
"""

from __future__ import annotations


class AnalysisError(Exception):
    code = "ANALYSIS_ERROR"
    # Payload source ("api", "api_due_to_cache_error") when raised while resolving
    source = None
    user_message = "An internal error occurred during analysis. Please try again later."

    def __init__(self, detail: str = "", *, code: str | None = None, user_message: str | None = None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        if code is not None:
            self.code = code
        if user_message is not None:
            self.user_message = user_message


class UserInputError(AnalysisError):
    code = "USER_INPUT"
    user_message = "Property address is required for analysis."


class CacheUnavailable(AnalysisError):
    """Cache read failed. Recovered by fetching fresh data."""

    code = "CACHE_CHECK_ERROR"


class CachePersistFailure(AnalysisError):
    """Cache write failed after a successful fetch. Recovered locally."""

    code = "CACHE_SAVE_ERROR"


class ProviderUnavailable(AnalysisError):
    code = "EXTERNAL_FETCH_ERROR"
    user_message = "External analysis service is unavailable. Please try again later."

    def __init__(self, detail: str = "", *, status_code: int | None = None, body: str | None = None):
        if status_code is not None:
            super().__init__(
                detail,
                code=f"EXTERNAL_FETCH_ERROR_{status_code}",
                user_message=(
                    f"External analysis service responded with an error (Status {status_code}). "
                    "Please try again later."
                ),
            )
        else:
            super().__init__(detail)
        self.status_code = status_code
        self.body = body


class MalformedProviderPayload(AnalysisError):
    code = "EXTERNAL_BAD_DATA"
    user_message = "Analysis data format unexpected. Please try a different address or contact support."


class MissingProviderSections(MalformedProviderPayload):
    """The ``data`` object exists but required sections are absent."""

    code = "EXTERNAL_MISSING_SUBDATA"
    user_message = "No detailed analysis data found for this property or data format unexpected."


class InternalError(AnalysisError):
    code = "INTERNAL_ERROR"
