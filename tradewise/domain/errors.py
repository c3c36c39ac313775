"""Error taxonomy for the analysis pipeline.

Components raise the :class:`AnalysisError` subclasses below; the
orchestrator converts them into tagged outcomes at the call-site boundary.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    NO_RELEVANT_DATA = "no_relevant_data"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    NETWORK_FAILURE = "network_failure"
    EMPTY_COMPLETION = "empty_completion"
    NO_JSON_FOUND = "no_json_found"
    MALFORMED_JSON = "malformed_json"
    NO_VALID_RESULTS = "no_valid_results"
    FLAGGED_RESPONSE = "flagged_response"
    UNKNOWN_FEATURE = "unknown_feature"


class AnalysisError(Exception):
    """Base class for recoverable pipeline failures."""

    kind: ErrorKind

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class MissingCredential(AnalysisError):
    kind = ErrorKind.MISSING_CREDENTIAL


class NoRelevantData(AnalysisError):
    kind = ErrorKind.NO_RELEVANT_DATA


class DailyLimitExceeded(AnalysisError):
    kind = ErrorKind.DAILY_LIMIT_EXCEEDED


class NetworkFailure(AnalysisError):
    kind = ErrorKind.NETWORK_FAILURE


class EmptyCompletion(AnalysisError):
    kind = ErrorKind.EMPTY_COMPLETION


class ResolutionError(AnalysisError):
    """Raised by the response resolver when no usable result can be produced."""


class NoJsonFound(ResolutionError):
    kind = ErrorKind.NO_JSON_FOUND


class MalformedJson(ResolutionError):
    kind = ErrorKind.MALFORMED_JSON


class NoValidResults(ResolutionError):
    kind = ErrorKind.NO_VALID_RESULTS


class FlaggedResponse(ResolutionError):
    kind = ErrorKind.FLAGGED_RESPONSE


class UnknownFeature(AnalysisError):
    kind = ErrorKind.UNKNOWN_FEATURE


__all__ = [
    "AnalysisError",
    "DailyLimitExceeded",
    "EmptyCompletion",
    "ErrorKind",
    "FlaggedResponse",
    "MalformedJson",
    "MissingCredential",
    "NetworkFailure",
    "NoJsonFound",
    "NoRelevantData",
    "NoValidResults",
    "ResolutionError",
    "UnknownFeature",
]
