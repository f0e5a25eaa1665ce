"""Internal exceptions, converted to result values at the public boundary."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_MODE = "invalid_mode"
    EXTERNAL_TOOL_FAILURE = "external_tool_failure"
    FILE_READ_FAILURE = "file_read_failure"
    NETWORK_FAILURE = "network_failure"
    NON_SUCCESS_STATUS = "non_success_status"
    RESPONSE_PARSE_FAILURE = "response_parse_failure"
    PATH_VALIDATION_FAILURE = "path_validation_failure"


class ShotLensError(RuntimeError):
    kind: ErrorKind


class InvalidModeError(ShotLensError):
    kind = ErrorKind.INVALID_MODE


class ExternalToolError(ShotLensError):
    kind = ErrorKind.EXTERNAL_TOOL_FAILURE


class FileReadError(ShotLensError):
    kind = ErrorKind.FILE_READ_FAILURE


class NetworkError(ShotLensError):
    kind = ErrorKind.NETWORK_FAILURE


class NonSuccessStatusError(ShotLensError):
    kind = ErrorKind.NON_SUCCESS_STATUS


class ResponseParseError(ShotLensError):
    kind = ErrorKind.RESPONSE_PARSE_FAILURE


class PathValidationError(ShotLensError):
    kind = ErrorKind.PATH_VALIDATION_FAILURE
