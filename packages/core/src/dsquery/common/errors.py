from enum import Enum
from typing import Any, Dict, Optional

from dsquery_adapter_sdk.contracts import ResultError


class ErrorSeverity(str, Enum):
    """Severity levels for query errors."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorStage(str, Enum):
    """Pipeline stage at which a query failed."""
    VALIDATE = "validate"
    RESOLVE = "resolve"
    TRANSPORT = "transport"
    GATEWAY = "gateway"
    DECODE = "decode"


class ErrorCode(str, Enum):
    """Standardized error codes for gateway queries."""
    MISSING_SQL = "MISSING_SQL"
    MISSING_DATASOURCE_ID = "MISSING_DATASOURCE_ID"
    CAPABILITY_VIOLATION = "CAPABILITY_VIOLATION"
    DATASOURCE_NOT_FOUND = "DATASOURCE_NOT_FOUND"
    GATEWAY_UNREACHABLE = "GATEWAY_UNREACHABLE"
    GATEWAY_HTTP_ERROR = "GATEWAY_HTTP_ERROR"
    EXECUTION_TIMEOUT = "EXECUTION_TIMEOUT"
    CANCELLED = "CANCELLED"
    FRAME_DECODE_ERROR = "FRAME_DECODE_ERROR"
    UNKNOWN_FRAME_FORMAT = "UNKNOWN_FRAME_FORMAT"


SAFE_ERROR_MESSAGES = {
    ErrorCode.GATEWAY_UNREACHABLE: "The datasource gateway could not be reached.",
    ErrorCode.GATEWAY_HTTP_ERROR: "The datasource gateway rejected the query.",
    ErrorCode.FRAME_DECODE_ERROR: "The datasource gateway returned a result that could not be decoded.",
    ErrorCode.UNKNOWN_FRAME_FORMAT: "The datasource gateway returned a result in an unsupported format.",
    ErrorCode.DATASOURCE_NOT_FOUND: "Datasource configuration error.",
}


class GatewayQueryError(Exception):
    """Base class for every failure of a single gateway query.

    Attributes:
        error_code (ErrorCode): The standardized error code.
        stage (ErrorStage): Where in the pipeline the failure happened.
        details (Dict[str, Any]): Extra diagnostic context.
    """

    error_code: ErrorCode = ErrorCode.GATEWAY_UNREACHABLE
    stage: ErrorStage = ErrorStage.TRANSPORT

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.stage.value}] {self.message}"

    def get_safe_message(self) -> str:
        """Returns a message safe to hand to end users or LLMs.

        Raw gateway bodies and decoder internals are replaced by a fixed text
        when one is registered for the error code.
        """
        return SAFE_ERROR_MESSAGES.get(self.error_code, self.message)

    def to_result_error(self, datasource_id: Optional[str] = None) -> ResultError:
        return ResultError(
            error_code=self.error_code.value,
            safe_message=self.get_safe_message(),
            severity=ErrorSeverity.ERROR.value,
            retryable=False,
            stage=self.stage.value,
            datasource_id=datasource_id,
            details=self.details,
        )


class QueryValidationError(GatewayQueryError):
    stage = ErrorStage.VALIDATE

    def __init__(self, message: str, error_code: ErrorCode):
        super().__init__(message)
        self.error_code = error_code


class DatasourceResolutionError(GatewayQueryError):
    error_code = ErrorCode.DATASOURCE_NOT_FOUND
    stage = ErrorStage.RESOLVE

    def __init__(self, uid: str, reason: str):
        super().__init__(f"datasource '{uid}' could not be resolved: {reason}", details={"uid": uid})
        self.uid = uid


class GatewayTransportError(GatewayQueryError):
    error_code = ErrorCode.GATEWAY_UNREACHABLE
    stage = ErrorStage.TRANSPORT


class QueryTimeoutError(GatewayTransportError):
    error_code = ErrorCode.EXECUTION_TIMEOUT


class QueryCancelledError(GatewayTransportError):
    error_code = ErrorCode.CANCELLED


class GatewayStatusError(GatewayQueryError):
    """Non-200 answer from the gateway. The raw body stays on the exception and out of ``details``."""

    error_code = ErrorCode.GATEWAY_HTTP_ERROR
    stage = ErrorStage.GATEWAY

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"gateway returned {status_code}: {body}",
            details={"status_code": status_code},
        )
        self.status_code = status_code
        self.body = body


class FrameDecodeError(GatewayQueryError):
    error_code = ErrorCode.FRAME_DECODE_ERROR
    stage = ErrorStage.DECODE


class UnknownFrameFormatError(GatewayQueryError):
    error_code = ErrorCode.UNKNOWN_FRAME_FORMAT
    stage = ErrorStage.DECODE
