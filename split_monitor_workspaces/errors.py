"""
Error taxonomy for split-monitor-workspaces.

Every failure raised by the codec, the selector parser, the toggle controller
or the Sway binding carries an ErrorCode. Errors abort only the command being
processed; they are turned into a notification and a failed result at the
command boundary (CommandOrchestrator.dispatch) and into a JSON-RPC error by
the IPC server.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for split-monitor-workspaces.

    JSON-RPC standard codes:
    - -32700: Parse error
    - -32600: Invalid request
    - -32601: Method not found
    - -32602: Invalid params
    - -32603: Internal error

    Custom codes (1000-1599):
    - 1000-1099: Selector parse errors
    - 1100-1199: Range errors
    - 1200-1299: State errors
    - 1300-1399: Lookup errors
    - 1400-1499: Capacity errors
    - 1500-1599: Sway environment errors
    """

    # JSON-RPC standard errors
    JSON_PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Parse errors (1000-1099)
    MISSING_TOKEN = 1000
    UNKNOWN_SELECTION_METHOD = 1001
    INVALID_NUMBER = 1002
    INVALID_WINDOW_HANDLE = 1003
    UNKNOWN_COMMAND = 1004
    NOT_A_SPECIAL_SLOT = 1005

    # Range errors (1100-1199)
    WORKSPACE_OUT_OF_RANGE = 1100
    SPECIAL_SLOT_OUT_OF_RANGE = 1101
    WORKSPACE_NOT_OWNED = 1102
    INVALID_MONITOR_ID = 1103

    # State errors (1200-1299)
    RELATIVE_ON_SPECIAL = 1200
    ACTIVE_WORKSPACE_NOT_FOUND = 1201
    EMPTY_WORKSPACE_SET = 1202
    SPECIAL_TARGET_DISALLOWED = 1203
    FOREIGN_ACTIVE_WORKSPACE = 1204

    # Lookup errors (1300-1399)
    MONITOR_NOT_FOUND = 1300
    WINDOW_NOT_FOUND = 1301

    # Capacity errors (1400-1499)
    MONITOR_CAPACITY_EXCEEDED = 1400

    # Sway environment errors (1500-1599)
    SWAY_NOT_CONNECTED = 1500
    SWAY_COMMAND_FAILED = 1501
    CONFIG_LOAD_FAILED = 1502


class SplitWorkspacesError(Exception):
    """Base exception for split-monitor-workspaces errors."""

    kind = "Error"

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for JSON-RPC response.

        Returns:
            Error dictionary with code, kind, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "kind": self.kind,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ParseError(SplitWorkspacesError):
    """Missing token, unknown selection method or malformed number."""

    kind = "ParseError"

    def __init__(self, code: ErrorCode, message: str, token: Optional[str] = None):
        context = {"token": token} if token is not None else None
        super().__init__(
            code=code,
            message=message,
            suggestion="Selectors look like 'c a 1', 'a 2 e -1' or 'c c s 1'",
            context=context
        )


class RangeError(SplitWorkspacesError):
    """Index outside the valid capacity."""

    kind = "RangeError"

    def __init__(self, code: ErrorCode, message: str, value: Optional[int] = None, limit: Optional[int] = None):
        context = {}
        if value is not None:
            context["value"] = value
        if limit is not None:
            context["limit"] = limit
        super().__init__(code=code, message=message, context=context)


class StateError(SplitWorkspacesError):
    """Request is well formed but not applicable to the current state."""

    kind = "StateError"

    def __init__(self, code: ErrorCode, message: str, monitor: Optional[int] = None):
        context = {"monitor": monitor} if monitor is not None else None
        super().__init__(code=code, message=message, context=context)


class NotFoundError(SplitWorkspacesError, LookupError):
    """Unknown monitor id or window handle."""

    kind = "LookupError"

    def __init__(self, code: ErrorCode, message: str, identifier: Optional[Any] = None):
        context = {"id": identifier} if identifier is not None else None
        super().__init__(code=code, message=message, context=context)


class CapacityError(SplitWorkspacesError):
    """Monitor id whose encoding would collide with another monitor's range."""

    kind = "CapacityError"

    def __init__(self, monitor: int, reason: str):
        super().__init__(
            code=ErrorCode.MONITOR_CAPACITY_EXCEEDED,
            message=f"Monitor {monitor} exceeds namespace capacity: {reason}",
            suggestion="Disconnect unused outputs so monitor ids are reassigned",
            context={"monitor": monitor}
        )


class SwayEnvironmentError(SplitWorkspacesError):
    """Sway IPC communication or command error."""

    kind = "EnvironmentError"

    def __init__(self, operation: str, reason: str, code: ErrorCode = ErrorCode.SWAY_COMMAND_FAILED):
        """
        Initialize Sway environment error.

        Args:
            operation: IPC operation that failed
            reason: Reason for failure
            code: Specific error code
        """
        super().__init__(
            code=code,
            message=f"Sway {operation} failed: {reason}",
            suggestion="Ensure Sway is running and IPC socket is accessible",
            context={"operation": operation, "reason": reason}
        )


class ConfigLoadError(SplitWorkspacesError):
    """Configuration loading error."""

    kind = "ConfigError"

    def __init__(self, file_path: str, reason: str):
        """
        Initialize configuration load error.

        Args:
            file_path: Path to configuration file
            reason: Reason for load failure
        """
        super().__init__(
            code=ErrorCode.CONFIG_LOAD_FAILED,
            message=f"Failed to load configuration from {file_path}: {reason}",
            suggestion="Check file syntax and permissions",
            context={"file_path": file_path, "reason": reason}
        )


def error_response(error: Exception, request_id: Optional[Any] = None) -> Dict[str, Any]:
    """
    Create JSON-RPC error response from exception.

    Args:
        error: Exception to convert
        request_id: JSON-RPC request ID

    Returns:
        JSON-RPC error response dictionary
    """
    if isinstance(error, SplitWorkspacesError):
        error_dict = error.to_dict()
    else:
        # Generic error
        error_dict = {
            "code": ErrorCode.INTERNAL_ERROR.value,
            "message": str(error),
            "suggestion": "Check daemon logs for details"
        }

    return {
        "jsonrpc": "2.0",
        "error": error_dict,
        "id": request_id
    }


def validate_params(params: Dict[str, Any], required: list, optional: Optional[list] = None) -> None:
    """
    Validate request parameters.

    Args:
        params: Request parameters dictionary
        required: List of required parameter names
        optional: List of optional parameter names

    Raises:
        SplitWorkspacesError: If required parameters are missing or unknown parameters provided
    """
    missing = [key for key in required if key not in params]
    if missing:
        raise SplitWorkspacesError(
            code=ErrorCode.INVALID_PARAMS,
            message=f"Missing required parameters: {', '.join(missing)}",
            suggestion=f"Provide required parameters: {', '.join(missing)}",
            context={"missing": missing, "required": required}
        )

    if optional is not None:
        allowed = set(required + optional)
        unknown = [key for key in params.keys() if key not in allowed]
        if unknown:
            raise SplitWorkspacesError(
                code=ErrorCode.INVALID_PARAMS,
                message=f"Unknown parameters: {', '.join(unknown)}",
                suggestion="Remove unknown parameters or check API documentation",
                context={"unknown": unknown, "allowed": sorted(allowed)}
            )
