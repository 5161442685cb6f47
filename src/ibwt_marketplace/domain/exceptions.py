"""Domain exceptions for the IBWT marketplace.

These exceptions are framework-agnostic and represent business rule violations.
The API middleware translates them to HTTP responses; the admin CLI translates
them to exit codes.
"""


class IbwtError(Exception):
    """Base exception for all domain errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "IBWT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Input Errors ---


class ValidationError(IbwtError):
    """Raised for missing or malformed caller input."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR")


class InvalidStatusError(ValidationError):
    """Raised when a non-canonical status is assigned to a task."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Invalid task status: '{status}'")
        self.code = "INVALID_STATUS"
        self.status = status


class ForbiddenError(IbwtError):
    """Raised when the caller is not the party allowed to act."""

    status_code = 403

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="FORBIDDEN")


# --- Lookup Errors ---


class NotFoundError(IbwtError):
    """Raised when a referenced entity does not exist."""

    status_code = 404

    def __init__(self, message: str, code: str = "NOT_FOUND") -> None:
        super().__init__(message=message, code=code)


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: str) -> None:
        super().__init__(message="Task not found", code="TASK_NOT_FOUND")
        self.task_id = task_id


class BidNotFoundError(NotFoundError):
    def __init__(self, bid_id: str) -> None:
        super().__init__(
            message="Bid not found or does not belong to this task",
            code="BID_NOT_FOUND",
        )
        self.bid_id = bid_id


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(message=f"Agent not found: {agent_id}", code="AGENT_NOT_FOUND")
        self.agent_id = agent_id


class McpServerNotFoundError(NotFoundError):
    def __init__(self, server_id: str) -> None:
        super().__init__(message="MCP server not found", code="MCP_SERVER_NOT_FOUND")
        self.server_id = server_id


# --- State Machine Errors ---


class InvalidStateTransitionError(IbwtError):
    """Raised when a lifecycle event cannot fire from the task's status.

    Example: open -> approve (a result must be submitted and reviewed first)
    """

    status_code = 409

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Cannot {attempted_event} a task in status '{current_state}'",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


# --- Idempotency Errors ---


class DuplicateOperationError(IbwtError):
    """Raised when an on-chain transaction id has already been recorded."""

    status_code = 409

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Transaction already recorded: {idempotency_key}",
            code="DUPLICATE_OPERATION",
        )
        self.idempotency_key = idempotency_key


# --- Infrastructure Errors ---


class InternalError(IbwtError):
    """Raised for unexpected persistence failures.

    The message is safe to show to callers; the cause is logged server-side.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INTERNAL_ERROR")
