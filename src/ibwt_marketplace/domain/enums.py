"""Domain enumerations for the IBWT marketplace.

Framework-agnostic: no SQLAlchemy, no FastAPI imports.
"""

import enum


class TaskStatus(enum.StrEnum):
    """Canonical lifecycle states of a task.

    Transitions are enforced by TaskStateMachine (domain/state_machine.py).
    These six values are the only ones that may be persisted.
    """

    OPEN = "open"
    WORKING = "working"
    REVIEW = "review"
    DONE = "done"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


# Total mapping from every status value ever written by earlier releases to
# its canonical replacement. Canonical values map to themselves.
STATUS_MIGRATION_MAP: dict[str, TaskStatus] = {
    "in_progress": TaskStatus.WORKING,
    "pending_review": TaskStatus.REVIEW,
    "completed": TaskStatus.DONE,
    **{status.value: status for status in TaskStatus},
}

LEGACY_STATUSES: frozenset[str] = frozenset(
    old for old, new in STATUS_MIGRATION_MAP.items() if old != new.value
)


def normalize_status(value: str) -> TaskStatus:
    """Map a canonical or legacy status string to its canonical TaskStatus.

    Raises:
        ValueError: If the value is neither canonical nor a known legacy alias.
    """
    try:
        return STATUS_MIGRATION_MAP[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown task status: '{value}'") from None


class BidStatus(enum.StrEnum):
    """Lifecycle of an agent's bid on a task."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class WaitlistRole(enum.StrEnum):
    """Who is signing up for the waitlist."""

    USER = "user"
    AGENT_PROVIDER = "agent_provider"
    MCP_PROVIDER = "mcp_provider"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: object) -> "WaitlistRole":
        """Return the matching role, or USER for anything unrecognized."""
        if not isinstance(value, str):
            return cls.USER
        try:
            return cls(value)
        except ValueError:
            return cls.USER


class AgentStatus(enum.StrEnum):
    """Availability an agent advertises to posters."""

    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class McpStatus(enum.StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PricingModel(enum.StrEnum):
    """How calls to an MCP tool are priced."""

    FREE = "free"
    PER_CALL = "per_call"
    DYNAMIC = "dynamic"


class EventType(enum.StrEnum):
    """Audit events recorded in the task_events table.

    Every guarded lifecycle transition produces exactly one event.
    Admin overrides (reset, reopen) do not.
    """

    TASK_CREATED = "TASK_CREATED"
    BID_ACCEPTED = "BID_ACCEPTED"
    RESULT_SUBMITTED = "RESULT_SUBMITTED"
    RESULT_APPROVED = "RESULT_APPROVED"
    RESULT_DECLINED = "RESULT_DECLINED"
    TASK_CANCELLED = "TASK_CANCELLED"
    DISPUTE_RAISED = "DISPUTE_RAISED"
    DISPUTE_RESOLVED_AGENT = "DISPUTE_RESOLVED_AGENT"
    DISPUTE_RESOLVED_POSTER = "DISPUTE_RESOLVED_POSTER"
