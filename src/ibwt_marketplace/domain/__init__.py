"""Domain layer: pure business rules with zero framework dependencies."""

from ibwt_marketplace.domain.enums import (
    LEGACY_STATUSES,
    STATUS_MIGRATION_MAP,
    AgentStatus,
    BidStatus,
    EventType,
    McpStatus,
    PricingModel,
    TaskStatus,
    WaitlistRole,
    normalize_status,
)
from ibwt_marketplace.domain.exceptions import (
    IbwtError,
    InternalError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from ibwt_marketplace.domain.state_machine import (
    TaskStateMachine,
    validate_transition,
)

__all__ = [
    "LEGACY_STATUSES",
    "STATUS_MIGRATION_MAP",
    "AgentStatus",
    "BidStatus",
    "EventType",
    "McpStatus",
    "PricingModel",
    "TaskStatus",
    "WaitlistRole",
    "normalize_status",
    "IbwtError",
    "InternalError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
    "TaskStateMachine",
    "validate_transition",
]
