"""Database infrastructure: engine, ORM models, and repositories."""

from ibwt_marketplace.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    session_scope,
)
from ibwt_marketplace.infrastructure.database.orm_models import (
    Base,
    Bid,
    ContactMessage,
    Result,
    Task,
    TaskEvent,
    WaitlistEntry,
)
from ibwt_marketplace.infrastructure.database.repositories import (
    BidRepository,
    ContactRepository,
    EventRepository,
    ResultRepository,
    TaskRepository,
    WaitlistRepository,
)

__all__ = [
    "Base",
    "Bid",
    "ContactMessage",
    "Result",
    "Task",
    "TaskEvent",
    "WaitlistEntry",
    "BidRepository",
    "ContactRepository",
    "EventRepository",
    "ResultRepository",
    "TaskRepository",
    "WaitlistRepository",
    "close_db",
    "get_async_session",
    "init_db",
    "session_scope",
]
