"""SQLAlchemy 2.0 ORM models for the IBWT marketplace.

Tables:
    1. tasks             - Work requested by a poster, settled through escrow.
    2. bids              - Agent offers against a task.
    3. results           - Deliverables submitted by the accepted agent (one per task).
    4. task_events       - Append-only audit log of lifecycle transitions.
    5. waitlist_entries  - Pre-launch signups, unique by email.
    6. contact_messages  - Contact form submissions.
    7. agents            - Registered agents that bid on tasks.
    8. mcp_servers       - MCP servers offered by providers.
    9. mcp_tools         - Priced tools exposed by an MCP server.

Design decisions:
    - Text UUID primary keys (portable between PostgreSQL and SQLite).
    - JSON columns become JSONB on PostgreSQL.
    - Task.status is validated on assignment: only canonical values pass.
      Legacy rows can only be touched through bulk statements (the migration).
    - Two foreign key paths exist between tasks and bids (task_id,
      accepted_bid_id), so relationships name their foreign keys explicitly.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

from ibwt_marketplace.domain.enums import (
    AgentStatus,
    BidStatus,
    McpStatus,
    PricingModel,
    TaskStatus,
    WaitlistRole,
)
from ibwt_marketplace.domain.exceptions import InvalidStatusError

JSONType = JSON().with_variant(JSONB(), "postgresql")

_CANONICAL_STATUSES = frozenset(status.value for status in TaskStatus)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. tasks
# ---------------------------------------------------------------------------
class Task(Base):
    """A unit of work posted to the marketplace."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # --- Request ---
    request: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="What the poster wants done",
    )
    budget_ibwt: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Maximum budget in $IBWT",
    )
    user_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Solana wallet address of the poster",
    )
    requirements: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
        default=None,
        comment="Structured requirements extracted from the task conversation",
    )

    # --- Status (validated on assignment) ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TaskStatus.OPEN.value,
        comment="Canonical lifecycle state (guarded by TaskStateMachine)",
    )

    # --- Escrow references (populated by the wallet-side escrow program) ---
    accepted_bid_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("bids.id", use_alter=True, name="fk_tasks_accepted_bid_id"),
        nullable=True,
        default=None,
    )
    escrow_tx_id: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    lock_tx_id: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    approve_tx_id: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    decline_tx_id: Mapped[str | None] = mapped_column(String(128), nullable=True, default=None)
    review_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # --- Relationships ---
    bids: Mapped[list[Bid]] = relationship(
        "Bid",
        back_populates="task",
        foreign_keys="Bid.task_id",
        cascade="all, delete-orphan",
        order_by="Bid.created_at.desc()",
        lazy="selectin",
    )
    result: Mapped[Result | None] = relationship(
        "Result",
        back_populates="task",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    events: Mapped[list[TaskEvent]] = relationship(
        "TaskEvent",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskEvent.created_at.asc()",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("budget_ibwt > 0", name="ck_tasks_positive_budget"),
        Index("idx_tasks_status", "status"),
        Index("idx_tasks_user_address", "user_address"),
        Index("idx_tasks_created_at", "created_at"),
    )

    @validates("status")
    def _validate_status(self, key: str, value: str) -> str:
        if value not in _CANONICAL_STATUSES:
            raise InvalidStatusError(value)
        return value

    @property
    def accepted_bid(self) -> Bid | None:
        for bid in self.bids:
            if bid.id == self.accepted_bid_id:
                return bid
        return None

    def __repr__(self) -> str:
        return f"<Task id={self.id} status={self.status} budget={self.budget_ibwt}>"


# ---------------------------------------------------------------------------
# 2. bids
# ---------------------------------------------------------------------------
class Bid(Base):
    """An agent's offer to execute a task."""

    __tablename__ = "bids"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    task_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    agent_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("agents.id"),
        nullable=False,
    )
    agent_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Solana wallet that receives the escrow payout",
    )
    agent_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    mcp_plan: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=lambda: [],
        comment="Planned MCP tool calls: mcp_id, mcp_name, calls, price_per_call, subtotal",
    )
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    eta_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    message: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BidStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    task: Mapped[Task] = relationship(
        "Task",
        back_populates="bids",
        foreign_keys=[task_id],
    )
    agent: Mapped[Agent] = relationship("Agent", back_populates="bids", lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name="ck_bids_valid_status",
        ),
        Index("idx_bids_task", "task_id"),
        Index("idx_bids_agent", "agent_id"),
    )

    def __repr__(self) -> str:
        return f"<Bid id={self.id} task={self.task_id} total={self.total} status={self.status}>"


# ---------------------------------------------------------------------------
# 3. results
# ---------------------------------------------------------------------------
class Result(Base):
    """Deliverables submitted by the accepted agent."""

    __tablename__ = "results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    task_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    agent_id: Mapped[str] = mapped_column(String(64), nullable=False)
    outputs: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        comment="Deliverables: type, label, and content/url/filename",
    )
    mcp_calls_log: Mapped[list | None] = mapped_column(JSONType, nullable=True, default=None)
    revision_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    task: Mapped[Task] = relationship("Task", back_populates="result")

    def __repr__(self) -> str:
        return f"<Result id={self.id} task={self.task_id} revision={self.revision_count}>"


# ---------------------------------------------------------------------------
# 4. task_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class TaskEvent(Base):
    """Immutable record of one guarded lifecycle transition."""

    __tablename__ = "task_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    task_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False, default="SYSTEM")
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        default=None,
        comment="Context such as transaction ids or dispute reasons",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    task: Mapped[Task] = relationship("Task", back_populates="events")

    __table_args__ = (
        Index("idx_task_events_task", "task_id"),
        Index("idx_task_events_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<TaskEvent id={self.id} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )


# ---------------------------------------------------------------------------
# 5. waitlist_entries
# ---------------------------------------------------------------------------
class WaitlistEntry(Base):
    """A waitlist signup. Repeat signups update the role in place."""

    __tablename__ = "waitlist_entries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WaitlistRole.USER.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'agent_provider', 'mcp_provider', 'other')",
            name="ck_waitlist_valid_role",
        ),
    )

    def __repr__(self) -> str:
        return f"<WaitlistEntry email={self.email} role={self.role}>"


# ---------------------------------------------------------------------------
# 6. contact_messages
# ---------------------------------------------------------------------------
class ContactMessage(Base):
    """A contact form submission."""

    __tablename__ = "contact_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    subject: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------------------------------------------------------
# 7. agents
# ---------------------------------------------------------------------------
class Agent(Base):
    """An autonomous agent that bids on tasks and is paid into its wallet."""

    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    owner_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Wallet of the user who registered the agent",
    )
    wallet_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Wallet that receives escrow payouts for accepted bids",
    )
    webhook_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)
    capabilities: Mapped[list] = mapped_column(JSONType, nullable=False, default=lambda: [])
    supported_mcps: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=lambda: [],
        comment="Ids of MCP servers the agent can call",
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AgentStatus.AVAILABLE.value
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    bids: Mapped[list[Bid]] = relationship("Bid", back_populates="agent", lazy="noload")

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'busy', 'offline')",
            name="ck_agents_valid_status",
        ),
        Index("idx_agents_owner", "owner_address"),
    )

    def __repr__(self) -> str:
        return f"<Agent id={self.id} name={self.name} status={self.status}>"


# ---------------------------------------------------------------------------
# 8. mcp_servers
# ---------------------------------------------------------------------------
class McpServer(Base):
    """An MCP server registered by a provider, with its priced tools."""

    __tablename__ = "mcp_servers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    provider_address: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Wallet of the provider that registered the server",
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    endpoint_url: Mapped[str | None] = mapped_column(String(500), nullable=True, default=None)
    documentation_url: Mapped[str | None] = mapped_column(
        String(500), nullable=True, default=None
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=McpStatus.ACTIVE.value
    )
    default_pricing_model: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PricingModel.FREE.value
    )
    default_price_usd: Mapped[float | None] = mapped_column(
        Numeric(12, 6, asdecimal=False), nullable=True, default=None
    )
    total_calls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    tools: Mapped[list[McpTool]] = relationship(
        "McpTool",
        back_populates="server",
        cascade="all, delete-orphan",
        order_by="McpTool.name",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_mcp_servers_valid_status"),
        Index("idx_mcp_servers_provider", "provider_address"),
    )

    def __repr__(self) -> str:
        return f"<McpServer id={self.id} name={self.name} tools={len(self.tools)}>"


# ---------------------------------------------------------------------------
# 9. mcp_tools
# ---------------------------------------------------------------------------
class McpTool(Base):
    __tablename__ = "mcp_tools"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    server_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("mcp_servers.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    input_schema: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=None)
    output_schema: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=None)
    pricing_model: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PricingModel.FREE.value
    )
    price_usd: Mapped[float | None] = mapped_column(
        Numeric(12, 6, asdecimal=False), nullable=True, default=None
    )
    dynamic_config: Mapped[dict | None] = mapped_column(JSONType, nullable=True, default=None)
    total_calls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    server: Mapped[McpServer] = relationship("McpServer", back_populates="tools")

    __table_args__ = (
        CheckConstraint(
            "pricing_model IN ('free', 'per_call', 'dynamic')",
            name="ck_mcp_tools_valid_pricing",
        ),
        Index("idx_mcp_tools_server", "server_id"),
    )


event.listen(Task, "before_update", _set_updated_at)
event.listen(Result, "before_update", _set_updated_at)
event.listen(Agent, "before_update", _set_updated_at)
event.listen(McpServer, "before_update", _set_updated_at)
