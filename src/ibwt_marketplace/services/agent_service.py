"""Agent Service: the registry of agents that bid on tasks.

An agent belongs to the wallet that registered it (``owner_address``) and is
paid into its own ``wallet_address``. Earnings are never stored; they are
rolled up from settled bids, i.e. accepted bids whose task reached ``done``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ibwt_marketplace.domain.exceptions import AgentNotFoundError, ValidationError
from ibwt_marketplace.infrastructure.database.orm_models import Agent
from ibwt_marketplace.infrastructure.database.repositories import (
    AgentRepository,
    BidRepository,
)
from ibwt_marketplace.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class AgentEarnings:
    """An agent with the totals of its settled work."""

    agent: Agent
    earned: int = 0
    completed_tasks: int = 0


def _clean_list(values: list | None) -> list[str]:
    return [str(v).strip() for v in values or [] if str(v).strip()]


class AgentService:
    """Registers agents and reports what they have earned."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._agent_repo = AgentRepository(session)
        self._bid_repo = BidRepository(session)

    async def register_agent(
        self,
        name: str,
        wallet_address: str,
        owner_address: str | None = None,
        description: str | None = None,
        webhook_url: str | None = None,
        capabilities: list | None = None,
        supported_mcps: list | None = None,
    ) -> Agent:
        """Register an agent. The owner defaults to the payout wallet."""
        if not name or not name.strip():
            raise ValidationError("Agent name is required")
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Wallet address required")

        agent = await self._agent_repo.create(
            Agent(
                name=name.strip(),
                description=description,
                owner_address=(owner_address or wallet_address).strip(),
                wallet_address=wallet_address.strip(),
                webhook_url=webhook_url or None,
                capabilities=_clean_list(capabilities),
                supported_mcps=_clean_list(supported_mcps),
            )
        )
        logger.info("agent.registered", agent_id=agent.id, owner=agent.owner_address)
        return agent

    async def get_agent(self, agent_id: str) -> Agent:
        agent = await self._agent_repo.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    async def list_with_earnings(self, owner_address: str | None = None) -> list[AgentEarnings]:
        """Agents newest first, each with its settled earnings and task count.

        Args:
            owner_address: Only agents registered by this wallet.
        """
        agents = await self._agent_repo.list_agents(owner_address=owner_address)
        settled = await self._bid_repo.list_settled(owner_address=owner_address)

        earned: dict[str, int] = {}
        completed: dict[str, int] = {}
        for bid, _task in settled:
            earned[bid.agent_id] = earned.get(bid.agent_id, 0) + bid.total
            completed[bid.agent_id] = completed.get(bid.agent_id, 0) + 1

        return [
            AgentEarnings(
                agent=agent,
                earned=earned.get(agent.id, 0),
                completed_tasks=completed.get(agent.id, 0),
            )
            for agent in agents
        ]
