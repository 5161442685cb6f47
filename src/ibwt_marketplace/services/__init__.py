"""Application services: one class per use case area."""

from ibwt_marketplace.services.agent_service import AgentService
from ibwt_marketplace.services.contact_service import ContactService
from ibwt_marketplace.services.maintenance_service import MaintenanceService
from ibwt_marketplace.services.mcp_registry_service import McpRegistryService
from ibwt_marketplace.services.overview_service import OverviewService
from ibwt_marketplace.services.task_service import TaskService
from ibwt_marketplace.services.waitlist_service import WaitlistService

__all__ = [
    "AgentService",
    "ContactService",
    "MaintenanceService",
    "McpRegistryService",
    "OverviewService",
    "TaskService",
    "WaitlistService",
]
