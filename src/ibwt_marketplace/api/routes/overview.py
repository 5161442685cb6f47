"""Dashboard home page route.

Routes:
    GET    /api/dashboard/overview   - Stats and recent activity (?period=24h|7d|30d&wallet=)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ibwt_marketplace.api.deps import get_overview_service
from ibwt_marketplace.schemas.registry import ActivityResponse, OverviewResponse, OverviewStats
from ibwt_marketplace.services.overview_service import DEFAULT_PERIOD, OverviewService

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/overview", response_model=OverviewResponse, summary="Dashboard overview")
async def get_overview(
    period: str = Query(default=DEFAULT_PERIOD, description="24h, 7d or 30d"),
    wallet: str | None = Query(default=None, description="Scope spent and earned to a wallet"),
    svc: OverviewService = Depends(get_overview_service),
) -> OverviewResponse:
    overview = await svc.overview(period=period, wallet=wallet or None)
    return OverviewResponse(
        period=overview.period,
        stats=OverviewStats(
            active_tasks=overview.active_tasks,
            completed_tasks=overview.completed_tasks,
            total_spent=overview.total_spent,
            total_earned=overview.total_earned,
        ),
        activities=[ActivityResponse.model_validate(a) for a in overview.activities],
    )
