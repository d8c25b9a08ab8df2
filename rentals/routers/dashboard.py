from fastapi import APIRouter, Depends

from rentals.deps import can_view_dashboard
from rentals.engine import booking_engine
from rentals.schemas import DashboardStats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStats,
    dependencies=[Depends(can_view_dashboard)],
)
async def get_stats() -> DashboardStats:
    return await booking_engine.dashboard_stats()
