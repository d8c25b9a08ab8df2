from fastapi import APIRouter

from rentals.engine import booking_engine
from rentals.schemas import AvailabilityQuery, AvailabilityResponse

router = APIRouter(prefix="/availability", tags=["availability"])


@router.post("/", response_model=AvailabilityResponse)
async def check_availability(payload: AvailabilityQuery) -> AvailabilityResponse:
    """Pre-flight check used by the storefront before the rental form is submitted."""
    available = await booking_engine.check_availability(
        payload.item_id, payload.item_type, payload.start_date, payload.end_date
    )
    return AvailabilityResponse(available=available)
