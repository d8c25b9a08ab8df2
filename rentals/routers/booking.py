from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger

from rentals.cache import get_slots_cache, set_slots_cache
from rentals.deps import (
    CurrentUser,
    can_read_booking,
    can_write_booking,
    get_current_user,
)
from rentals.engine import booking_engine
from rentals.models import BookingStatus, ItemType, PaymentStatus
from rentals.schemas import (
    BookingCreate,
    BookingFilters,
    BookingResponse,
    BookingSlot,
    BookingStatusUpdate,
    BookingUpdate,
    BookingWithItems,
)
from rentals.scopes import BookingScope

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Permission helpers
# ---------------------------------------------------------------------------


def _assert_can_set_status(
    booking: BookingWithItems,
    new_status: BookingStatus,
    current_user: CurrentUser,
) -> None:
    """
    Raise HTTP 403 if the caller may not move the booking to `new_status`.

    Rules:
      admin (admin:bookings or admin:bookings:write) : any target
      customer with bookings:cancel                  : cancel own booking only
    Whether the transition itself is allowed is decided by the engine.
    """
    if current_user.is_admin_writer:
        return

    is_booker = booking.user_id is not None and booking.user_id == current_user.id
    has_cancel = BookingScope.CANCEL in current_user.scopes
    if new_status == BookingStatus.CANCELLED and is_booker and has_cancel:
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=(
            f"Transitioning to '{new_status}' requires '{BookingScope.ADMIN_WRITE}', "
            f"or '{BookingScope.CANCEL}' to cancel your own booking."
        ),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/slots", response_model=list[BookingSlot])
async def get_item_slots(
    item_id: UUID,
    item_type: ItemType,
    _: CurrentUser = Depends(get_current_user),
) -> list[BookingSlot]:
    """
    Returns booked windows for one costume or accessory.
    Any authenticated user can call this; the response contains NO customer identity.
    """
    cached = await get_slots_cache(item_type, item_id)
    if cached is not None:
        logger.debug("Cache hit for slots: {} {}", item_type, item_id)
        return [BookingSlot(**s) for s in cached]

    logger.debug("Cache miss for slots: {} {}", item_type, item_id)
    slots = await booking_engine.list_occupied_slots(item_id, item_type)
    await set_slots_cache(item_type, item_id, [s.model_dump(mode="json") for s in slots])
    return slots


@router.get("/", response_model=list[BookingWithItems])
async def list_bookings(
    filters: BookingFilters = Depends(),
    current_user: CurrentUser = Depends(can_read_booking),
) -> list[BookingWithItems]:
    if current_user.is_admin_reader:
        return await booking_engine.list_bookings(filters=filters)
    return await booking_engine.list_user_bookings(current_user.id, filters=filters)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: CurrentUser = Depends(can_write_booking),
) -> BookingResponse:
    draft = payload.booking
    # Customers always book for themselves, unpaid; admins may book for a guest
    # (user_id=None) and record payment taken at the counter.
    if not current_user.is_admin_writer:
        draft = draft.model_copy(
            update={"user_id": current_user.id, "payment_status": PaymentStatus.PENDING}
        )

    return await booking_engine.create_booking(draft, payload.items)


@router.get("/{booking_id}", response_model=BookingWithItems)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser = Depends(can_read_booking),
) -> BookingWithItems:
    if current_user.is_admin_reader:
        booking = await booking_engine.get_booking(booking_id)
    else:
        booking = await booking_engine.get_booking(booking_id, user_id=current_user.id)

    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: UUID,
    payload: BookingUpdate,
    current_user: CurrentUser = Depends(can_write_booking),
) -> BookingResponse:
    """Back office only: mark a booking paid / refunded or edit its notes."""
    if not current_user.is_admin_writer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires '{BookingScope.ADMIN_WRITE}' (admin).",
        )
    return await booking_engine.update_booking(booking_id, payload)


@router.patch("/{booking_id}/status", status_code=status.HTTP_204_NO_CONTENT)
async def update_booking_status(
    booking_id: UUID,
    payload: BookingStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
) -> Response:
    # Fetch without ownership filter; permissions are checked explicitly below
    booking = await booking_engine.get_booking(booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )

    _assert_can_set_status(booking, payload.status, current_user)

    await booking_engine.set_booking_status(booking_id, payload.status)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
