from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

import pydantic
from loguru import logger
from tortoise.exceptions import IntegrityError, OperationalError
from tortoise.transactions import in_transaction

from rentals.cache import invalidate_slots_cache
from rentals.catalog import CatalogCRUD, catalog_crud
from rentals.exceptions import (
    AvailabilityError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from rentals.models import (
    Accessory,
    Booking,
    BookingItem,
    BookingStatus,
    Costume,
    ItemStatus,
    ItemType,
    PaymentStatus,
)
from rentals.schemas import (
    BookingDraft,
    BookingFilters,
    BookingItemDraft,
    BookingItemResponse,
    BookingResponse,
    BookingSlot,
    BookingUpdate,
    BookingWithItems,
    DashboardStats,
    ItemResponse,
)

DEPOSIT_RATE = Decimal("0.5")
_CENTS = Decimal("0.01")
_ONE_DAY = timedelta(days=1)

_VALID_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


def _to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Pricing & derived state
# ---------------------------------------------------------------------------


def rental_days(start_date: datetime, end_date: datetime) -> int:
    """Whole days billed for a window: partial days round up, never below one."""
    days, remainder = divmod(end_date - start_date, _ONE_DAY)
    if remainder:
        days += 1
    return max(1, days)


def compute_totals(
    items: Iterable[BookingItemDraft], start_date: datetime, end_date: datetime
) -> tuple[Decimal, Decimal]:
    """Return (total_amount, security_deposit) for the given line items."""
    daily = sum((i.price_per_day * i.quantity for i in items), Decimal("0"))
    total = (daily * rental_days(start_date, end_date)).quantize(
        _CENTS, rounding=ROUND_HALF_UP
    )
    deposit = (total * DEPOSIT_RATE).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return total, deposit


def is_overdue(booking: Booking | BookingResponse, now: datetime | None = None) -> bool:
    """An active booking past its end date. Never persisted."""
    now = _to_utc(now) if now is not None else datetime.now(timezone.utc)
    return booking.status == BookingStatus.ACTIVE and _to_utc(booking.end_date) < now


def display_status(booking: Booking | BookingResponse, now: datetime | None = None) -> str:
    if is_overdue(booking, now):
        return "overdue"
    return BookingStatus(booking.status).value


def _assert_transition(old_status: BookingStatus, new_status: BookingStatus) -> None:
    allowed = _VALID_TRANSITIONS.get(old_status, set())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition from '{old_status}' to '{new_status}'. "
            f"Allowed: {sorted(s.value for s in allowed)}"
        )


def _resolve_size(item: ItemResponse, line: BookingItemDraft, idx: int) -> str | None:
    """Catalog spelling of the requested size; sizes compare case-insensitively."""
    if not item.sizes:
        if line.size is None:
            return None
        raise ValidationError(
            f'"{item.name}" does not come in sizes',
            errors=[{"loc": ["items", idx, "size"], "msg": "must be empty"}],
        )
    wanted = (line.size or "").strip().lower()
    for size in item.sizes:
        if size.lower() == wanted:
            return size
    raise ValidationError(
        f'Size "{line.size}" is not offered for "{item.name}"',
        errors=[{"loc": ["items", idx, "size"], "msg": f"choose one of {item.sizes}"}],
    )


def _validation_errors(exc: pydantic.ValidationError, prefix: list[Any]) -> list[dict]:
    return [
        {"loc": [*prefix, *err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors(include_url=False, include_context=False, include_input=False)
    ]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class BookingEngine:
    def __init__(self, catalog: CatalogCRUD):
        self.catalog = catalog

    def _validate(
        self,
        booking: BookingDraft | dict,
        items: Sequence[BookingItemDraft | dict],
    ) -> tuple[BookingDraft, list[BookingItemDraft]]:
        errors: list[dict] = []
        draft: BookingDraft | None = None
        item_drafts: list[BookingItemDraft] = []

        try:
            draft = BookingDraft.model_validate(booking)
        except pydantic.ValidationError as exc:
            errors.extend(_validation_errors(exc, ["booking"]))

        if not items:
            errors.append({"loc": ["items"], "msg": "At least one item is required"})
        for idx, item in enumerate(items):
            try:
                item_drafts.append(BookingItemDraft.model_validate(item))
            except pydantic.ValidationError as exc:
                errors.extend(_validation_errors(exc, ["items", idx]))

        seen: set[tuple[ItemType, UUID]] = set()
        for idx, d in enumerate(item_drafts):
            key = (d.item_type, d.item_id)
            if key in seen:
                errors.append(
                    {
                        "loc": ["items", idx, "item_id"],
                        "msg": f'"{d.item_name}" is listed twice; use quantity instead',
                    }
                )
            seen.add(key)

        if errors or draft is None:
            raise ValidationError("Invalid booking data", errors=errors)
        return draft, item_drafts

    async def _is_free(
        self,
        item_id: UUID,
        item_type: ItemType,
        start_date: datetime,
        end_date: datetime,
    ) -> bool:
        """True when no active booking on the item overlaps the inclusive window."""
        overlapping = BookingItem.filter(
            item_id=item_id,
            item_type=item_type,
            booking__status=BookingStatus.ACTIVE,
            booking__start_date__lte=end_date,
            booking__end_date__gte=start_date,
        )
        return not await overlapping.exists()

    async def check_availability(
        self,
        item_id: UUID,
        item_type: ItemType,
        start_date: datetime,
        end_date: datetime,
    ) -> bool:
        """
        An item can be rented for [start_date, end_date] when its catalog status
        is `available` and no active booking overlaps the window.
        The status flag gates every window, not only the requested one.
        """
        start_date, end_date = _to_utc(start_date), _to_utc(end_date)
        if end_date <= start_date:
            raise ValidationError(
                "end_date must be after start_date",
                errors=[{"loc": ["end_date"], "msg": "must be after start_date"}],
            )
        item = await self.catalog.get_item(item_id, item_type)
        if item is None or item.status != ItemStatus.AVAILABLE:
            return False
        return await self._is_free(item_id, item_type, start_date, end_date)

    async def create_booking(
        self,
        booking: BookingDraft | dict,
        items: Sequence[BookingItemDraft | dict],
    ) -> BookingResponse:
        """
        Persist a booking with its line items and mark every item as rented.

        Availability is re-checked with the item rows locked inside the same
        transaction as the writes, so either everything is written or nothing is.
        """
        draft, item_drafts = self._validate(booking, items)

        try:
            async with in_transaction():
                lines: list[BookingItemDraft] = []
                for idx, d in enumerate(item_drafts):
                    item = await self.catalog.get_item(d.item_id, d.item_type, lock=True)
                    if (
                        item is None
                        or item.status != ItemStatus.AVAILABLE
                        or not await self._is_free(
                            d.item_id, d.item_type, draft.start_date, draft.end_date
                        )
                    ):
                        logger.warning(
                            "Booking rejected: {} {} unavailable for {} - {}",
                            d.item_type,
                            d.item_id,
                            draft.start_date,
                            draft.end_date,
                        )
                        raise AvailabilityError(item.name if item else d.item_name)

                    # name, price and size label are taken from the catalog row
                    lines.append(
                        d.model_copy(
                            update={
                                "item_name": item.name,
                                "price_per_day": item.price_per_day,
                                "size": _resolve_size(item, d, idx),
                            }
                        )
                    )

                total_amount, security_deposit = compute_totals(
                    lines, draft.start_date, draft.end_date
                )
                inst = await Booking.create(
                    **draft.model_dump(exclude={"total_amount", "security_deposit"}),
                    total_amount=total_amount,
                    security_deposit=security_deposit,
                )
                await BookingItem.bulk_create(
                    [BookingItem(booking=inst, **line.model_dump()) for line in lines]
                )

                # Each catalog entry is a single rentable unit; quantity only prices.
                for d in item_drafts:
                    await self.catalog.set_status(d.item_id, d.item_type, ItemStatus.RENTED)
        except (OperationalError, IntegrityError) as exc:
            logger.exception("Booking write failed for {}", draft.customer_email)
            raise PersistenceError("Failed to create booking") from exc

        logger.info(
            "Booking created: id={} items={} total={} days={}",
            inst.id,
            len(item_drafts),
            total_amount,
            rental_days(draft.start_date, draft.end_date),
        )
        await invalidate_slots_cache([(d.item_type, d.item_id) for d in item_drafts])
        return BookingResponse.model_validate(inst)

    async def set_booking_status(
        self, booking_id: UUID, new_status: BookingStatus
    ) -> None:
        """
        Move a booking along active -> completed | cancelled.

        completed: every referenced item goes back to `available`, whatever its
                   current status.
        cancelled: items still `rented` go back to `available`; items an admin
                   moved to cleaning/damaged keep that status.
        """
        new_status = BookingStatus(new_status)
        try:
            async with in_transaction():
                inst = await Booking.filter(id=booking_id).select_for_update().first()
                if inst is None:
                    raise NotFoundError("Booking not found")

                old_status = BookingStatus(inst.status)
                if old_status == new_status:
                    return
                _assert_transition(old_status, new_status)

                inst.status = new_status  # type: ignore
                await inst.save(update_fields=["status", "updated_at"])

                lines = await BookingItem.filter(booking_id=booking_id)
                if new_status == BookingStatus.COMPLETED:
                    for line in lines:
                        await self.catalog.set_status(
                            line.item_id, line.item_type, ItemStatus.AVAILABLE
                        )
                elif new_status == BookingStatus.CANCELLED:
                    for line in lines:
                        await self.catalog.set_status(
                            line.item_id,
                            line.item_type,
                            ItemStatus.AVAILABLE,
                            only_if=ItemStatus.RENTED,
                        )
        except (OperationalError, IntegrityError) as exc:
            logger.exception("Status update failed for booking {}", booking_id)
            raise PersistenceError("Failed to update booking status") from exc

        logger.info(
            "Booking {} status: {} -> {}", booking_id, old_status, new_status
        )
        await invalidate_slots_cache([(line.item_type, line.item_id) for line in lines])

    async def update_booking(
        self, booking_id: UUID, payload: BookingUpdate
    ) -> BookingResponse:
        """Back-office edit of the payment label and notes; dates and items are fixed."""
        data = payload.model_dump(exclude_unset=True)
        if data.get("payment_status") is None:
            data.pop("payment_status", None)

        inst = await Booking.get_or_none(id=booking_id)
        if inst is None:
            raise NotFoundError("Booking not found")
        if not data:
            return BookingResponse.model_validate(inst)

        for field, value in data.items():
            setattr(inst, field, value)
        try:
            await inst.save(update_fields=[*data, "updated_at"])
        except (OperationalError, IntegrityError) as exc:
            logger.exception("Update failed for booking {}", booking_id)
            raise PersistenceError("Failed to update booking") from exc

        logger.info("Booking {} updated: fields={}", booking_id, sorted(data))
        return BookingResponse.model_validate(inst)

    # -- reads --------------------------------------------------------------

    def _with_items(self, inst: Booking, now: datetime | None) -> BookingWithItems:
        base = BookingResponse.model_validate(inst)
        return BookingWithItems(
            **base.model_dump(),
            items=[BookingItemResponse.model_validate(i) for i in inst.items],
            display_status=display_status(inst, now),
        )

    async def get_booking(
        self,
        booking_id: UUID,
        user_id: UUID | None = None,
        now: datetime | None = None,
    ) -> BookingWithItems | None:
        qs = Booking.filter(id=booking_id)
        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        inst = await qs.prefetch_related("items").first()
        if not inst:
            return None
        return self._with_items(inst, now)

    async def list_bookings(
        self,
        filters: BookingFilters,
        user_id: UUID | None = None,
        now: datetime | None = None,
    ) -> list[BookingWithItems]:
        qs = Booking.all()

        if user_id is not None:
            qs = qs.filter(user_id=user_id)
        if filters.status is not None:
            qs = qs.filter(status=filters.status)

        offset = (filters.page - 1) * filters.page_size
        qs = qs.offset(offset).limit(filters.page_size).prefetch_related("items")

        bookings = await qs
        now = now or datetime.now(timezone.utc)
        return [self._with_items(b, now) for b in bookings]

    async def list_user_bookings(
        self,
        user_id: UUID,
        filters: BookingFilters,
        now: datetime | None = None,
    ) -> list[BookingWithItems]:
        return await self.list_bookings(filters, user_id=user_id, now=now)

    async def list_occupied_slots(
        self, item_id: UUID, item_type: ItemType
    ) -> list[BookingSlot]:
        """Windows of active bookings on one item, without customer info."""
        bookings = (
            await Booking.filter(
                status=BookingStatus.ACTIVE,
                items__item_id=item_id,
                items__item_type=item_type,
            )
            .distinct()
            .order_by("start_date")
        )
        return [BookingSlot.model_validate(b) for b in bookings]

    async def dashboard_stats(self, now: datetime | None = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)
        paid = await Booking.filter(payment_status=PaymentStatus.PAID).values_list(
            "total_amount", flat=True
        )
        active = await Booking.filter(status=BookingStatus.ACTIVE)
        available = (
            await Costume.filter(status=ItemStatus.AVAILABLE).count()
            + await Accessory.filter(status=ItemStatus.AVAILABLE).count()
        )
        return DashboardStats(
            total_revenue=sum(paid, Decimal("0.00")),
            active_rentals=len(active),
            available_items=available,
            overdue_returns=sum(1 for b in active if is_overdue(b, now)),
        )


booking_engine = BookingEngine(catalog_crud)
