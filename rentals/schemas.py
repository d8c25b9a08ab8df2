from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rentals.models import BookingStatus, ItemStatus, ItemType, PaymentStatus


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    type: ItemType


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    type: ItemType

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Inventory items
# ---------------------------------------------------------------------------


class ItemBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    category_id: UUID | None = None
    price_per_day: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    security_deposit: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    sizes: list[str] = Field(default_factory=list)
    image_url: str | None = Field(default=None, max_length=1024)
    status: ItemStatus = ItemStatus.AVAILABLE

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, v: list[str]) -> list[str]:
        # ordered set: keep first occurrence
        return list(dict.fromkeys(s.strip() for s in v if s.strip()))


class CostumeCreate(ItemBase):
    themes: list[str] = Field(default_factory=list)


class AccessoryCreate(ItemBase):
    linked_characters: list[str] = Field(default_factory=list)


class ItemUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    category_id: UUID | None = None
    price_per_day: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    security_deposit: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )
    sizes: list[str] | None = None
    image_url: str | None = Field(default=None, max_length=1024)
    status: ItemStatus | None = None
    themes: list[str] | None = None
    linked_characters: list[str] | None = None


class ItemStatusUpdate(BaseModel):
    status: ItemStatus


class ItemResponse(BaseModel):
    id: UUID
    item_type: ItemType
    name: str
    description: str | None
    category_id: UUID | None
    price_per_day: Decimal
    security_deposit: Decimal
    sizes: list[str]
    image_url: str | None
    status: ItemStatus
    themes: list[str] | None = None
    linked_characters: list[str] | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemFilters(BaseModel):
    """Bind to a FastAPI route via Depends(ItemFilters)."""

    category_id: UUID | None = None
    status: ItemStatus | None = None
    search: str | None = Field(default=None, max_length=255)
    size: str | None = None
    theme: str | None = None  # costumes only


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingDraft(BaseModel):
    user_id: UUID | None = None
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    customer_phone: str | None = Field(default=None, max_length=64)
    start_date: datetime
    end_date: datetime
    # accepted for compatibility with older clients; recomputed by the engine
    total_amount: Decimal | None = Field(default=None, ge=0)
    security_deposit: Decimal | None = Field(default=None, ge=0)
    status: BookingStatus = BookingStatus.ACTIVE
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("datetime must be timezone-aware (include UTC offset)")
        return v.astimezone(timezone.utc)

    @field_validator("status")
    @classmethod
    def new_bookings_are_active(cls, v: BookingStatus) -> BookingStatus:
        if v != BookingStatus.ACTIVE:
            raise ValueError("new bookings always start as 'active'")
        return v

    @model_validator(mode="after")
    def validate_date_range(self) -> BookingDraft:
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class BookingItemDraft(BaseModel):
    item_type: ItemType
    item_id: UUID
    item_name: str = Field(min_length=1, max_length=255)
    size: str | None = Field(default=None, max_length=32)
    price_per_day: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(default=1, ge=1)


class BookingCreate(BaseModel):
    booking: BookingDraft
    items: list[BookingItemDraft] = Field(min_length=1)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingUpdate(BaseModel):
    """Partial update; only fields that were sent are applied. Null notes clear them."""

    payment_status: PaymentStatus | None = None
    notes: str | None = Field(default=None, max_length=1000)


class BookingResponse(BaseModel):
    id: UUID
    user_id: UUID | None
    customer_name: str
    customer_email: str
    customer_phone: str | None
    start_date: datetime
    end_date: datetime
    total_amount: Decimal
    security_deposit: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingItemResponse(BaseModel):
    id: UUID
    item_type: ItemType
    item_id: UUID
    item_name: str
    size: str | None
    price_per_day: Decimal
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class BookingWithItems(BookingResponse):
    items: list[BookingItemResponse] = Field(default_factory=list)
    # "overdue" is derived at read time and never stored
    display_status: str


class BookingSlot(BaseModel):
    """Minimal occupied window; reveals no customer identity."""

    start_date: datetime
    end_date: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingFilters(BaseModel):
    """Bind to a FastAPI route via Depends(BookingFilters)."""

    status: BookingStatus | None = None

    # Pagination
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


# ---------------------------------------------------------------------------
# Availability & dashboard
# ---------------------------------------------------------------------------


class AvailabilityQuery(BaseModel):
    item_id: UUID
    item_type: ItemType
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def validate_date_range(self) -> AvailabilityQuery:
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class AvailabilityResponse(BaseModel):
    available: bool


class DashboardStats(BaseModel):
    total_revenue: Decimal
    active_rentals: int
    available_items: int
    overdue_returns: int
