from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class ItemType(StrEnum):
    COSTUME = "costume"
    ACCESSORY = "accessory"


class ItemStatus(StrEnum):
    AVAILABLE = "available"  # can be booked
    RENTED = "rented"  # flipped by booking creation
    CLEANING = "cleaning"  # set by admin after a return
    DAMAGED = "damaged"  # set by admin, blocks all bookings


class BookingStatus(StrEnum):
    ACTIVE = "active"  # created, items out
    COMPLETED = "completed"  # items returned
    CANCELLED = "cancelled"  # called off by customer or admin


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class AbstractModel(Model):
    id = fields.UUIDField(primary_key=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        abstract = True


class Category(AbstractModel):
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    type = fields.CharEnumField(ItemType)

    class Meta:  # type: ignore
        table = "categories"
        ordering = ["name"]


class InventoryItem(AbstractModel):
    """Columns shared by costumes and accessories."""

    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    price_per_day = fields.DecimalField(max_digits=10, decimal_places=2)
    security_deposit = fields.DecimalField(max_digits=10, decimal_places=2)
    sizes = fields.JSONField(default=list)
    image_url = fields.CharField(max_length=1024, null=True)
    status = fields.CharEnumField(ItemStatus, default=ItemStatus.AVAILABLE)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        abstract = True


class Costume(InventoryItem):
    category = fields.ForeignKeyField(
        "models.Category",
        related_name="costumes",
        null=True,
        on_delete=fields.SET_NULL,
    )
    themes = fields.JSONField(default=list)

    class Meta:  # type: ignore
        table = "costumes"
        ordering = ["-created_at"]


class Accessory(InventoryItem):
    category = fields.ForeignKeyField(
        "models.Category",
        related_name="accessories",
        null=True,
        on_delete=fields.SET_NULL,
    )
    linked_characters = fields.JSONField(default=list)

    class Meta:  # type: ignore
        table = "accessories"
        ordering = ["-created_at"]


ITEM_MODELS: dict[ItemType, type[Costume] | type[Accessory]] = {
    ItemType.COSTUME: Costume,
    ItemType.ACCESSORY: Accessory,
}


class Booking(AbstractModel):
    user_id = fields.UUIDField(null=True)  # None for guest / point-of-sale bookings

    # denormalized snapshot of the customer at booking time
    customer_name = fields.CharField(max_length=255)
    customer_email = fields.CharField(max_length=255)
    customer_phone = fields.CharField(max_length=64, null=True)

    start_date = fields.DatetimeField()
    end_date = fields.DatetimeField()

    total_amount = fields.DecimalField(max_digits=10, decimal_places=2)  # computed
    security_deposit = fields.DecimalField(max_digits=10, decimal_places=2)  # computed

    status = fields.CharEnumField(BookingStatus, default=BookingStatus.ACTIVE)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)

    notes = fields.TextField(null=True)
    updated_at = fields.DatetimeField(auto_now=True)

    items: fields.ReverseRelation["BookingItem"]

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]


class BookingItem(Model):
    id = fields.UUIDField(primary_key=True)
    booking = fields.ForeignKeyField(
        "models.Booking", related_name="items", on_delete=fields.CASCADE
    )

    item_type = fields.CharEnumField(ItemType)
    item_id = fields.UUIDField()  # points into costumes or accessories, not enforced
    item_name = fields.CharField(max_length=255)  # snapshot
    size = fields.CharField(max_length=32, null=True)
    price_per_day = fields.DecimalField(max_digits=10, decimal_places=2)  # snapshot
    quantity = fields.IntField(default=1)

    class Meta:  # type: ignore
        table = "booking_items"
