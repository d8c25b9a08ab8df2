from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from loguru import logger
from tortoise.expressions import Q

from rentals.exceptions import NotFoundError, ValidationError
from rentals.models import ITEM_MODELS, Accessory, Category, Costume, ItemStatus, ItemType
from rentals.schemas import (
    AccessoryCreate,
    CategoryCreate,
    CategoryResponse,
    CostumeCreate,
    ItemFilters,
    ItemResponse,
    ItemUpdate,
)

# Fields each variant accepts on top of the shared item columns
_VARIANT_FIELDS: dict[ItemType, str] = {
    ItemType.COSTUME: "themes",
    ItemType.ACCESSORY: "linked_characters",
}
_NULLABLE_FIELDS = {"description", "category_id", "image_url"}


def item_response(inst: Costume | Accessory, item_type: ItemType) -> ItemResponse:
    data = {
        name: getattr(inst, name, None)
        for name in ItemResponse.model_fields
        if name != "item_type"
    }
    return ItemResponse(item_type=item_type, **data)


def _matches_size(sizes: list[str], size: str) -> bool:
    return size.lower() in (s.lower() for s in sizes)


class CatalogCRUD:
    """Costumes, accessories and the categories they hang off."""

    # -- categories ---------------------------------------------------------

    async def list_categories(
        self, category_type: ItemType | None = None
    ) -> list[CategoryResponse]:
        qs = Category.all()
        if category_type is not None:
            qs = qs.filter(type=category_type)
        return [CategoryResponse.model_validate(c) for c in await qs]

    async def get_category(self, category_id: UUID) -> CategoryResponse | None:
        inst = await Category.get_or_none(id=category_id)
        if not inst:
            return None
        return CategoryResponse.model_validate(inst)

    async def create_category(self, payload: CategoryCreate) -> CategoryResponse:
        inst = await Category.create(**payload.model_dump())
        logger.info("Category created: id={} type={}", inst.id, inst.type)
        return CategoryResponse.model_validate(inst)

    async def _check_category(self, category_id: UUID | None, item_type: ItemType) -> None:
        if category_id is None:
            return
        category = await Category.get_or_none(id=category_id)
        if category is None:
            raise ValidationError(
                "Category not found",
                errors=[{"loc": ["category_id"], "msg": "unknown category"}],
            )
        if category.type != item_type:
            raise ValidationError(
                f"Category '{category.name}' holds {category.type} items, not {item_type}",
                errors=[{"loc": ["category_id"], "msg": "category type mismatch"}],
            )

    # -- items --------------------------------------------------------------

    async def list_items(
        self, item_type: ItemType, filters: ItemFilters
    ) -> list[ItemResponse]:
        qs = ITEM_MODELS[item_type].all()

        if filters.category_id is not None:
            qs = qs.filter(category_id=filters.category_id)
        if filters.status is not None:
            qs = qs.filter(status=filters.status)
        if filters.search:
            qs = qs.filter(
                Q(name__icontains=filters.search)
                | Q(description__icontains=filters.search)
            )

        items = await qs
        # JSON list columns are filtered in Python to stay portable across backends
        if filters.size:
            items = [i for i in items if _matches_size(i.sizes, filters.size)]
        if filters.theme and item_type == ItemType.COSTUME:
            theme = filters.theme.lower()
            items = [i for i in items if theme in (t.lower() for t in i.themes)]

        return [item_response(i, item_type) for i in items]

    async def get_item(
        self, item_id: UUID, item_type: ItemType, lock: bool = False
    ) -> ItemResponse | None:
        """Fetch one item. `lock` takes a row lock when called inside a transaction."""
        qs = ITEM_MODELS[item_type].filter(id=item_id)
        if lock:
            qs = qs.select_for_update()
        inst = await qs.first()
        if not inst:
            return None
        return item_response(inst, item_type)

    async def create_item(
        self, item_type: ItemType, payload: CostumeCreate | AccessoryCreate
    ) -> ItemResponse:
        await self._check_category(payload.category_id, item_type)
        inst = await ITEM_MODELS[item_type].create(**payload.model_dump())
        logger.info("{} created: id={} name={!r}", item_type, inst.id, inst.name)
        return item_response(inst, item_type)

    async def update_item(
        self, item_id: UUID, item_type: ItemType, payload: ItemUpdate
    ) -> ItemResponse:
        inst = await ITEM_MODELS[item_type].get_or_none(id=item_id)
        if not inst:
            raise NotFoundError(f"{item_type.capitalize()} not found")

        data = payload.model_dump(exclude_unset=True)
        foreign = {"themes", "linked_characters"} - {_VARIANT_FIELDS[item_type]}
        unexpected = sorted(foreign & data.keys())
        if unexpected:
            raise ValidationError(
                f"Fields not valid for a {item_type}: {', '.join(unexpected)}",
                errors=[{"loc": [f], "msg": "not a field of this item type"} for f in unexpected],
            )
        # an explicit null only clears the optional columns
        data = {k: v for k, v in data.items() if v is not None or k in _NULLABLE_FIELDS}
        if "category_id" in data:
            await self._check_category(data["category_id"], item_type)
        if "sizes" in data:
            data["sizes"] = list(dict.fromkeys(s.strip() for s in data["sizes"] if s.strip()))

        for field, value in data.items():
            setattr(inst, field, value)
        await inst.save()
        logger.info("{} updated: id={} fields={}", item_type, item_id, sorted(data))
        return item_response(inst, item_type)

    async def delete_item(self, item_id: UUID, item_type: ItemType) -> bool:
        # Bookings only hold a snapshot of the item, so nothing cascades here.
        deleted = await ITEM_MODELS[item_type].filter(id=item_id).delete()
        if deleted:
            logger.info("{} deleted: id={}", item_type, item_id)
        return bool(deleted)

    async def set_status(
        self,
        item_id: UUID,
        item_type: ItemType,
        status: ItemStatus,
        only_if: ItemStatus | None = None,
    ) -> bool:
        """Overwrite an item's status; with `only_if`, only when it currently has that status."""
        qs = ITEM_MODELS[item_type].filter(id=item_id)
        if only_if is not None:
            qs = qs.filter(status=only_if)
        updated = await qs.update(
            status=status, updated_at=datetime.now(timezone.utc)
        )
        return bool(updated)


catalog_crud = CatalogCRUD()
