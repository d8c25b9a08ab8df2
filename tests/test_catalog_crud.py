"""Catalog CRUD against in-memory SQLite."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from rentals.catalog import catalog_crud
from rentals.exceptions import NotFoundError, ValidationError
from rentals.models import Costume, ItemStatus, ItemType
from rentals.schemas import (
    AccessoryCreate,
    CategoryCreate,
    CostumeCreate,
    ItemFilters,
    ItemUpdate,
)

from .factories import accessory_create_payload, costume_create_payload


async def make_costume(**overrides):
    return await catalog_crud.create_item(
        ItemType.COSTUME, CostumeCreate(**costume_create_payload(**overrides))
    )


async def make_accessory(**overrides):
    return await catalog_crud.create_item(
        ItemType.ACCESSORY, AccessoryCreate(**accessory_create_payload(**overrides))
    )


class TestCategories:
    async def test_create_and_list_by_type(self, db):
        pirates = await catalog_crud.create_category(
            CategoryCreate(name="Pirates", type=ItemType.COSTUME)
        )
        await catalog_crud.create_category(
            CategoryCreate(name="Hats", type=ItemType.ACCESSORY)
        )

        costumes_only = await catalog_crud.list_categories(ItemType.COSTUME)

        assert [c.id for c in costumes_only] == [pirates.id]
        assert len(await catalog_crud.list_categories()) == 2

    async def test_get_unknown_category(self, db):
        assert await catalog_crud.get_category(uuid4()) is None


class TestCreateItem:
    async def test_costume_defaults_to_available(self, db):
        item = await make_costume()
        assert item.item_type == ItemType.COSTUME
        assert item.status == ItemStatus.AVAILABLE
        assert item.themes == ["pirates"]
        assert item.linked_characters is None

    async def test_accessory_carries_linked_characters(self, db):
        item = await make_accessory()
        assert item.item_type == ItemType.ACCESSORY
        assert item.linked_characters == ["Pirate Captain"]
        assert item.themes is None

    async def test_duplicate_sizes_collapsed(self, db):
        item = await make_costume(sizes=["M", "L", "M", " "])
        assert item.sizes == ["M", "L"]

    async def test_unknown_category_rejected(self, db):
        with pytest.raises(ValidationError):
            await make_costume(category_id=str(uuid4()))
        assert await Costume.all().count() == 0

    async def test_category_of_other_type_rejected(self, db):
        hats = await catalog_crud.create_category(
            CategoryCreate(name="Hats", type=ItemType.ACCESSORY)
        )
        with pytest.raises(ValidationError):
            await make_costume(category_id=str(hats.id))


class TestListItems:
    async def test_search_matches_name_and_description(self, db):
        await make_costume(name="Pirate Captain", description="Coat and sash")
        await make_costume(name="Vampire Count", description="Cape with red lining")
        await make_costume(name="Witch", description="Black robe")

        by_name = await catalog_crud.list_items(ItemType.COSTUME, ItemFilters(search="pirate"))
        by_description = await catalog_crud.list_items(
            ItemType.COSTUME, ItemFilters(search="CAPE")
        )

        assert [i.name for i in by_name] == ["Pirate Captain"]
        assert [i.name for i in by_description] == ["Vampire Count"]

    async def test_filter_by_size_and_theme(self, db):
        await make_costume(name="Pirate Captain", sizes=["M", "L"], themes=["pirates"])
        await make_costume(name="Cabin Boy", sizes=["S"], themes=["Pirates"])
        await make_costume(name="Vampire Count", sizes=["M"], themes=["halloween"])

        medium = await catalog_crud.list_items(ItemType.COSTUME, ItemFilters(size="m"))
        pirates = await catalog_crud.list_items(ItemType.COSTUME, ItemFilters(theme="pirates"))

        assert {i.name for i in medium} == {"Pirate Captain", "Vampire Count"}
        assert {i.name for i in pirates} == {"Pirate Captain", "Cabin Boy"}

    async def test_filter_by_status(self, db):
        a = await make_costume(name="A")
        await make_costume(name="B")
        await catalog_crud.set_status(a.id, ItemType.COSTUME, ItemStatus.DAMAGED)

        damaged = await catalog_crud.list_items(
            ItemType.COSTUME, ItemFilters(status=ItemStatus.DAMAGED)
        )

        assert [i.id for i in damaged] == [a.id]

    async def test_item_types_do_not_mix(self, db):
        await make_costume()
        await make_accessory()
        accessories = await catalog_crud.list_items(ItemType.ACCESSORY, ItemFilters())
        assert [i.item_type for i in accessories] == [ItemType.ACCESSORY]


class TestGetItem:
    async def test_get_by_type(self, db):
        costume = await make_costume()
        assert (await catalog_crud.get_item(costume.id, ItemType.COSTUME)).name == costume.name
        assert await catalog_crud.get_item(costume.id, ItemType.ACCESSORY) is None

    async def test_lock_outside_transaction_still_reads(self, db):
        costume = await make_costume()
        item = await catalog_crud.get_item(costume.id, ItemType.COSTUME, lock=True)
        assert item.id == costume.id


class TestUpdateItem:
    async def test_partial_update(self, db):
        costume = await make_costume()
        updated = await catalog_crud.update_item(
            costume.id, ItemType.COSTUME, ItemUpdate(price_per_day=Decimal("12.50"))
        )
        assert updated.price_per_day == Decimal("12.50")
        assert updated.name == costume.name

    async def test_null_clears_optional_field_only(self, db):
        costume = await make_costume(description="Coat")
        updated = await catalog_crud.update_item(
            costume.id, ItemType.COSTUME, ItemUpdate(description=None, name=None)
        )
        assert updated.description is None
        assert updated.name == costume.name

    async def test_other_variant_field_rejected(self, db):
        costume = await make_costume()
        with pytest.raises(ValidationError) as exc_info:
            await catalog_crud.update_item(
                costume.id, ItemType.COSTUME, ItemUpdate(linked_characters=["Jack"])
            )
        assert exc_info.value.errors[0]["loc"] == ["linked_characters"]

    async def test_missing_item(self, db):
        with pytest.raises(NotFoundError):
            await catalog_crud.update_item(uuid4(), ItemType.COSTUME, ItemUpdate(name="X"))


class TestDeleteAndStatus:
    async def test_delete(self, db):
        costume = await make_costume()
        assert await catalog_crud.delete_item(costume.id, ItemType.COSTUME)
        assert not await catalog_crud.delete_item(costume.id, ItemType.COSTUME)

    async def test_set_status_only_if(self, db):
        costume = await make_costume()
        assert not await catalog_crud.set_status(
            costume.id, ItemType.COSTUME, ItemStatus.AVAILABLE, only_if=ItemStatus.RENTED
        )
        assert await catalog_crud.set_status(costume.id, ItemType.COSTUME, ItemStatus.RENTED)
        assert await catalog_crud.set_status(
            costume.id, ItemType.COSTUME, ItemStatus.AVAILABLE, only_if=ItemStatus.RENTED
        )

    async def test_set_status_unknown_item(self, db):
        assert not await catalog_crud.set_status(uuid4(), ItemType.COSTUME, ItemStatus.DAMAGED)
