from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from rentals.catalog import catalog_crud
from rentals.deps import can_manage_catalog
from rentals.models import ItemType
from rentals.schemas import (
    AccessoryCreate,
    CategoryCreate,
    CategoryResponse,
    CostumeCreate,
    ItemFilters,
    ItemResponse,
    ItemStatusUpdate,
    ItemUpdate,
)

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

categories_router = APIRouter(prefix="/categories", tags=["categories"])


@categories_router.get("/", response_model=list[CategoryResponse])
async def list_categories(type: ItemType | None = None) -> list[CategoryResponse]:
    return await catalog_crud.list_categories(type)


@categories_router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: UUID) -> CategoryResponse:
    category = await catalog_crud.get_category(category_id)
    if not category:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Category not found"
        )
    return category


@categories_router.post(
    "/",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_manage_catalog)],
)
async def create_category(payload: CategoryCreate) -> CategoryResponse:
    return await catalog_crud.create_category(payload)


# ---------------------------------------------------------------------------
# Costumes / accessories: same routes, different table
# ---------------------------------------------------------------------------

ITEM_PREFIXES: dict[ItemType, str] = {
    ItemType.COSTUME: "costumes",
    ItemType.ACCESSORY: "accessories",
}


def build_item_router(item_type: ItemType, create_schema: type[BaseModel]) -> APIRouter:
    router = APIRouter(prefix=f"/{ITEM_PREFIXES[item_type]}", tags=[ITEM_PREFIXES[item_type]])
    not_found = f"{item_type.capitalize()} not found"

    @router.get("/", response_model=list[ItemResponse])
    async def list_items(filters: ItemFilters = Depends()) -> list[ItemResponse]:
        return await catalog_crud.list_items(item_type, filters)

    @router.get("/{item_id}", response_model=ItemResponse)
    async def get_item(item_id: UUID) -> ItemResponse:
        item = await catalog_crud.get_item(item_id, item_type)
        if not item:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return item

    @router.post(
        "/",
        response_model=ItemResponse,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(can_manage_catalog)],
    )
    async def create_item(payload: create_schema) -> ItemResponse:  # type: ignore[valid-type]
        return await catalog_crud.create_item(item_type, payload)

    @router.patch(
        "/{item_id}",
        response_model=ItemResponse,
        dependencies=[Depends(can_manage_catalog)],
    )
    async def update_item(item_id: UUID, payload: ItemUpdate) -> ItemResponse:
        return await catalog_crud.update_item(item_id, item_type, payload)

    @router.patch(
        "/{item_id}/status",
        response_model=ItemResponse,
        dependencies=[Depends(can_manage_catalog)],
    )
    async def set_item_status(item_id: UUID, payload: ItemStatusUpdate) -> ItemResponse:
        """Direct admin edit, e.g. marking a returned costume as cleaning or damaged."""
        if not await catalog_crud.set_status(item_id, item_type, payload.status):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return await get_item(item_id)

    @router.delete(
        "/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(can_manage_catalog)],
    )
    async def delete_item(item_id: UUID) -> Response:
        if not await catalog_crud.delete_item(item_id, item_type):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


costumes_router = build_item_router(ItemType.COSTUME, CostumeCreate)
accessories_router = build_item_router(ItemType.ACCESSORY, AccessoryCreate)
