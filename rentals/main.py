from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise

from rentals import settings
from rentals.exceptions import register_exception_handlers
from rentals.routers import availability, booking, catalog, dashboard

MODELS_MODULES = {"models": ["rentals.models"]}

TORTOISE_ORM = {
    "connections": {"default": settings.db_url},
    "apps": {"models": {"models": MODELS_MODULES["models"], "default_connection": "default"}},
    "use_tz": True,
    "timezone": "UTC",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Connecting to {}", settings.db_url.split("@")[-1])
    async with RegisterTortoise(
        app,
        config=TORTOISE_ORM,
        generate_schemas=settings.generate_schemas,
    ):
        yield


def include_routers(app: FastAPI) -> None:
    app.include_router(catalog.categories_router)
    app.include_router(catalog.costumes_router)
    app.include_router(catalog.accessories_router)
    app.include_router(availability.router)
    app.include_router(booking.router)
    app.include_router(dashboard.router)


def create_app() -> FastAPI:
    app = FastAPI(title="Costume rentals", lifespan=lifespan)
    include_routers(app)
    register_exception_handlers(app)
    return app


app = create_app()
