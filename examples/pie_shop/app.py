"""Composition root and HTTP endpoints of the pie shop.

Run it with any ASGI server, for example ``uvicorn examples.pie_shop.app:app``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from examples.pie_shop.models import Category, Pie
from examples.pie_shop.notifications import EmailNotifier, Notifier, SmsNotifier
from examples.pie_shop.repositories import (
    CategoryRepository,
    MockCategoryRepository,
    MockPieRepository,
    PieRepository,
)
from examples.pie_shop.settings import PieShopSettings
from keywire import Container, Lifetime, Scope
from keywire.integrations.fastapi import Provide, RequestScope, setup_keywire
from keywire.integrations.pydantic_settings import add_settings

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    recipient: str
    message: str


def build_pie_repository(scope: Scope) -> PieRepository:
    return MockPieRepository(scope.resolve(CategoryRepository))


def build_container() -> Container:
    container = Container()
    add_settings(container, PieShopSettings)
    container.add_factory(MockCategoryRepository, provides=CategoryRepository, lifetime=Lifetime.SCOPED)
    container.add_factory(build_pie_repository, lifetime=Lifetime.SCOPED)
    container.add_factory(EmailNotifier, provides=Notifier, key="email", lifetime=Lifetime.SCOPED)
    container.add_factory(SmsNotifier, provides=Notifier, key="sms", lifetime=Lifetime.SCOPED)
    return container


def create_app(container: Container | None = None) -> FastAPI:
    container = container or build_container()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        container.close()

    app = FastAPI(title="Bethany's Pie Shop", lifespan=lifespan)
    setup_keywire(app, container)

    @app.get("/")
    def home(settings: Annotated[PieShopSettings, Provide(PieShopSettings)]) -> dict[str, str]:
        return {"shop": settings.shop_name}

    @app.get("/categories")
    def list_categories(
        categories: Annotated[CategoryRepository, Provide(CategoryRepository)],
    ) -> list[Category]:
        return categories.all_categories()

    @app.get("/pies")
    def list_pies(
        pies: Annotated[PieRepository, Provide(PieRepository)],
        category: str | None = None,
    ) -> list[Pie]:
        all_pies = pies.all_pies()
        if category is None:
            return all_pies
        return [pie for pie in all_pies if pie.category.name.lower() == category.lower()]

    @app.get("/pies/of-the-week")
    def pies_of_the_week(pies: Annotated[PieRepository, Provide(PieRepository)]) -> list[Pie]:
        return pies.pies_of_the_week()

    @app.get("/pies/{pie_id}")
    def pie_detail(pie_id: int, pies: Annotated[PieRepository, Provide(PieRepository)]) -> Pie:
        pie = pies.get_pie_by_id(pie_id)
        if pie is None:
            raise HTTPException(status_code=404, detail=f"Pie {pie_id} not found")
        return pie

    @app.post("/notify")
    @app.post("/notify/{channel}")
    def notify(notification: Notification, scope: RequestScope, channel: str | None = None) -> dict[str, str]:
        if channel is None:
            channel = scope.resolve(PieShopSettings).default_channel
        notifier = scope.try_resolve(Notifier, channel)
        if notifier is None:
            logger.warning("Notification requested on unknown channel %r", channel)
            raise HTTPException(status_code=404, detail=f"Unknown notification channel {channel!r}")
        return {"receipt": notifier.send(notification.recipient, notification.message)}

    return app


app = create_app()
