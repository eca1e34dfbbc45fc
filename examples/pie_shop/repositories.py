from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from examples.pie_shop.models import Category, Pie


class CategoryRepository(Protocol):
    def all_categories(self) -> list[Category]: ...


class PieRepository(Protocol):
    def all_pies(self) -> list[Pie]: ...

    def pies_of_the_week(self) -> list[Pie]: ...

    def get_pie_by_id(self, pie_id: int) -> Pie | None: ...


class MockCategoryRepository:
    def all_categories(self) -> list[Category]:
        return [
            Category(category_id=1, name="Fruit pies", description="All-fruity pies"),
            Category(category_id=2, name="Cheese cakes", description="Cheesy all the way"),
            Category(category_id=3, name="Seasonal pies", description="Get in the mood for a seasonal pie"),
        ]


class MockPieRepository:
    """Static pie catalogue built on top of a category repository."""

    def __init__(self, categories: CategoryRepository) -> None:
        self._categories = categories

    def all_pies(self) -> list[Pie]:
        fruit, cheese, seasonal = self._categories.all_categories()
        return [
            Pie(
                pie_id=1,
                name="Strawberry Pie",
                short_description="Lorem Ipsum",
                price=Decimal("15.95"),
                category=fruit,
                is_pie_of_the_week=True,
            ),
            Pie(
                pie_id=2,
                name="Cheese cake",
                short_description="Lorem Ipsum",
                price=Decimal("18.95"),
                category=cheese,
            ),
            Pie(
                pie_id=3,
                name="Rhubarb Pie",
                short_description="Lorem Ipsum",
                price=Decimal("15.95"),
                category=fruit,
                is_pie_of_the_week=True,
            ),
            Pie(
                pie_id=4,
                name="Pumpkin Pie",
                short_description="Lorem Ipsum",
                price=Decimal("12.95"),
                category=seasonal,
                in_stock=False,
            ),
        ]

    def pies_of_the_week(self) -> list[Pie]:
        return [pie for pie in self.all_pies() if pie.is_pie_of_the_week]

    def get_pie_by_id(self, pie_id: int) -> Pie | None:
        return next((pie for pie in self.all_pies() if pie.pie_id == pie_id), None)
