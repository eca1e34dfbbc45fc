from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class Category(BaseModel):
    category_id: int
    name: str
    description: str | None = None


class Pie(BaseModel):
    pie_id: int
    name: str
    short_description: str
    price: Decimal
    category: Category
    image_thumbnail_url: str | None = None
    is_pie_of_the_week: bool = False
    in_stock: bool = True
