from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class PieShopSettings(BaseSettings):
    """Application settings read from ``PIE_SHOP_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="PIE_SHOP_")

    shop_name: str = "Bethany's Pie Shop"
    default_channel: str = "email"
