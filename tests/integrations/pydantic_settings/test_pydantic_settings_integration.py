from __future__ import annotations

import pytest
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from keywire import BindingKind, Container, InvalidBindingError, Lifetime
from keywire.integrations.pydantic_settings import add_settings, is_pydantic_settings_subclass


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KEYWIRE_TEST_")

    name: str = "default"
    workers: int = 1


class PlainModel(BaseModel):
    name: str = "plain"


def test_is_pydantic_settings_subclass() -> None:
    assert is_pydantic_settings_subclass(AppSettings)
    assert not is_pydantic_settings_subclass(PlainModel)
    assert not is_pydantic_settings_subclass(AppSettings())
    assert not is_pydantic_settings_subclass("AppSettings")


def test_add_settings_registers_singleton() -> None:
    container = Container()

    add_settings(container, AppSettings)

    binding = container.registry.lookup(AppSettings)
    assert binding.lifetime is Lifetime.SINGLETON
    assert binding.kind is BindingKind.FACTORY
    assert binding.pass_scope is False


def test_settings_read_environment_once(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYWIRE_TEST_NAME", "from-env")
    monkeypatch.setenv("KEYWIRE_TEST_WORKERS", "4")
    container = Container()
    add_settings(container, AppSettings)

    with container.enter_scope() as scope:
        settings = scope.resolve(AppSettings)

    monkeypatch.setenv("KEYWIRE_TEST_NAME", "changed")
    with container.enter_scope() as scope:
        again = scope.resolve(AppSettings)

    assert settings.name == "from-env"
    assert settings.workers == 4
    assert again is settings


def test_keyed_settings() -> None:
    container = Container()
    add_settings(container, AppSettings, key="primary")
    add_settings(container, AppSettings, key="replica")

    with container.enter_scope() as scope:
        assert scope.resolve(AppSettings, "primary") is not scope.resolve(AppSettings, "replica")


def test_add_settings_rejects_non_settings() -> None:
    container = Container()

    with pytest.raises(InvalidBindingError):
        add_settings(container, PlainModel)  # type: ignore[type-var]
