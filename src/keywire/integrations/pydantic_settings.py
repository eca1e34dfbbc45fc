from __future__ import annotations

from typing import Any, TypeVar

from keywire.container import Container
from keywire.exceptions import InvalidBindingError
from keywire.registry import Key, Lifetime

try:
    from pydantic_settings import BaseSettings
except ModuleNotFoundError as exc:  # pragma: no cover - exercised in optional import scenarios
    message = "Settings integration requires pydantic-settings. Install with 'keywire[settings]'."
    raise ModuleNotFoundError(message) from exc

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether ``candidate`` is a ``pydantic_settings.BaseSettings`` subclass."""
    return isinstance(candidate, type) and issubclass(candidate, BaseSettings)


def add_settings(
    container: Container,
    settings_cls: type[SettingsT],
    *,
    key: Key = None,
    replace: bool = False,
) -> None:
    """Register a settings model as a singleton.

    The model is built through a zero-argument factory on first resolution, so
    the environment and dotenv files are read once per container.

    Raises:
        InvalidBindingError: If ``settings_cls`` is not a ``BaseSettings`` subclass.

    """
    if not is_pydantic_settings_subclass(settings_cls):
        msg = f"{settings_cls!r} is not a pydantic_settings.BaseSettings subclass."
        raise InvalidBindingError(msg)

    def load_settings() -> Any:
        return settings_cls()

    container.add_factory(
        load_settings,
        provides=settings_cls,
        key=key,
        lifetime=Lifetime.SINGLETON,
        replace=replace,
    )


__all__ = ["add_settings", "is_pydantic_settings_subclass"]
