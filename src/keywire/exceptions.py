from __future__ import annotations

from typing import Any


class KeywireError(Exception):
    """Represent a base class for all keywire-specific failures.

    Catch this type when you want to handle any keywire error path without
    matching each concrete exception class individually.
    """


class InvalidBindingError(KeywireError):
    """Signal invalid registration arguments.

    Raised by ``Container.register`` and the ``add_*`` helpers when the factory
    is not callable, the lifetime is not a ``Lifetime`` member or the key is not
    hashable.
    """


class DuplicateBindingError(KeywireError):
    """Signal that an ``(interface, key)`` pair already has a binding.

    Typical fix is registering under a different key or passing
    ``replace=True`` when overwriting is intended.
    """

    def __init__(self, interface: Any, key: Any) -> None:
        self.interface = interface
        self.key = key
        super().__init__(
            f"Binding for {_describe(interface, key)} is already registered. "
            "Pass replace=True to overwrite it.",
        )


class BindingNotFoundError(KeywireError):
    """Signal that an ``(interface, key)`` pair has no binding.

    Raised by ``resolve`` and ``Registry.lookup``. Use ``try_resolve`` when a
    missing binding is an expected outcome.
    """

    def __init__(self, interface: Any, key: Any) -> None:
        self.interface = interface
        self.key = key
        super().__init__(f"No binding registered for {_describe(interface, key)}.")


class RegistryFrozenError(KeywireError):
    """Signal registration after startup finished.

    The registry freezes on ``Container.freeze()`` and, by default, when the
    first scope begins. Move the registration into the composition root.
    """


class ScopeClosedError(KeywireError):
    """Signal resolution through a scope that has already ended."""

    def __init__(self, scope_repr: str, interface: Any, key: Any) -> None:
        self.interface = interface
        self.key = key
        super().__init__(
            f"Cannot resolve {_describe(interface, key)}: {scope_repr} is closed.",
        )


class ScopeMismatchError(KeywireError):
    """Signal use of a scope with a container that did not create it."""


class LifetimeMismatchError(KeywireError):
    """Signal a singleton that depends on a scoped binding.

    The singleton would outlive the scope and keep a released instance alive.
    Typical fixes are making the dependent scoped or the dependency singleton.
    """

    def __init__(self, interface: Any, key: Any, dependent: Any, dependent_key: Any) -> None:
        self.interface = interface
        self.key = key
        super().__init__(
            f"Singleton {_describe(dependent, dependent_key)} cannot depend on scoped "
            f"{_describe(interface, key)}.",
        )


class CircularDependencyError(KeywireError):
    """Signal a factory that re-enters resolution of a binding it is building."""

    def __init__(self, chain: list[tuple[Any, Any]]) -> None:
        self.chain = chain
        path = " -> ".join(_describe(interface, key) for interface, key in chain)
        super().__init__(f"Circular dependency detected: {path}")


def _describe(interface: Any, key: Any) -> str:
    name = getattr(interface, "__qualname__", None) or repr(interface)
    if key is None:
        return name
    return f"{name}[{key!r}]"
