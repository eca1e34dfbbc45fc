from __future__ import annotations

import contextlib
import inspect
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum, auto
from inspect import Parameter
from typing import Any, NamedTuple, TypeAlias, get_type_hints

from keywire.exceptions import (
    BindingNotFoundError,
    DuplicateBindingError,
    InvalidBindingError,
    RegistryFrozenError,
)
from keywire.lock_mode import LockMode
from keywire.scope import Scope

logger = logging.getLogger(__name__)

Interface: TypeAlias = Any
"""The capability a binding provides. Usually a class or protocol, but any hashable works."""

Key: TypeAlias = Any
"""A hashable discriminator between implementations of one interface. ``None`` is the default."""

Factory: TypeAlias = Callable[..., Any]
"""A callable invoked with the resolving scope that produces an instance."""


class Lifetime(Enum):
    """Defines how long a resolved instance is reused."""

    TRANSIENT = auto()
    """A new instance is created every time the binding is resolved."""

    SINGLETON = auto()
    """A single instance is created lazily and shared for the lifetime of the container."""

    SCOPED = auto()
    """Instance is shared within a scope, different instances across scopes."""


class BindingKind(Enum):
    """How a binding's factory produces its instance."""

    FACTORY = auto()
    """The factory's return value is the instance."""

    GENERATOR = auto()
    """The factory is a generator; the yielded value is the instance, the rest is teardown."""

    CONTEXT_MANAGER = auto()
    """The factory returns a context manager; ``__enter__`` gives the instance."""

    INSTANCE = auto()
    """A prebuilt instance, always a singleton."""


class BindingKey(NamedTuple):
    """The ``(interface, key)`` pair a binding is registered under."""

    interface: Interface
    key: Key = None


@dataclass(frozen=True, kw_only=True, slots=True)
class Binding:
    """An immutable association between an interface, a key and a construction policy."""

    interface: Interface
    key: Key = None
    factory: Factory | None = None
    lifetime: Lifetime = Lifetime.TRANSIENT
    kind: BindingKind = BindingKind.FACTORY
    instance: Any = None
    cleanup: Callable[[Any], None] | None = None
    """Optional release hook called with the instance when its owner closes."""
    lock_mode: LockMode | None = None
    """Singleton locking override; ``None`` uses the container default."""
    pass_scope: bool | None = None
    """Whether the factory receives the resolving scope. Detected from its signature when ``None``."""

    def __post_init__(self) -> None:
        if self.pass_scope is None:
            object.__setattr__(
                self,
                "pass_scope",
                self.factory is not None and factory_accepts_scope(self.factory),
            )

    @property
    def binding_key(self) -> BindingKey:
        return BindingKey(self.interface, self.key)


class Registry:
    """Holds all bindings registered in a container.

    Bindings are added during startup and the registry is frozen afterwards.
    Lookups take no lock.
    """

    def __init__(self) -> None:
        self._bindings: dict[BindingKey, Binding] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only. Calling it again is a no-op."""
        with self._lock:
            if self._frozen:
                return
            self._frozen = True
        logger.info("Registry frozen with %d binding(s)", len(self._bindings))

    def add(self, binding: Binding, *, replace: bool = False) -> None:
        """Add a new binding, rejecting duplicates unless ``replace`` is set."""
        _validate(binding)
        binding_key = binding.binding_key
        with self._lock:
            if self._frozen:
                msg = (
                    f"Cannot register {binding_key.interface!r} (key={binding_key.key!r}): "
                    "the registry is frozen. Register bindings before the first scope begins."
                )
                raise RegistryFrozenError(msg)
            if not replace and binding_key in self._bindings:
                raise DuplicateBindingError(binding.interface, binding.key)
            self._bindings[binding_key] = binding
        logger.debug(
            "Registered %r (key=%r) as %s %s",
            binding.interface,
            binding.key,
            binding.lifetime.name,
            binding.kind.name,
        )

    def register(
        self,
        interface: Interface,
        key: Key,
        factory: Factory,
        lifetime: Lifetime,
        *,
        replace: bool = False,
    ) -> Binding:
        """Register ``factory`` for ``(interface, key)`` and return the new binding."""
        binding = Binding(interface=interface, key=key, factory=factory, lifetime=lifetime)
        self.add(binding, replace=replace)
        return binding

    def lookup(self, interface: Interface, key: Key = None) -> Binding:
        """Return the binding for ``(interface, key)`` or raise ``BindingNotFoundError``."""
        binding = self.find(interface, key)
        if binding is None:
            raise BindingNotFoundError(interface, key)
        return binding

    def find(self, interface: Interface, key: Key = None) -> Binding | None:
        """Return the binding for ``(interface, key)``, if it exists."""
        try:
            return self._bindings.get(BindingKey(interface, key))
        except TypeError:
            # unhashable key
            return None

    def keys_for(self, interface: Interface) -> list[Key]:
        """Return every key registered for ``interface`` in registration order."""
        return [binding_key.key for binding_key in self._bindings if binding_key.interface == interface]

    def __contains__(self, item: object) -> bool:
        if isinstance(item, tuple) and len(item) == 2:  # noqa: PLR2004
            return self.find(item[0], item[1]) is not None
        return self.find(item) is not None

    def __iter__(self) -> Iterator[Binding]:
        return iter(list(self._bindings.values()))

    def __len__(self) -> int:
        return len(self._bindings)


def factory_accepts_scope(factory: Factory) -> bool:
    """Return whether ``factory`` takes a positional argument for the resolving scope.

    Zero-argument callables, including classes with a bare ``__init__``, are called
    without arguments. Callables whose signature cannot be read are treated the same way.

    Raises:
        InvalidBindingError: If the first required argument is annotated with
            something other than ``Scope``. The factory would otherwise receive
            the scope in place of a real dependency.

    """
    if not callable(factory):
        return False
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        return False
    for parameter in signature.parameters.values():
        if parameter.kind is Parameter.VAR_POSITIONAL:
            return True
        if (
            parameter.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
            and parameter.default is Parameter.empty
        ):
            if not _annotated_as_scope(factory, parameter):
                msg = (
                    f"{factory!r} requires argument {parameter.name!r} of type {parameter.annotation!r}, "
                    "but factories only receive the resolving Scope. Register an explicit factory, "
                    "for example: lambda scope: Service(scope.resolve(Dependency))."
                )
                raise InvalidBindingError(msg)
            return True
    return False


def _annotated_as_scope(factory: Factory, parameter: Parameter) -> bool:
    annotation = parameter.annotation
    if isinstance(annotation, str):
        target = factory.__init__ if inspect.isclass(factory) else factory
        with contextlib.suppress(NameError, TypeError, AttributeError):
            annotation = get_type_hints(target).get(parameter.name, annotation)
    if isinstance(annotation, str):
        # unresolvable forward reference, fall back to the written name
        return annotation.rsplit(".", 1)[-1] in {"Scope", "Any", "object"}
    if annotation is Parameter.empty or annotation is Any or annotation is object:
        return True
    return inspect.isclass(annotation) and issubclass(annotation, Scope)


def _validate(binding: Binding) -> None:
    if not isinstance(binding.lifetime, Lifetime):
        msg = f"lifetime must be a Lifetime member, got {binding.lifetime!r}."
        raise InvalidBindingError(msg)
    try:
        hash(binding.binding_key)
    except TypeError as exc:
        msg = f"Binding key {binding.key!r} for {binding.interface!r} is not hashable."
        raise InvalidBindingError(msg) from exc
    if binding.kind is BindingKind.INSTANCE:
        if binding.lifetime is not Lifetime.SINGLETON:
            msg = "Instance bindings are always singletons."
            raise InvalidBindingError(msg)
        return
    if not callable(binding.factory):
        msg = f"Factory for {binding.interface!r} (key={binding.key!r}) must be callable, got {binding.factory!r}."
        raise InvalidBindingError(msg)
    if inspect.iscoroutinefunction(binding.factory) or inspect.isasyncgenfunction(binding.factory):
        msg = (
            f"Factory {binding.factory!r} for {binding.interface!r} (key={binding.key!r}) is async, "
            "but resolution is synchronous. Use a sync factory, or build the instance at startup "
            "and register it with add_instance()."
        )
        raise InvalidBindingError(msg)
    if binding.cleanup is not None and not callable(binding.cleanup):
        msg = f"cleanup for {binding.interface!r} (key={binding.key!r}) must be callable."
        raise InvalidBindingError(msg)
