from __future__ import annotations

import collections.abc
import contextlib
import inspect
import logging
import threading
from collections.abc import Callable, Generator
from contextlib import AbstractContextManager, ExitStack
from contextvars import ContextVar
from types import TracebackType
from typing import TYPE_CHECKING, Any, NamedTuple, TypeVar, get_args, get_origin, get_type_hints, overload

from keywire.exceptions import (
    BindingNotFoundError,
    CircularDependencyError,
    InvalidBindingError,
    LifetimeMismatchError,
    ScopeMismatchError,
)
from keywire.lock_mode import LockMode
from keywire.registry import (
    Binding,
    BindingKey,
    BindingKind,
    Factory,
    Interface,
    Key,
    Lifetime,
    Registry,
)
from keywire.scope import Scope

if TYPE_CHECKING:
    from typing_extensions import Self

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING: Any = object()

_GENERATOR_ORIGINS: tuple[Any, ...] = (
    collections.abc.Generator,
    collections.abc.Iterator,
    collections.abc.Iterable,
)
_CONTEXT_MANAGER_ORIGINS: tuple[Any, ...] = (
    AbstractContextManager,
    *_GENERATOR_ORIGINS,
)


class _Frame(NamedTuple):
    binding_key: BindingKey
    lifetime: Lifetime


# Bindings currently under construction in this thread or task.
_resolution_stack: ContextVar[tuple[_Frame, ...]] = ContextVar("keywire_resolution_stack", default=())


class Container:
    """Keyed dependency injection container.

    Bindings map an ``(interface, key)`` pair to a factory and a lifetime.
    Register everything at startup, then resolve through explicit scopes::

        container = Container()
        container.add_factory(EmailGreeter, provides=Greeter, key="email", lifetime=Lifetime.SCOPED)

        with container.enter_scope() as scope:
            greeter = container.resolve(scope, Greeter, "email")

    Factories that accept a positional argument are called with the resolving
    scope so they can resolve their own dependencies explicitly; zero-argument
    factories are called bare.

    Singletons are created under per-binding locks. Two singleton factories that
    resolve each other deadlock when first resolved on two threads at once; on
    one thread the same graph raises ``CircularDependencyError``. Keep singleton
    dependencies acyclic.

    Args:
        lock_mode: Default locking for singleton creation. ``LockMode.THREAD``
            guarantees one instance even under concurrent first resolution.
        freeze_on_first_scope: Make the registry read-only when the first scope
            begins, so bindings cannot change while requests are being served.

    """

    def __init__(
        self,
        *,
        lock_mode: LockMode = LockMode.THREAD,
        freeze_on_first_scope: bool = True,
    ) -> None:
        if not isinstance(lock_mode, LockMode):
            msg = f"lock_mode must be a LockMode member, got {lock_mode!r}."
            raise InvalidBindingError(msg)
        self._lock_mode = lock_mode
        self._freeze_on_first_scope = freeze_on_first_scope
        self._registry = Registry()

        self._singletons: dict[BindingKey, Any] = {}
        # Per-binding locks for singleton creation, created with double-checked locking
        self._singleton_locks: dict[BindingKey, threading.Lock] = {}
        self._singleton_locks_lock = threading.Lock()
        # Release hooks of singletons and of transients built inside singleton factories
        self._exit_stack = ExitStack()
        self._exit_stack_lock = threading.Lock()

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    # Registration

    def register(
        self,
        interface: Interface,
        key: Key,
        factory: Factory,
        lifetime: Lifetime,
        *,
        replace: bool = False,
    ) -> None:
        """Register ``factory`` for ``(interface, key)`` with the given lifetime.

        Raises:
            DuplicateBindingError: If the pair is already bound and ``replace`` is false.
            RegistryFrozenError: If the registry was frozen.
            InvalidBindingError: If the factory or lifetime is invalid.

        """
        self._registry.register(interface, key, factory, lifetime, replace=replace)

    def add_factory(
        self,
        factory: Factory,
        *,
        provides: Interface = None,
        key: Key = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        cleanup: Callable[[Any], None] | None = None,
        lock_mode: LockMode | None = None,
        replace: bool = False,
    ) -> None:
        """Register a factory whose return value is the instance.

        ``provides`` defaults to the factory itself for classes, and to the
        return annotation for functions. ``cleanup`` is called with the instance
        when its owner (scope or container) closes.
        """
        if provides is None:
            provides = _infer_provides(factory, BindingKind.FACTORY)
        self._registry.add(
            Binding(
                interface=provides,
                key=key,
                factory=factory,
                lifetime=lifetime,
                kind=BindingKind.FACTORY,
                cleanup=cleanup,
                lock_mode=lock_mode,
            ),
            replace=replace,
        )

    def add_generator(
        self,
        factory: Callable[..., Generator[Any, None, None]],
        *,
        provides: Interface = None,
        key: Key = None,
        lifetime: Lifetime = Lifetime.SCOPED,
        lock_mode: LockMode | None = None,
        replace: bool = False,
    ) -> None:
        """Register a generator factory.

        The yielded value is the instance; code after ``yield`` runs when the
        owning scope (or, for singletons, the container) closes.
        """
        if not inspect.isgeneratorfunction(factory):
            msg = f"add_generator expects a generator function, got {factory!r}."
            raise InvalidBindingError(msg)
        if provides is None:
            provides = _infer_provides(factory, BindingKind.GENERATOR)
        self._registry.add(
            Binding(
                interface=provides,
                key=key,
                factory=factory,
                lifetime=lifetime,
                kind=BindingKind.GENERATOR,
                lock_mode=lock_mode,
            ),
            replace=replace,
        )

    def add_context_manager(
        self,
        factory: Callable[..., AbstractContextManager[Any]],
        *,
        provides: Interface = None,
        key: Key = None,
        lifetime: Lifetime = Lifetime.SCOPED,
        lock_mode: LockMode | None = None,
        replace: bool = False,
    ) -> None:
        """Register a factory returning a context manager.

        ``__enter__`` produces the instance and ``__exit__`` is its release hook.
        """
        if provides is None:
            provides = _infer_provides(factory, BindingKind.CONTEXT_MANAGER)
        self._registry.add(
            Binding(
                interface=provides,
                key=key,
                factory=factory,
                lifetime=lifetime,
                kind=BindingKind.CONTEXT_MANAGER,
                lock_mode=lock_mode,
            ),
            replace=replace,
        )

    def add_instance(
        self,
        instance: Any,
        *,
        provides: Interface = None,
        key: Key = None,
        replace: bool = False,
    ) -> None:
        """Register a prebuilt instance. Instances are always singletons."""
        self._registry.add(
            Binding(
                interface=type(instance) if provides is None else provides,
                key=key,
                lifetime=Lifetime.SINGLETON,
                kind=BindingKind.INSTANCE,
                instance=instance,
            ),
            replace=replace,
        )

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._registry.freeze()

    # Scopes

    def enter_scope(self, name: str | None = None) -> Scope:
        """Begin a new, independent scope.

        Scopes never nest implicitly; each call returns a fresh scope with an
        empty resolution cache. Use the result as a context manager or pass it
        to ``end_scope`` when the unit of work finishes.
        """
        if self._freeze_on_first_scope and not self._registry.frozen:
            self._registry.freeze()
        scope = Scope(self, name)
        logger.debug("Began %r", scope)
        return scope

    begin_scope = enter_scope

    def end_scope(self, scope: Scope) -> None:
        """Release every scoped instance created under ``scope``."""
        self._check_owner(scope)
        scope.close()

    # Resolution

    @overload
    def resolve(self, scope: Scope, interface: type[T], key: Key = None) -> T: ...

    @overload
    def resolve(self, scope: Scope, interface: Interface, key: Key = None) -> Any: ...

    def resolve(self, scope: Scope, interface: Interface, key: Key = None) -> Any:
        """Resolve ``(interface, key)`` within ``scope``.

        Raises:
            BindingNotFoundError: If nothing is registered for the pair.
            ScopeClosedError: If ``scope`` has already ended.
            ScopeMismatchError: If ``scope`` belongs to another container.
            CircularDependencyError: If a factory re-enters its own resolution.
            LifetimeMismatchError: If a singleton factory resolves a scoped binding.

        Exceptions raised by factories propagate unchanged.
        """
        self._check_owner(scope)
        scope.ensure_open(interface, key)
        binding = self._registry.lookup(interface, key)
        return self._resolve_binding(scope, binding)

    @overload
    def try_resolve(self, scope: Scope, interface: type[T], key: Key = None) -> T | None: ...

    @overload
    def try_resolve(self, scope: Scope, interface: Interface, key: Key = None) -> Any: ...

    def try_resolve(self, scope: Scope, interface: Interface, key: Key = None) -> Any:
        """Resolve ``(interface, key)`` or return ``None`` when it is not registered.

        Only a missing binding for the requested pair is mapped to ``None``; a
        missing binding deeper in a factory's own dependencies still raises.
        """
        self._check_owner(scope)
        scope.ensure_open(interface, key)
        binding = self._registry.find(interface, key)
        if binding is None:
            return None
        return self._resolve_binding(scope, binding)

    def _resolve_binding(self, scope: Scope, binding: Binding) -> Any:
        if binding.kind is BindingKind.INSTANCE:
            return binding.instance

        binding_key = binding.binding_key
        stack = _resolution_stack.get()
        self._check_stack(stack, binding)

        token = _resolution_stack.set((*stack, _Frame(binding_key, binding.lifetime)))
        try:
            if binding.lifetime is Lifetime.SINGLETON:
                return self._resolve_singleton(scope, binding)
            if binding.lifetime is Lifetime.SCOPED:
                return scope.get_or_create(binding_key, lambda: self._create(scope, binding))
            if _inside_singleton(stack):
                # Owned by the singleton being built, so released with the container.
                return self._create_container_owned(scope, binding)
            return scope.create_owned(binding_key, lambda: self._create(scope, binding))
        finally:
            _resolution_stack.reset(token)

    def _check_stack(self, stack: tuple[_Frame, ...], binding: Binding) -> None:
        binding_key = binding.binding_key
        for index, frame in enumerate(stack):
            if frame.binding_key == binding_key:
                chain = [tuple(f.binding_key) for f in stack[index:]]
                chain.append(tuple(binding_key))
                raise CircularDependencyError(chain)
        if binding.lifetime is Lifetime.SCOPED:
            for frame in reversed(stack):
                if frame.lifetime is Lifetime.SINGLETON:
                    raise LifetimeMismatchError(
                        binding.interface,
                        binding.key,
                        frame.binding_key.interface,
                        frame.binding_key.key,
                    )

    def _resolve_singleton(self, scope: Scope, binding: Binding) -> Any:
        binding_key = binding.binding_key
        instance = self._singletons.get(binding_key, _MISSING)
        if instance is not _MISSING:
            return instance

        lock_mode = binding.lock_mode or self._lock_mode
        if lock_mode is LockMode.NONE:
            return self._create_singleton(scope, binding)

        with self._get_singleton_lock(binding_key):
            # Second check after acquiring the lock
            instance = self._singletons.get(binding_key, _MISSING)
            if instance is _MISSING:
                instance = self._create_singleton(scope, binding)
        return instance

    def _create_singleton(self, scope: Scope, binding: Binding) -> Any:
        instance = self._create_container_owned(scope, binding)
        self._singletons[binding.binding_key] = instance
        logger.debug("Created singleton %r (key=%r)", binding.interface, binding.key)
        return instance

    def _create_container_owned(self, scope: Scope, binding: Binding) -> Any:
        instance, release = self._create(scope, binding)
        if release is not None:
            with self._exit_stack_lock:
                self._exit_stack.push(release)
        return instance

    def _get_singleton_lock(self, binding_key: BindingKey) -> threading.Lock:
        """Get or create the creation lock for a singleton binding.

        Uses double-checked locking to minimize lock contention.
        """
        lock = self._singleton_locks.get(binding_key)
        if lock is None:
            with self._singleton_locks_lock:
                lock = self._singleton_locks.get(binding_key)
                if lock is None:  # pragma: no cover - race timing dependent
                    lock = threading.Lock()
                    self._singleton_locks[binding_key] = lock
        return lock

    def _create(self, scope: Scope, binding: Binding) -> tuple[Any, ExitStack | None]:
        """Build one instance and return it with an ``ExitStack`` holding its release hooks.

        The stack is ``None`` when the binding has no release hooks, so owners only
        track instances that need releasing. If the factory fails, any hooks entered
        so far run before the error propagates.
        """
        factory = binding.factory
        args = (scope,) if binding.pass_scope else ()
        with ExitStack() as stack:
            if binding.kind is BindingKind.GENERATOR:
                instance = stack.enter_context(contextlib.contextmanager(factory)(*args))
            elif binding.kind is BindingKind.CONTEXT_MANAGER:
                instance = stack.enter_context(factory(*args))
            else:
                instance = factory(*args)
                if binding.cleanup is not None:
                    stack.callback(binding.cleanup, instance)
            if binding.kind is BindingKind.FACTORY and binding.cleanup is None:
                return instance, None
            return instance, stack.pop_all()

    def _check_owner(self, scope: Scope) -> None:
        if scope.container is not self:
            msg = f"{scope!r} was not created by this container."
            raise ScopeMismatchError(msg)

    # Lifecycle

    def close(self) -> None:
        """Release every singleton in reverse creation order and clear the cache."""
        with self._exit_stack_lock:
            stack = self._exit_stack.pop_all()
            released = len(self._singletons)
            self._singletons.clear()
        logger.info("Closing container, releasing %d singleton(s)", released)
        stack.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def _inside_singleton(stack: tuple[_Frame, ...]) -> bool:
    return any(frame.lifetime is Lifetime.SINGLETON for frame in stack)


def _infer_provides(factory: Factory, kind: BindingKind) -> Interface:
    """Infer the provided interface from a class or a factory's return annotation."""
    if kind is BindingKind.FACTORY and inspect.isclass(factory):
        return factory

    try:
        hints = get_type_hints(factory)
    except (NameError, TypeError) as exc:
        msg = f"Cannot read return annotation of {factory!r}; pass provides= explicitly."
        raise InvalidBindingError(msg) from exc

    return_type = hints.get("return", _MISSING)
    if return_type is _MISSING or return_type is None or return_type is type(None):
        msg = f"{factory!r} has no return annotation; pass provides= explicitly."
        raise InvalidBindingError(msg)

    if kind is BindingKind.FACTORY:
        return return_type

    origins = _GENERATOR_ORIGINS if kind is BindingKind.GENERATOR else _CONTEXT_MANAGER_ORIGINS
    args = get_args(return_type)
    if get_origin(return_type) in origins and args:
        return args[0]
    msg = f"Cannot infer the provided type from {return_type!r}; pass provides= explicitly."
    raise InvalidBindingError(msg)
