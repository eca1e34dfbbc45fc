from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from contextlib import ExitStack
from types import TracebackType
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar, overload

from keywire.exceptions import ScopeClosedError

if TYPE_CHECKING:
    from typing_extensions import Self

    from keywire.container import Container
    from keywire.registry import BindingKey, Interface, Key

T = TypeVar("T")

logger = logging.getLogger(__name__)

_MISSING: Any = object()


class Scope:
    """A unit of work that owns scoped instances.

    Scopes are created explicitly with ``Container.enter_scope()`` and never nest:
    each one has its own resolution cache and its own cleanup stack. Closing a
    scope runs the release hooks of everything it owns in reverse creation order.

    Supports use as a context manager::

        with container.enter_scope("request") as scope:
            repository = scope.resolve(PieRepository)

    """

    # Class-level counter for unique scope ids (cheaper than UUIDs)
    _ids: ClassVar[itertools.count[int]] = itertools.count(1)

    def __init__(self, container: Container, name: str | None = None) -> None:
        self.id = next(self._ids)
        self.name = name
        self._container = container
        self._instances: dict[BindingKey, Any] = {}
        self._exit_stack = ExitStack()
        # Re-entrant so factories can resolve other bindings through the same scope.
        self._lock = threading.RLock()
        self._closed = False

    @property
    def container(self) -> Container:
        return self._container

    @property
    def closed(self) -> bool:
        return self._closed

    @overload
    def resolve(self, interface: type[T], key: Key = None) -> T: ...

    @overload
    def resolve(self, interface: Interface, key: Key = None) -> Any: ...

    def resolve(self, interface: Interface, key: Key = None) -> Any:
        """Resolve ``(interface, key)`` through this scope."""
        return self._container.resolve(self, interface, key)

    @overload
    def try_resolve(self, interface: type[T], key: Key = None) -> T | None: ...

    @overload
    def try_resolve(self, interface: Interface, key: Key = None) -> Any: ...

    def try_resolve(self, interface: Interface, key: Key = None) -> Any:
        """Resolve ``(interface, key)`` or return ``None`` when it is not registered."""
        return self._container.try_resolve(self, interface, key)

    def close(self) -> None:
        """Release every instance owned by this scope. Closing twice is a no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            owned = len(self._instances)
            try:
                self._exit_stack.close()
            finally:
                self._instances.clear()
        logger.debug("Closed %r, released %d scoped instance(s)", self, owned)

    def ensure_open(self, interface: Interface, key: Key) -> None:
        if self._closed:
            raise ScopeClosedError(repr(self), interface, key)

    def get_or_create(self, binding_key: BindingKey, create: Callable[[], tuple[Any, ExitStack | None]]) -> Any:
        """Return the cached instance for ``binding_key``, creating it on first use."""
        with self._lock:
            self.ensure_open(binding_key.interface, binding_key.key)
            instance = self._instances.get(binding_key, _MISSING)
            if instance is _MISSING:
                instance, release = create()
                if release is not None:
                    self._exit_stack.push(release)
                self._instances[binding_key] = instance
            return instance

    def create_owned(self, binding_key: BindingKey, create: Callable[[], tuple[Any, ExitStack | None]]) -> Any:
        """Create an uncached instance whose release hooks run when this scope closes."""
        with self._lock:
            self.ensure_open(binding_key.interface, binding_key.key)
            instance, release = create()
            if release is not None:
                self._exit_stack.push(release)
            return instance

    def __contains__(self, item: object) -> bool:
        return item in self._instances

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._container.end_scope(self)

    def __repr__(self) -> str:
        label = f"{self.name}/{self.id}" if self.name else str(self.id)
        state = "closed" if self._closed else "open"
        return f"Scope({label}, {state})"
