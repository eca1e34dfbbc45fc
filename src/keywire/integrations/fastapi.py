from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated, Any

from keywire.container import Container
from keywire.registry import Interface, Key
from keywire.scope import Scope

try:
    from fastapi import Depends, FastAPI, Request
except ModuleNotFoundError as exc:  # pragma: no cover - exercised in optional import scenarios
    message = "FastAPI integration requires fastapi. Install with 'keywire[fastapi]'."
    raise ModuleNotFoundError(message) from exc

_CONTAINER_STATE_ATTR = "keywire_container"
_REQUEST_SCOPE_NAME = "request"


def setup_keywire(app: FastAPI, container: Container) -> None:
    """Attach ``container`` to ``app`` and freeze its registry.

    After this call every request can open its own scope through
    ``request_scope`` and resolve bindings with ``Provide``.
    """
    setattr(app.state, _CONTAINER_STATE_ATTR, container)
    container.freeze()


def get_container(request: Request) -> Container:
    """Return the container attached to the request's application."""
    container = getattr(request.app.state, _CONTAINER_STATE_ATTR, None)
    if container is None:
        msg = (
            "No keywire container is attached to this application. "
            "Call setup_keywire(app, container) during startup."
        )
        raise RuntimeError(msg)
    return container


async def request_scope(request: Request) -> AsyncIterator[Scope]:
    """Open one scope per request and close it when the request finishes.

    FastAPI caches dependency results per request, so every ``Provide`` used by
    the same request shares this scope.
    """
    container = get_container(request)
    scope = container.enter_scope(_REQUEST_SCOPE_NAME)
    try:
        yield scope
    finally:
        container.end_scope(scope)


RequestScope = Annotated[Scope, Depends(request_scope)]
"""Endpoint parameter annotation that receives the request's scope."""


def Provide(interface: Interface, key: Key = None) -> Any:  # noqa: N802
    """Build a dependency that resolves ``(interface, key)`` from the request scope.

    Examples:
        .. code-block:: python

            @app.get("/pies")
            def list_pies(pies: PieRepository = Provide(PieRepository)) -> list[Pie]:
                return pies.all_pies()

    """

    def _resolve(scope: RequestScope) -> Any:
        return scope.resolve(interface, key)

    _resolve.__name__ = f"provide_{getattr(interface, '__name__', 'dependency')}"
    return Depends(_resolve)


__all__ = ["Provide", "RequestScope", "get_container", "request_scope", "setup_keywire"]
