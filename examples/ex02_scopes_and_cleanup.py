"""Scopes and cleanup across lifetimes.

This module covers:

1. Scoped cleanup timing (on scope exit), in reverse creation order.
2. Singleton cleanup timing (on ``container.close()``).
3. ``ScopeClosedError`` when resolving through an ended scope.
"""

from __future__ import annotations

from collections.abc import Generator

from keywire import Container, Lifetime, ScopeClosedError


class Connection:
    def __init__(self, name: str) -> None:
        self.name = name


class Engine:
    pass


def main() -> None:
    events: list[str] = []

    def open_connection() -> Generator[Connection, None, None]:
        events.append("open connection")
        try:
            yield Connection("primary")
        finally:
            events.append("close connection")

    container = Container()
    container.add_generator(open_connection, lifetime=Lifetime.SCOPED)
    container.add_factory(
        Engine,
        lifetime=Lifetime.SINGLETON,
        cleanup=lambda _engine: events.append("dispose engine"),
    )

    scope = container.enter_scope("request")
    connection = scope.resolve(Connection)
    scope.resolve(Engine)
    container.end_scope(scope)
    print(f"scoped_events={events}")  # => scoped_events=['open connection', 'close connection']

    try:
        scope.resolve(Connection)
    except ScopeClosedError as error:
        print(f"after_close={type(error).__name__}")  # => after_close=ScopeClosedError
    print(f"connection={connection.name}")  # => connection=primary

    container.close()
    print(f"last_event={events[-1]}")  # => last_event=dispose engine


if __name__ == "__main__":
    main()
