"""Keyed bindings: several implementations of one interface, chosen by key.

This module covers:

1. Registering ``Greeter`` under the keys ``"email"`` and ``"sms"``.
2. Scoped reuse within one scope and fresh instances across scopes.
3. ``BindingNotFoundError`` for an unknown key and ``try_resolve`` returning ``None``.
"""

from __future__ import annotations

from typing import Protocol

from keywire import BindingNotFoundError, Container, Lifetime


class Greeter(Protocol):
    def greet(self, name: str) -> str: ...


class EmailGreeter:
    def greet(self, name: str) -> str:
        return f"Dear {name},"


class SmsGreeter:
    def greet(self, name: str) -> str:
        return f"hi {name}"


def main() -> None:
    container = Container()
    container.register(Greeter, "email", EmailGreeter, Lifetime.SCOPED)
    container.register(Greeter, "sms", SmsGreeter, Lifetime.SCOPED)

    with container.enter_scope() as first:
        email = container.resolve(first, Greeter, "email")
        print(email.greet("Bethany"))  # => Dear Bethany,
        print(f"same_in_scope={email is container.resolve(first, Greeter, 'email')}")  # => same_in_scope=True

        with container.enter_scope() as second:
            other = container.resolve(second, Greeter, "email")
        print(f"same_across_scopes={email is other}")  # => same_across_scopes=False

        try:
            container.resolve(first, Greeter, "fax")
        except BindingNotFoundError as error:
            print(f"missing={type(error).__name__}")  # => missing=BindingNotFoundError
        print(f"try_resolve_fax={container.try_resolve(first, Greeter, 'fax')}")  # => try_resolve_fax=None


if __name__ == "__main__":
    main()
