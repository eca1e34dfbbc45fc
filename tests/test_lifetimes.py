"""Tests for singleton, scoped and transient lifetimes."""

import uuid
from dataclasses import dataclass, field

import pytest

from keywire import BindingNotFoundError, Container, Lifetime


@dataclass
class Session:
    """A session with a unique ID for telling instances apart."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class Greeter:
    def greet(self, name: str) -> str:
        raise NotImplementedError


class EmailGreeter(Greeter):
    def greet(self, name: str) -> str:
        return f"Dear {name},"


class SmsGreeter(Greeter):
    def greet(self, name: str) -> str:
        return f"hi {name}"


class TestLifetimeEnum:
    def test_members(self) -> None:
        """Lifetime has exactly the three policies."""
        assert {member.name for member in Lifetime} == {"SINGLETON", "SCOPED", "TRANSIENT"}


class TestScoped:
    def test_same_scope_shares_instance(self, container: Container) -> None:
        """Two resolutions in one scope return the identical instance."""
        container.register(Session, None, Session, Lifetime.SCOPED)

        with container.enter_scope() as scope:
            first = container.resolve(scope, Session)
            second = container.resolve(scope, Session)

        assert first is second

    def test_different_scopes_different_instances(self, container: Container) -> None:
        """Resolutions in distinct scopes return distinct instances."""
        container.register(Session, None, Session, Lifetime.SCOPED)

        with container.enter_scope() as scope1:
            first = container.resolve(scope1, Session)
        with container.enter_scope() as scope2:
            second = container.resolve(scope2, Session)

        assert first is not second
        assert first.id != second.id

    def test_concurrently_open_scopes_are_isolated(self, container: Container) -> None:
        """Two scopes open at the same time do not share scoped instances."""
        container.register(Session, None, Session, Lifetime.SCOPED)

        scope1 = container.enter_scope()
        scope2 = container.enter_scope()
        try:
            assert scope1.resolve(Session) is not scope2.resolve(Session)
            assert scope1.resolve(Session) is scope1.resolve(Session)
        finally:
            container.end_scope(scope1)
            container.end_scope(scope2)

    def test_keys_are_cached_separately(self, container: Container) -> None:
        """Scoped cache entries are per (interface, key)."""
        container.register(Greeter, "email", EmailGreeter, Lifetime.SCOPED)
        container.register(Greeter, "sms", SmsGreeter, Lifetime.SCOPED)

        with container.enter_scope() as scope:
            email = scope.resolve(Greeter, "email")
            sms = scope.resolve(Greeter, "sms")

        assert isinstance(email, EmailGreeter)
        assert isinstance(sms, SmsGreeter)
        assert email is not sms


class TestSingleton:
    def test_shared_across_scopes(self, container: Container) -> None:
        """Every scope receives the same singleton instance."""
        container.register(Session, None, Session, Lifetime.SINGLETON)

        instances = []
        for _ in range(5):
            with container.enter_scope() as scope:
                instances.append(scope.resolve(Session))

        assert all(instance is instances[0] for instance in instances)

    def test_created_lazily(self, container: Container) -> None:
        """The singleton factory runs on first resolution only."""
        calls: list[int] = []

        def build() -> Session:
            calls.append(1)
            return Session()

        container.register(Session, None, build, Lifetime.SINGLETON)
        assert calls == []

        with container.enter_scope() as scope:
            scope.resolve(Session)
            scope.resolve(Session)

        assert calls == [1]

    def test_survives_scope_end(self, container: Container) -> None:
        """Ending a scope does not discard singletons."""
        container.register(Session, None, Session, Lifetime.SINGLETON)

        with container.enter_scope() as scope:
            first = scope.resolve(Session)
        with container.enter_scope() as scope:
            second = scope.resolve(Session)

        assert first is second

    def test_none_is_a_valid_singleton_value(self, container: Container) -> None:
        """A factory returning None is still created only once."""
        calls: list[int] = []

        def build() -> None:
            calls.append(1)

        container.register("nothing", None, build, Lifetime.SINGLETON)

        with container.enter_scope() as scope:
            assert scope.resolve("nothing") is None
            assert scope.resolve("nothing") is None

        assert calls == [1]

    def test_unlocked_container_still_caches(self, container_unlocked: Container) -> None:
        """LockMode.NONE skips locking but keeps one instance."""
        container_unlocked.register(Session, None, Session, Lifetime.SINGLETON)

        with container_unlocked.enter_scope() as scope:
            assert scope.resolve(Session) is scope.resolve(Session)

    def test_add_instance(self, container: Container) -> None:
        """A prebuilt instance is returned as-is from every scope."""
        session = Session()
        container.add_instance(session, key="current")

        with container.enter_scope() as scope1, container.enter_scope() as scope2:
            assert scope1.resolve(Session, "current") is session
            assert scope2.resolve(Session, "current") is session


class TestTransient:
    def test_new_instance_every_resolution(self, container: Container) -> None:
        """Transient resolutions never reuse an instance, even in one scope."""
        container.register(Session, None, Session, Lifetime.TRANSIENT)

        with container.enter_scope() as scope:
            sessions = [scope.resolve(Session) for _ in range(3)]

        assert len({id(session) for session in sessions}) == 3

    def test_not_cached_in_scope(self, container: Container) -> None:
        """Transient instances are never stored in the scope cache."""
        container.register(Session, None, Session, Lifetime.TRANSIENT)

        with container.enter_scope() as scope:
            scope.resolve(Session)
            assert (Session, None) not in scope


class TestKeyedGreeterExample:
    def test_greeter_walkthrough(self, container: Container) -> None:
        """Email/sms greeters resolve per key; fax is not registered."""
        container.register(Greeter, "email", EmailGreeter, Lifetime.SCOPED)
        container.register(Greeter, "sms", SmsGreeter, Lifetime.SCOPED)

        s1 = container.begin_scope()
        first = container.resolve(s1, Greeter, "email")
        assert container.resolve(s1, Greeter, "email") is first
        assert first.greet("Bethany") == "Dear Bethany,"

        s2 = container.begin_scope()
        assert container.resolve(s2, Greeter, "email") is not first

        with pytest.raises(BindingNotFoundError):
            container.resolve(s1, Greeter, "fax")
        assert container.try_resolve(s1, Greeter, "fax") is None

        container.end_scope(s1)
        container.end_scope(s2)
