from __future__ import annotations

import pytest

from keywire import Container, Lifetime, Scope


class _Service:
    pass


class _FakeService(_Service):
    pass


@pytest.fixture()
def keywire_container() -> Container:
    container = Container()
    container.add_factory(_FakeService, provides=_Service, lifetime=Lifetime.SCOPED)
    return container


def test_keywire_scope_resolves_from_overridden_container(
    keywire_container: Container,
    keywire_scope: Scope,
) -> None:
    assert keywire_scope.container is keywire_container
    assert keywire_scope.name == "test"
    assert isinstance(keywire_scope.resolve(_Service), _FakeService)


def test_keywire_scope_is_shared_within_one_test(keywire_scope: Scope) -> None:
    assert keywire_scope.resolve(_Service) is keywire_scope.resolve(_Service)
    assert not keywire_scope.closed
