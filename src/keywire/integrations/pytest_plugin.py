from __future__ import annotations

from collections.abc import Iterator

import pytest

from keywire.container import Container
from keywire.scope import Scope

_TEST_SCOPE_NAME = "test"


@pytest.fixture()
def keywire_container() -> Container:
    """Fixture hook for the plugin-managed test container.

    Users must override this fixture in their own test suite to provide
    registrations for the bindings under test.

    """
    msg = (
        "The keywire pytest plugin requires overriding the 'keywire_container' fixture in your "
        "test suite. Define @pytest.fixture() def keywire_container() -> Container: ... "
        "and return a configured container."
    )
    raise RuntimeError(msg)


@pytest.fixture()
def keywire_scope(keywire_container: Container) -> Iterator[Scope]:
    """Open a scope on ``keywire_container`` for one test and close it afterwards."""
    with keywire_container.enter_scope(_TEST_SCOPE_NAME) as scope:
        yield scope
