"""Shared pytest fixtures for keywire tests."""

import pytest

from keywire import Container, LockMode, Registry


@pytest.fixture()
def container() -> Container:
    """Default container with thread locking and freeze-on-first-scope."""
    return Container()


@pytest.fixture()
def container_unlocked() -> Container:
    """Container with singleton locking disabled."""
    return Container(lock_mode=LockMode.NONE)


@pytest.fixture()
def container_unfrozen() -> Container:
    """Container whose registry stays writable after scopes begin."""
    return Container(freeze_on_first_scope=False)


@pytest.fixture()
def registry() -> Registry:
    """Empty registry."""
    return Registry()
