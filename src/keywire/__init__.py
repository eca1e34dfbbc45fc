from keywire.container import Container
from keywire.exceptions import (
    BindingNotFoundError,
    CircularDependencyError,
    DuplicateBindingError,
    InvalidBindingError,
    KeywireError,
    LifetimeMismatchError,
    RegistryFrozenError,
    ScopeClosedError,
    ScopeMismatchError,
)
from keywire.lock_mode import LockMode
from keywire.registry import Binding, BindingKey, BindingKind, Lifetime, Registry
from keywire.scope import Scope

__all__ = [
    "Binding",
    "BindingKey",
    "BindingKind",
    "BindingNotFoundError",
    "CircularDependencyError",
    "Container",
    "DuplicateBindingError",
    "InvalidBindingError",
    "KeywireError",
    "LifetimeMismatchError",
    "LockMode",
    "Registry",
    "RegistryFrozenError",
    "Scope",
    "ScopeClosedError",
    "ScopeMismatchError",
]
