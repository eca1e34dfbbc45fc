from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for singleton creation.

    Use these values for binding-level ``lock_mode`` or the container-level
    default. Scoped instances are always created under their scope's own lock,
    so this setting only affects the process-wide singleton cache.
    """

    THREAD = "thread"
    """Guard first creation with a per-binding ``threading.Lock``."""

    NONE = "none"
    """Disable locking; only safe when every scope runs on one thread."""
