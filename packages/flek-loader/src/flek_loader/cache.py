"""In-memory artifact cache.

Each key holds either a compiled artifact or the FAILED sentinel once its fetch
has completed. A key is written at most once per cache; there is no eviction,
so entries live as long as the owning loader.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import Enum
from typing import Any, Union

Artifact = Callable[..., Any]


class _Failed(Enum):
    """Sentinel type for keys whose fetch ended in failure."""

    FAILED = "failed"

    def __repr__(self) -> str:
        return "FAILED"


FAILED = _Failed.FAILED

CacheEntry = Union[Artifact, _Failed]


class KeyState(str, Enum):
    """Lifecycle of a single artifact key."""

    UNREQUESTED = "unrequested"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


class ArtifactCache:
    """Mapping from artifact key to compiled artifact or FAILED.

    Example:
        >>> cache = ArtifactCache()
        >>> cache.get("http://localhost:3000/a.py") is None
        True
        >>> cache.set("http://localhost:3000/a.py", FAILED)
        >>> cache.get("http://localhost:3000/a.py")
        FAILED
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> CacheEntry | None:
        """Return the artifact, FAILED, or None when the key is absent."""
        return self._entries.get(key)

    def set(self, key: str, value: CacheEntry) -> None:
        """Record the terminal outcome for a key.

        Args:
            key: Artifact key.
            value: Compiled artifact or FAILED.

        Raises:
            RuntimeError: If the key already holds an outcome.
        """
        if key in self._entries:
            msg = f"Artifact cache entry for {key!r} is already set"
            raise RuntimeError(msg)
        self._entries[key] = value

    def is_failed(self, key: str) -> bool:
        return self._entries.get(key) is FAILED

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
