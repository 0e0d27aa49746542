"""Per-parse string deduplication."""
from __future__ import annotations


class StringPool:
    """Hand out one shared instance per distinct string value.

    Node names and timestamps repeat heavily across a large log, so every
    parser keeps one pool for the duration of a reconstruction and clears
    it afterwards. The interned strings stay alive through the models that
    reference them.
    """

    def __init__(self) -> None:
        self._pool: dict[str, str] = {}

    def intern(self, value: str) -> str:
        existing = self._pool.get(value)
        if existing is not None:
            return existing
        self._pool[value] = value
        return value

    def size(self) -> int:
        return len(self._pool)

    def clear(self) -> None:
        self._pool.clear()
