"""In-memory index of migration files, ordered by version."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    """Direction of a migration file."""

    DOWN = "down"
    UP = "up"


@dataclass(frozen=True)
class Migration:
    """A migration file as found in a source."""

    version: int
    identifier: str = ""
    direction: Direction = Direction.UP
    raw: str = ""


class Migrations:
    """Migrations grouped by version with a sorted version index."""

    def __init__(self) -> None:
        self._index: list[int] = []
        self._migrations: dict[int, dict[Direction, Migration]] = {}

    def append(self, migration: Migration | None) -> bool:
        """Add ``migration``; return False if it is None or a duplicate."""
        if migration is None:
            return False
        by_direction = self._migrations.get(migration.version)
        if by_direction is None:
            by_direction = self._migrations[migration.version] = {}
            bisect.insort(self._index, migration.version)
        direction = Direction(migration.direction)
        if direction in by_direction:
            return False
        by_direction[direction] = migration
        return True

    def first(self) -> int | None:
        """Return the lowest version, or None if there is none."""
        return self._index[0] if self._index else None

    def prev(self, version: int) -> int | None:
        """Return the version before ``version``, or None."""
        pos = self._find_pos(version)
        if pos >= 1:
            return self._index[pos - 1]
        return None

    def next(self, version: int) -> int | None:
        """Return the version after ``version``, or None."""
        pos = self._find_pos(version)
        if 0 <= pos < len(self._index) - 1:
            return self._index[pos + 1]
        return None

    def up(self, version: int) -> Migration | None:
        """Return the up migration for ``version``, or None."""
        return self._migrations.get(version, {}).get(Direction.UP)

    def down(self, version: int) -> Migration | None:
        """Return the down migration for ``version``, or None."""
        return self._migrations.get(version, {}).get(Direction.DOWN)

    def _find_pos(self, version: int) -> int:
        ix = bisect.bisect_left(self._index, version)
        if ix < len(self._index) and self._index[ix] == version:
            return ix
        return -1