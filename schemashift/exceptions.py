"""Errors raised while reading and applying migrations."""

from __future__ import annotations

from typing import Any


class MigrateError(Exception):
    """Base class for all migration errors."""

    default_message = "migration error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(self.default_message if message is None else message)


class NoChangeError(MigrateError):
    """Nothing had to be done."""

    default_message = "no change"


class NilVersionError(MigrateError):
    """No migration has been applied yet."""

    default_message = "no migration"


class InvalidVersionError(MigrateError, ValueError):
    """A version below -1 was given."""

    default_message = "version must be >= -1"


class LockedError(MigrateError):
    """The database is already locked by this instance."""

    default_message = "database locked"


class LockTimeoutError(MigrateError, TimeoutError):
    """The database lock could not be acquired in time."""

    default_message = "timeout: can't acquire database lock"


class ShortLimitError(MigrateError):
    """Fewer migrations were available than the requested limit."""

    def __init__(self, short: int) -> None:
        self.short = short
        super().__init__(f"limit {short} short")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ShortLimitError):
            return NotImplemented
        return self.short == other.short

    def __hash__(self) -> int:
        return hash((ShortLimitError, self.short))


class DirtyError(MigrateError):
    """The database was left in a dirty state at some version."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Dirty database version {version}. Fix and force version.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DirtyError):
            return NotImplemented
        return self.version == other.version

    def __hash__(self) -> int:
        return hash((DirtyError, self.version))


class ParseError(MigrateError, ValueError):
    """A file name does not match the migration naming pattern."""

    default_message = "no match"


class DuplicateMigrationError(MigrateError):
    """Two migration files share the same version and direction."""

    def __init__(self, migration: Any, name: str) -> None:
        self.migration = migration
        self.name = name
        super().__init__(f"duplicate migration file: {name}")