"""Runs migrations from a source against a database."""

from __future__ import annotations

import io
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import BinaryIO, Iterable, Iterator
from urllib.parse import urlsplit

from schemashift.exceptions import (
    DirtyError,
    InvalidVersionError,
    LockedError,
    LockTimeoutError,
    MigrateError,
    NilVersionError,
    NoChangeError,
)
from schemashift.migration import Migration
from schemashift.reader import Reader
from schemashift.source.driver import Driver, open_source
from schemashift.util import MultiError

NIL_VERSION = -1
"""The version recorded when no migration is applied."""

DEFAULT_PREFETCH_MIGRATIONS = 10
"""Number of migrations read ahead from the source."""

DEFAULT_LOCK_TIMEOUT = 15.0
"""Seconds a database driver has to acquire its lock."""


class DatabaseDriver(ABC):
    """A database that migrations are applied to."""

    @abstractmethod
    def lock(self) -> None:
        """Acquire the database's migration lock."""

    @abstractmethod
    def unlock(self) -> None:
        """Release the database's migration lock."""

    @abstractmethod
    def version(self) -> tuple[int, bool]:
        """Return the current version (-1 for none) and whether it is dirty."""

    @abstractmethod
    def set_version(self, version: int, dirty: bool) -> None:
        """Record ``version`` with the given dirty state."""

    @abstractmethod
    def run(self, body: BinaryIO) -> None:
        """Execute a migration body."""

    @abstractmethod
    def drop(self) -> None:
        """Delete everything in the database."""

    @abstractmethod
    def close(self) -> None:
        """Release the database connection."""


class Migrate:
    """Moves a database between the versions a source provides.

    ``logger``, ``prefetch_migrations`` and ``lock_timeout`` (seconds) may be
    set after construction.
    """

    def __init__(
        self,
        source_name: str,
        source_driver: Driver,
        database_name: str,
        database_driver: DatabaseDriver,
    ) -> None:
        self.source_name = source_name
        self.source_driver = source_driver
        self.database_name = database_name
        self.database_driver = database_driver
        self.logger: logging.Logger | None = None
        self.prefetch_migrations = DEFAULT_PREFETCH_MIGRATIONS
        self.lock_timeout = DEFAULT_LOCK_TIMEOUT
        self._stop_event = threading.Event()
        self._locked_mutex = threading.Lock()
        self._is_locked = False

    def __enter__(self) -> "Migrate":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the source and the database, raising whatever they raised."""
        self._log_verbose("Closing source and database")
        errors: list[Exception] = []
        for closer in (self.source_driver.close, self.database_driver.close):
            try:
                closer()
            except Exception as err:
                errors.append(err)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise MultiError(*errors)

    def migrate(self, version: int) -> None:
        """Migrate up or down to ``version``."""
        with self._holding_lock():
            current = self._clean_version()
            self._run_migrations(self._reader().read(current, version))

    def steps(self, n: int) -> None:
        """Migrate ``n`` steps up, or ``-n`` steps down if ``n`` is negative."""
        if n == 0:
            raise NoChangeError()
        with self._holding_lock():
            current = self._clean_version()
            reader = self._reader()
            if n > 0:
                migrations = reader.read_up(current, n)
            else:
                migrations = reader.read_down(current, -n)
            self._run_migrations(migrations)

    def up(self) -> None:
        """Apply every up migration after the current version."""
        with self._holding_lock():
            current = self._clean_version()
            self._run_migrations(self._reader().read_up(current, -1))

    def down(self) -> None:
        """Apply every down migration from the current version."""
        with self._holding_lock():
            current = self._clean_version()
            self._run_migrations(self._reader().read_down(current, -1))

    def drop(self) -> None:
        """Delete everything in the database."""
        with self._holding_lock():
            self.database_driver.drop()

    def run(self, *args: Migration) -> None:
        """Apply the given migrations without consulting the source."""
        if not args:
            raise NoChangeError()
        with self._holding_lock():
            self._clean_version()
            self._run_migrations(self._scheduled(args))

    def force(self, version: int) -> None:
        """Record ``version`` as current and clean, whatever the state."""
        if version < -1:
            raise InvalidVersionError()
        with self._holding_lock():
            self.database_driver.set_version(version, False)

    def version(self) -> tuple[int, bool]:
        """Return the current version and dirty state.

        Raises NilVersionError if no migration has been applied.
        """
        version, dirty = self.database_driver.version()
        if version == NIL_VERSION:
            raise NilVersionError()
        return version, dirty

    def request_stop(self) -> None:
        """Stop applying migrations at the next safe point."""
        self._stop_event.set()

    def _reader(self) -> Reader:
        return Reader(
            self.source_driver,
            should_stop=self._stopped,
            logger=self.logger,
            prefetch=self.prefetch_migrations,
        )

    def _clean_version(self) -> int:
        version, dirty = self.database_driver.version()
        if dirty:
            raise DirtyError(version)
        return version

    def _scheduled(self, migrations: Iterable[Migration]) -> Iterator[Migration]:
        for migration in migrations:
            if self.prefetch_migrations > 0 and migration.body is not None:
                self._log_verbose("Start buffering %s", migration.log_string())
            else:
                self._log_verbose("Scheduled %s", migration.log_string())
            if migration.body is not None and migration.buffered_body is None:
                try:
                    migration.buffer()
                except OSError as err:
                    self._log_error(err)
            yield migration

    def _run_migrations(self, migrations: Iterable[Migration]) -> None:
        for migration in migrations:
            if self._stopped():
                return

            self.database_driver.set_version(migration.target_version, True)

            if migration.body is not None:
                self._log_verbose("Read and execute %s", migration.log_string())
                body = migration.buffered_body or io.BytesIO(b"")
                try:
                    self.database_driver.run(body)
                except Exception as err:
                    raise MigrateError(f"{migration.log_string()} {err}") from err

            self.database_driver.set_version(migration.target_version, False)

            if self.logger is not None:
                end = datetime.now()
                read_time = _elapsed(migration.started_buffering, migration.finished_reading)
                run_time = _elapsed(migration.finished_reading, end)
                if self.logger.isEnabledFor(logging.DEBUG):
                    self.logger.info(
                        "Finished %s (read %s, ran %s)",
                        migration.log_string(),
                        read_time,
                        run_time,
                    )
                else:
                    self.logger.info("%s (%s)", migration.log_string(), read_time + run_time)

    @contextmanager
    def _holding_lock(self) -> Iterator[None]:
        self._lock()
        try:
            yield
        except Exception as err:
            try:
                self._unlock()
            except Exception as unlock_err:
                raise MultiError(err, unlock_err) from err
            raise
        self._unlock()

    def _lock(self) -> None:
        with self._locked_mutex:
            if self._is_locked:
                raise LockedError()

            outcome: dict[str, BaseException] = {}

            def attempt() -> None:
                try:
                    self.database_driver.lock()
                except BaseException as err:
                    outcome["error"] = err

            worker = threading.Thread(target=attempt, daemon=True)
            worker.start()
            worker.join(self.lock_timeout)
            if worker.is_alive():
                raise LockTimeoutError()
            if "error" in outcome:
                raise outcome["error"]
            self._is_locked = True

    def _unlock(self) -> None:
        with self._locked_mutex:
            self.database_driver.unlock()
            self._is_locked = False

    def _stopped(self) -> bool:
        return self._stop_event.is_set()

    def _log_verbose(self, message: str, *args: object) -> None:
        if self.logger is not None:
            self.logger.debug(message, *args)

    def _log_error(self, err: BaseException) -> None:
        if self.logger is not None:
            self.logger.error("error: %s", err)


def _elapsed(start: datetime | None, end: datetime | None) -> timedelta:
    if start is None or end is None:
        return timedelta(0)
    return end - start


def new_with_database_instance(
    source_url: str, database_name: str, database_driver: DatabaseDriver
) -> Migrate:
    """Create a Migrate from a source URL and an existing database driver."""
    scheme = urlsplit(source_url).scheme
    if not scheme:
        raise ValueError(f"failed to parse scheme from source URL {source_url!r}")
    source_driver = open_source(source_url)
    return Migrate(scheme, source_driver, database_name, database_driver)