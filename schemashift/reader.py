"""Walks a source and yields the migrations needed to reach a version."""

from __future__ import annotations

import errno
import logging
from typing import Callable, Iterator

from schemashift.exceptions import NoChangeError, ShortLimitError
from schemashift.migration import Migration
from schemashift.source.driver import Driver


class Reader:
    """Produces migrations from a source driver.

    The ``read*`` methods are generators: they yield migrations in the order
    they must be applied and raise once something goes wrong, after having
    yielded everything that came before. A missing version raises
    ``FileNotFoundError``.
    """

    def __init__(
        self,
        source: Driver,
        should_stop: Callable[[], bool] | None = None,
        logger: logging.Logger | None = None,
        prefetch: int = 10,
    ) -> None:
        self._source = source
        self._should_stop = should_stop
        self._logger = logger
        self.prefetch = prefetch

    def version_exists(self, version: int) -> None:
        """Raise FileNotFoundError unless ``version`` has an up or down migration."""
        missing: FileNotFoundError | None = None
        for read in (self._source.read_up, self._source.read_down):
            try:
                body, _ = read(version)
            except FileExistsError:
                return
            except FileNotFoundError as err:
                missing = err
                continue
            body.close()
            return

        error = FileNotFoundError(errno.ENOENT, f"no migration found for version {version}")
        error.__cause__ = missing
        self._log_error(error)
        raise error

    def new_migration(self, version: int, target_version: int) -> Migration:
        """Build the migration moving from ``version`` to ``target_version``.

        A missing body gives a nil migration.
        """
        read = self._source.read_up if target_version >= version else self._source.read_down
        try:
            body, identifier = read(version)
        except FileNotFoundError:
            migration = Migration(None, "", version, target_version)
        else:
            migration = Migration(body, identifier, version, target_version)

        if self.prefetch > 0 and migration.body is not None:
            self._log_verbose("Start buffering %s", migration.log_string())
        else:
            self._log_verbose("Scheduled %s", migration.log_string())
        return migration

    def read(self, from_version: int, to_version: int) -> Iterator[Migration]:
        """Yield migrations leading from ``from_version`` to ``to_version``."""
        current = from_version
        if current >= 0:
            self.version_exists(current)
        if to_version >= 0:
            self.version_exists(to_version)
        if current == to_version:
            raise NoChangeError()

        if current < to_version:
            if current == -1:
                first = self._source.first()
                yield self._prepared(first, first)
                current = first
            while current < to_version:
                if self._stopped():
                    return
                following = self._source.next(current)
                yield self._prepared(following, following)
                current = following
        else:
            while current > to_version and current >= 0:
                if self._stopped():
                    return
                try:
                    previous = self._source.prev(current)
                except FileNotFoundError:
                    if to_version == -1:
                        yield self._prepared(current, -1)
                        return
                    raise
                yield self._prepared(current, previous)
                current = previous

    def read_up(self, from_version: int, limit: int) -> Iterator[Migration]:
        """Yield up to ``limit`` up migrations; a limit of -1 means all."""
        current = from_version
        if current >= 0:
            self.version_exists(current)
        if limit == 0:
            raise NoChangeError()

        count = 0
        while limit == -1 or count < limit:
            if self._stopped():
                return

            if current == -1:
                first = self._source.first()
                yield self._prepared(first, first)
                current = first
                count += 1
                continue

            try:
                following = self._source.next(current)
            except FileNotFoundError:
                if limit == -1 and count == 0:
                    raise NoChangeError() from None
                if limit == -1:
                    return
                if count == 0:
                    raise
                raise ShortLimitError(limit - count) from None

            yield self._prepared(following, following)
            current = following
            count += 1

    def read_down(self, from_version: int, limit: int) -> Iterator[Migration]:
        """Yield up to ``limit`` down migrations; a limit of -1 means all."""
        current = from_version
        if current >= 0:
            self.version_exists(current)
        if limit == 0:
            raise NoChangeError()
        if current == -1 and limit == -1:
            raise NoChangeError()
        if current == -1 and limit > 0:
            raise FileNotFoundError(errno.ENOENT, "no version to migrate down from")

        count = 0
        while limit == -1 or count < limit:
            if self._stopped():
                return

            try:
                previous = self._source.prev(current)
            except FileNotFoundError:
                if limit == -1 or limit - count > 0:
                    first = self._source.first()
                    yield self._prepared(first, -1)
                    count += 1
                if count < limit:
                    raise ShortLimitError(limit - count) from None
                return

            yield self._prepared(current, previous)
            current = previous
            count += 1

    def _prepared(self, version: int, target_version: int) -> Migration:
        migration = self.new_migration(version, target_version)
        try:
            migration.buffer()
        except OSError as err:
            self._log_error(err)
        return migration

    def _stopped(self) -> bool:
        return bool(self._should_stop is not None and self._should_stop())

    def _log_verbose(self, message: str, *args: object) -> None:
        if self._logger is not None:
            self._logger.debug(message, *args)

    def _log_error(self, err: BaseException) -> None:
        if self._logger is not None:
            self._logger.error("error: %s", err)