"""An in-memory source driver, registered as ``stub``."""

from __future__ import annotations

import errno
import io
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from schemashift.source.driver import Driver, register
from schemashift.source.migrations import Migrations


def _not_exist(op: str, path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, f"{op}: file does not exist", path)


@dataclass
class StubConfig:
    """Configuration for the stub source; it has no settings."""


@dataclass
class StubSource(Driver):
    """A source whose migrations are set directly in ``migrations``.

    The body of each migration is its identifier.
    """

    url: str = ""
    instance: Any = None
    migrations: Migrations = field(default_factory=Migrations)
    config: StubConfig | None = None
    closed: bool = field(default=False, repr=False, compare=False)

    def open(self, url: str) -> "StubSource":
        return StubSource(url=url, migrations=Migrations(), config=StubConfig())

    def close(self) -> None:
        """Mark the source as closed; there is nothing else to release."""
        self.closed = True

    def first(self) -> int:
        version = self.migrations.first()
        if version is None:
            raise _not_exist("first", self.url)
        return version

    def prev(self, version: int) -> int:
        found = self.migrations.prev(version)
        if found is None:
            raise _not_exist(f"prev for version {version}", self.url)
        return found

    def next(self, version: int) -> int:
        found = self.migrations.next(version)
        if found is None:
            raise _not_exist(f"next for version {version}", self.url)
        return found

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        migration = self.migrations.up(version)
        if migration is None:
            raise _not_exist(f"read up version {version}", self.url)
        return io.BytesIO(migration.identifier.encode()), f"{version}.up.stub"

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        migration = self.migrations.down(version)
        if migration is None:
            raise _not_exist(f"read down version {version}", self.url)
        return io.BytesIO(migration.identifier.encode()), f"{version}.down.stub"


def with_instance(instance: Any, config: StubConfig | None) -> StubSource:
    """Return a stub source wrapping ``instance``."""
    return StubSource(instance=instance, migrations=Migrations(), config=config)


register("stub", StubSource())