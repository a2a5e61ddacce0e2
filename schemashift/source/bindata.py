"""A source driver reading migrations from named in-memory assets."""

from __future__ import annotations

import errno
import io
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Sequence

from schemashift.exceptions import MigrateError, ParseError
from schemashift.source.driver import Driver, register
from schemashift.source.migrations import Migrations
from schemashift.source.parse import parse

AssetFunc = Callable[[str], bytes]

_PATH = "<bindata>"


def _not_exist(op: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, f"{op}: file does not exist", _PATH)


@dataclass
class AssetSource:
    """Asset names and a function returning the bytes of a named asset."""

    names: Sequence[str]
    asset_func: AssetFunc


def resource(names: Sequence[str], asset_func: AssetFunc) -> AssetSource:
    """Bundle asset names with the function that loads them."""
    return AssetSource(names=list(names), asset_func=asset_func)


@dataclass
class BindataSource(Driver):
    """A source over an ``AssetSource``; create it with ``with_instance``."""

    asset_source: AssetSource | None = None
    migrations: Migrations = field(default_factory=Migrations)
    path: str = _PATH

    def open(self, url: str) -> Driver:
        raise ValueError("bindata source cannot be opened from a URL; use with_instance")

    def close(self) -> None:
        return None

    def first(self) -> int:
        version = self.migrations.first()
        if version is None:
            raise _not_exist("first")
        return version

    def prev(self, version: int) -> int:
        found = self.migrations.prev(version)
        if found is None:
            raise _not_exist(f"prev for version {version}")
        return found

    def next(self, version: int) -> int:
        found = self.migrations.next(version)
        if found is None:
            raise _not_exist(f"next for version {version}")
        return found

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        migration = self.migrations.up(version)
        if migration is None or self.asset_source is None:
            raise _not_exist(f"read version {version}")
        body = self.asset_source.asset_func(migration.raw)
        return io.BytesIO(body), migration.identifier

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        migration = self.migrations.down(version)
        if migration is None or self.asset_source is None:
            raise _not_exist(f"read version {version}")
        body = self.asset_source.asset_func(migration.raw)
        return io.BytesIO(body), migration.identifier


def with_instance(instance: AssetSource) -> BindataSource:
    """Return a source indexing the migration assets of ``instance``."""
    if not isinstance(instance, AssetSource):
        raise TypeError("expects AssetSource")
    migrations = Migrations()
    for name in instance.names:
        try:
            migration = parse(name)
        except ParseError:
            continue
        if not migrations.append(migration):
            raise MigrateError(f"unable to parse file {name}")
    return BindataSource(asset_source=instance, migrations=migrations)


register("bindata", BindataSource())