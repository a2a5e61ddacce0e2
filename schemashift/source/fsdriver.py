"""Source drivers that read migrations from a directory-like file system.

A file system is any object offering ``joinpath``, ``iterdir`` and, on its
entries, ``name``, ``is_dir`` and ``open``: ``pathlib.Path`` and
``zipfile.Path`` both qualify. Strings and path-like objects are taken as
local directories.
"""

from __future__ import annotations

import errno
import os
import posixpath
from pathlib import Path
from typing import Any, BinaryIO

from schemashift.exceptions import DuplicateMigrationError, ParseError
from schemashift.source.driver import Driver
from schemashift.source.migrations import Migrations
from schemashift.source.parse import parse


def _not_exist(op: str, path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, f"{op}: file does not exist", path)


class PartialDriver(Driver):
    """Everything a file-system source needs except ``open``.

    Subclasses add ``open``; call ``init`` before use.
    """

    def __init__(self) -> None:
        self._migrations = Migrations()
        self._fs: Any = None
        self._root: Any = None
        self._path = ""

    def init(self, fs: Any, path: str) -> None:
        """Index the migration files found in ``path`` within ``fs``."""
        if isinstance(fs, (str, os.PathLike)):
            fs = Path(fs)
        relative = path.strip("/")
        root = fs if relative in ("", ".") else fs.joinpath(relative)

        migrations = Migrations()
        for entry in sorted(root.iterdir(), key=lambda e: e.name):
            if entry.is_dir():
                continue
            try:
                migration = parse(entry.name)
            except ParseError:
                continue
            if not migrations.append(migration):
                raise DuplicateMigrationError(migration, entry.name)

        self._fs = fs
        self._root = root
        self._path = path
        self._migrations = migrations

    def close(self) -> None:
        """Close the file system if it can be closed."""
        closer = getattr(self._fs, "close", None)
        if callable(closer):
            closer()

    def first(self) -> int:
        version = self._migrations.first()
        if version is None:
            raise _not_exist("first", self._path)
        return version

    def prev(self, version: int) -> int:
        found = self._migrations.prev(version)
        if found is None:
            raise _not_exist(f"prev for version {version}", self._path)
        return found

    def next(self, version: int) -> int:
        found = self._migrations.next(version)
        if found is None:
            raise _not_exist(f"next for version {version}", self._path)
        return found

    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        migration = self._migrations.up(version)
        if migration is None:
            raise _not_exist(f"read up for version {version}", self._path)
        return self._open(migration.raw), migration.identifier

    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        migration = self._migrations.down(version)
        if migration is None:
            raise _not_exist(f"read down for version {version}", self._path)
        return self._open(migration.raw), migration.identifier

    def _open(self, raw: str) -> BinaryIO:
        location = posixpath.join(self._path, raw)
        try:
            return self._root.joinpath(raw).open("rb")
        except OSError as err:
            # Some file systems leave the path out, which hides the culprit.
            if err.filename is None:
                raise type(err)(err.errno, err.strerror or str(err), location) from err
            raise


class FsDriver(PartialDriver):
    """A pass-through driver over a file system object given directly."""

    def open(self, url: str) -> Driver:
        raise RuntimeError("open() cannot be called on the file system pass-through driver")


def new(fs: Any, path: str) -> FsDriver:
    """Return a driver reading migrations from ``path`` within ``fs``."""
    driver = FsDriver()
    driver.init(fs, path)
    return driver