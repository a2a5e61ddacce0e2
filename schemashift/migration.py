"""A single migration as it is handed from a source to a database."""

from __future__ import annotations

import io
from datetime import datetime
from typing import BinaryIO

DEFAULT_BUFFER_SIZE = 100_000
"""Bytes read ahead for every prefetched migration."""


class Migration:
    """A migration body with the version it moves from and the one it moves to.

    A migration without a body is a nil migration: it only changes the
    recorded version. A target version of -1 means no version at all.
    """

    def __init__(
        self,
        body: BinaryIO | None,
        identifier: str,
        version: int,
        target_version: int,
    ) -> None:
        now = datetime.now()
        self.identifier = identifier
        self.version = version
        self.target_version = target_version
        self.body = body
        self.buffered_body: BinaryIO | None = None
        self.buffer_size = 0
        self.scheduled = now
        self.started_buffering: datetime | None = None
        self.finished_buffering: datetime | None = None
        self.finished_reading: datetime | None = None
        self.bytes_read = 0

        if body is None:
            if not identifier:
                self.identifier = "<empty>"
            self.started_buffering = now
            self.finished_buffering = now
            self.finished_reading = now
        else:
            self.buffer_size = DEFAULT_BUFFER_SIZE

    def __str__(self) -> str:
        return f"{self.identifier} [{self.version}=>{self.target_version}]"

    def __repr__(self) -> str:
        return f"Migration({self})"

    def log_string(self) -> str:
        """Describe the migration for humans, e.g. ``3/u create_users``."""
        direction = "d" if self.target_version < self.version else "u"
        return f"{self.version}/{direction} {self.identifier}"

    def buffer(self) -> None:
        """Read the whole body into ``buffered_body`` and close the body."""
        if self.body is None:
            return

        self.started_buffering = datetime.now()
        try:
            head = self.body.read(self.buffer_size) if self.buffer_size > 0 else b""
            self.finished_buffering = datetime.now()
            data = (head or b"") + (self.body.read() or b"")
        finally:
            self.body.close()

        self.buffered_body = io.BytesIO(data)
        self.finished_reading = datetime.now()
        self.bytes_read = len(data)