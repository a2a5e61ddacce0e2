"""Parsing of migration file names such as ``123_name.up.sql``."""

from __future__ import annotations

import re

from schemashift.exceptions import ParseError
from schemashift.source.migrations import Direction, Migration

REGEX = re.compile(
    r"([0-9]+)_(.*)\.(" + Direction.DOWN.value + "|" + Direction.UP.value + r")\.(.*)"
)

_MAX_VERSION = 2**64 - 1


def parse(raw: str) -> Migration:
    """Return the migration described by the file name ``raw``."""
    match = REGEX.fullmatch(raw)
    if match is None:
        raise ParseError()
    version = int(match.group(1))
    if version > _MAX_VERSION:
        raise ParseError(f"version {match.group(1)} out of range")
    return Migration(
        version=version,
        identifier=match.group(2),
        direction=Direction(match.group(3)),
        raw=raw,
    )