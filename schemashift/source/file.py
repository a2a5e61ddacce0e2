"""A source driver reading migrations from a local directory, scheme ``file``."""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import unquote, urlsplit

from schemashift.source.driver import register
from schemashift.source.fsdriver import PartialDriver


class FileSource(PartialDriver):
    """Reads migration files from the directory named by a ``file://`` URL."""

    def __init__(self) -> None:
        super().__init__()
        self.url = ""
        self.path = ""

    def open(self, url: str) -> "FileSource":
        directory = parse_url(url)
        source = FileSource()
        source.url = url
        source.path = directory
        source.init(Path(directory), ".")
        return source


def parse_url(url: str) -> str:
    """Return the absolute directory named by ``url``.

    The host and path are joined so that ``file://./dir`` and ``file://dir``
    are relative to the working directory; an empty path means the working
    directory itself.
    """
    parts = urlsplit(url)
    host = parts.netloc.rpartition("@")[2]
    path = host + unquote(parts.path)
    if not path:
        return os.getcwd()
    if not path.startswith("/"):
        return os.path.abspath(path)
    return path


register("file", FileSource())