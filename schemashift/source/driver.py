"""The source driver interface and the global driver registry."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import BinaryIO
from urllib.parse import urlsplit


class Driver(ABC):
    """A read-only source of migrations.

    Lookups that find nothing raise FileNotFoundError.
    """

    @abstractmethod
    def open(self, url: str) -> "Driver":
        """Return a new driver instance configured from ``url``."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying source."""

    @abstractmethod
    def first(self) -> int:
        """Return the first available version."""

    @abstractmethod
    def prev(self, version: int) -> int:
        """Return the version before ``version``."""

    @abstractmethod
    def next(self, version: int) -> int:
        """Return the version after ``version``."""

    @abstractmethod
    def read_up(self, version: int) -> tuple[BinaryIO, str]:
        """Return the up migration body and its identifier."""

    @abstractmethod
    def read_down(self, version: int) -> tuple[BinaryIO, str]:
        """Return the down migration body and its identifier."""


_lock = threading.RLock()
_drivers: dict[str, Driver] = {}


def register(name: str, driver: Driver) -> None:
    """Register ``driver`` under the URL scheme ``name``."""
    with _lock:
        if driver is None:
            raise ValueError("Register driver is nil")
        if name in _drivers:
            raise ValueError(f"Register called twice for driver {name}")
        _drivers[name] = driver


def open_source(url: str) -> Driver:
    """Open a source driver chosen by the scheme of ``url``."""
    scheme = urlsplit(url).scheme
    if not scheme:
        raise ValueError("source driver: invalid URL scheme")
    with _lock:
        driver = _drivers.get(scheme)
    if driver is None:
        raise ValueError(f"source driver: unknown driver '{scheme}' (forgotten import?)")
    return driver.open(url)


def list_drivers() -> list[str]:
    """Return the names of all registered drivers, sorted."""
    with _lock:
        return sorted(_drivers)