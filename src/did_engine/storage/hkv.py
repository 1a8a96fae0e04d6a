"""Hierarchical key-value storage — abstract interface and two backends.

Keys are ordered tuples of path segments (``HKVKey("did", "created", did)``).
:class:`InMemoryHKVStore` keeps everything in a dict; :class:`FilesystemHKVStore`
mirrors the hierarchy as nested directories with one file per leaf.

Both backends make a single ``put``/``get`` atomic with respect to other
callers of the same instance. Nothing more is guaranteed: multi-step
sequences are not transactional.
"""
from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote

# "!" is always percent-encoded in key segments, so no stored key ends with this.
PARTIAL_SUFFIX = "!partial"


@dataclass(frozen=True)
class HKVKey:
    """A hierarchical key made of one or more non-empty string segments."""

    segments: tuple[str, ...]

    def __init__(self, *segments: str) -> None:
        if not segments:
            raise ValueError("HKVKey requires at least one segment.")
        for segment in segments:
            if not segment:
                raise ValueError(f"HKVKey segments must not be empty: {segments!r}")
        object.__setattr__(self, "segments", tuple(segments))

    @property
    def name(self) -> str:
        """The last segment of the key."""
        return self.segments[-1]

    def child(self, segment: str) -> "HKVKey":
        """Return the key one level below this one."""
        return HKVKey(*self.segments, segment)

    def __str__(self) -> str:
        return "/".join(self.segments)


class HKVStore(ABC):
    """Abstract base class for hierarchical key-value stores."""

    @abstractmethod
    def put(self, key: HKVKey, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def get(self, key: HKVKey) -> str | None:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    def list_children(self, parent: HKVKey) -> list[HKVKey]:
        """Return the leaf keys directly below *parent*."""

    @abstractmethod
    def delete(self, key: HKVKey) -> bool:
        """Remove *key*. Returns ``False`` if nothing was stored."""


class InMemoryHKVStore(HKVStore):
    """Dict-backed store, suitable for tests and short-lived processes."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, ...], str] = {}
        self._lock = threading.Lock()

    def put(self, key: HKVKey, value: str) -> None:
        with self._lock:
            self._data[key.segments] = value

    def get(self, key: HKVKey) -> str | None:
        with self._lock:
            return self._data.get(key.segments)

    def list_children(self, parent: HKVKey) -> list[HKVKey]:
        depth = len(parent.segments)
        with self._lock:
            return [
                HKVKey(*segments)
                for segments in self._data
                if len(segments) == depth + 1 and segments[:depth] == parent.segments
            ]

    def delete(self, key: HKVKey) -> bool:
        with self._lock:
            return self._data.pop(key.segments, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class FilesystemHKVStore(HKVStore):
    """Filesystem-backed store.

    Every key segment becomes a path component, percent-encoded so DID
    strings (which contain ``:`` and may contain ``/``) are safe file names.

    Parameters
    ----------
    base_dir:
        Root directory of the store. Created if missing.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def put(self, key: HKVKey, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + PARTIAL_SUFFIX)
        with self._lock:
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)

    def get(self, key: HKVKey) -> str | None:
        path = self._path(key)
        with self._lock:
            if not path.is_file():
                return None
            return path.read_text(encoding="utf-8")

    def list_children(self, parent: HKVKey) -> list[HKVKey]:
        directory = self._path(parent)
        if not directory.is_dir():
            return []
        return [
            parent.child(unquote(entry.name))
            for entry in directory.iterdir()
            if entry.is_file() and not entry.name.endswith(PARTIAL_SUFFIX)
        ]

    def delete(self, key: HKVKey) -> bool:
        path = self._path(key)
        with self._lock:
            if not path.is_file():
                return False
            path.unlink()
        return True

    def _path(self, key: HKVKey) -> Path:
        return self._base_dir.joinpath(*(quote(segment, safe="") for segment in key.segments))


__all__ = ["PARTIAL_SUFFIX", "FilesystemHKVStore", "HKVKey", "HKVStore", "InMemoryHKVStore"]
