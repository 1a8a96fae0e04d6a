"""Execution context — which key store and HKV store a call targets.

The engine never holds on to stores directly. Each operation asks
:meth:`ContextManager.current` for the active :class:`ServiceContext`, so a
single :class:`~did_engine.did.service.DidService` can serve several tenants::

    tenant_a = ServiceContext.in_memory("tenant-a")
    with ContextManager.run_with(tenant_a):
        did = service.create(DidMethod.key)

The active context is tracked with :mod:`contextvars`, so it follows the
calling thread or asyncio task.
"""
from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from did_engine.keys.store import FilesystemKeyStore, InMemoryKeyStore, KeyStore
from did_engine.storage.hkv import FilesystemHKVStore, HKVStore, InMemoryHKVStore


@dataclass(frozen=True)
class ServiceContext:
    """A named pair of stores that engine operations run against.

    Parameters
    ----------
    name:
        Human-readable tenant name, used in log messages only.
    key_store:
        The key-management collaborator.
    hkv_store:
        The hierarchical store backing the DID cache.
    """

    name: str
    key_store: KeyStore
    hkv_store: HKVStore

    @classmethod
    def in_memory(cls, name: str = "default") -> "ServiceContext":
        """Create a context backed by fresh in-memory stores."""
        return cls(name=name, key_store=InMemoryKeyStore(), hkv_store=InMemoryHKVStore())

    @classmethod
    def filesystem(cls, base_dir: Path, name: str = "default") -> "ServiceContext":
        """Create a context persisted under *base_dir* (``keys/`` and ``data/``)."""
        return cls(
            name=name,
            key_store=FilesystemKeyStore(base_dir / "keys"),
            hkv_store=FilesystemHKVStore(base_dir / "data"),
        )


class ContextManager:
    """Process-wide access point to the active :class:`ServiceContext`."""

    _default: ServiceContext | None = None
    _current: contextvars.ContextVar[ServiceContext | None] = contextvars.ContextVar(
        "did_engine_context", default=None
    )

    @classmethod
    def current(cls) -> ServiceContext:
        """Return the context set by :meth:`run_with`, or the default one."""
        active = cls._current.get()
        if active is not None:
            return active
        if cls._default is None:
            cls._default = ServiceContext.in_memory()
        return cls._default

    @classmethod
    def set_default(cls, context: ServiceContext | None) -> None:
        """Replace the fallback context used outside :meth:`run_with` blocks."""
        cls._default = context

    @classmethod
    @contextmanager
    def run_with(cls, context: ServiceContext) -> Iterator[ServiceContext]:
        """Make *context* the active context for the duration of the block."""
        token = cls._current.set(context)
        try:
            yield context
        finally:
            cls._current.reset(token)

    @classmethod
    def key_store(cls) -> KeyStore:
        """Shortcut for ``ContextManager.current().key_store``."""
        return cls.current().key_store

    @classmethod
    def hkv_store(cls) -> HKVStore:
        """Shortcut for ``ContextManager.current().hkv_store``."""
        return cls.current().hkv_store


__all__ = ["ContextManager", "ServiceContext"]
