"""Hierarchical key-value storage backends."""
from __future__ import annotations

from did_engine.storage.hkv import FilesystemHKVStore, HKVKey, HKVStore, InMemoryHKVStore

__all__ = ["FilesystemHKVStore", "HKVKey", "HKVStore", "InMemoryHKVStore"]
