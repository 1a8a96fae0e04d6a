"""Key management: algorithms, JWK conversion and key stores."""
from __future__ import annotations

from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.store import FilesystemKeyStore, InMemoryKeyStore, KeyHandle, KeyStore

__all__ = ["FilesystemKeyStore", "InMemoryKeyStore", "KeyAlgorithm", "KeyHandle", "KeyStore"]
