"""Key stores — the key-management collaborator used by the DID engine.

:class:`KeyStore` defines the contract the engine depends on:

- :meth:`KeyStore.generate_key` — create a new key pair, return its key id;
- :meth:`KeyStore.load_key` — look a key up by key id or alias;
- :meth:`KeyStore.add_alias` — bind an additional name to a key;
- :meth:`KeyStore.import_key` — store public key material, return its key id.

:class:`InMemoryKeyStore` implements it on top of the ``cryptography``
package. :class:`FilesystemKeyStore` adds persistence to a single JSON file.
Private keys are kept as unencrypted PKCS#8 PEM; key custody is the
deployment's concern, not this module's.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from did_engine.errors import AliasConflictError, KeyAlgorithmMismatchError, KeyNotFoundError
from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.jwk import jwk_to_public_key, public_key_to_jwk
from did_engine.storage.hkv import PARTIAL_SUFFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyHandle:
    """Public view of a stored key.

    Parameters
    ----------
    key_id:
        The store-assigned identifier.
    algorithm:
        The key's algorithm.
    public_key:
        Raw 32-byte Ed25519 public key, or the 65-byte uncompressed
        secp256k1 point.
    has_private_key:
        ``False`` for keys created through :meth:`KeyStore.import_key`.
    """

    key_id: str
    algorithm: KeyAlgorithm
    public_key: bytes
    has_private_key: bool

    def to_public_jwk(self, kid: str | None = None) -> dict[str, str]:
        """Return the public key as a JWK, optionally tagged with *kid*."""
        return public_key_to_jwk(self.algorithm, self.public_key, kid=kid)


class KeyStore(ABC):
    """Abstract base class for key-management backends."""

    @abstractmethod
    def generate_key(self, algorithm: KeyAlgorithm) -> str:
        """Generate a new key pair and return its key id."""

    @abstractmethod
    def load_key(self, alias_or_id: str) -> KeyHandle:
        """Return the key registered under *alias_or_id*.

        Raises
        ------
        KeyNotFoundError
            If neither a key id nor an alias matches.
        """

    @abstractmethod
    def add_alias(self, key_id: str, alias: str) -> None:
        """Bind *alias* to the key *key_id*.

        Re-binding an alias to the key it already names is a no-op.

        Raises
        ------
        KeyNotFoundError
            If *key_id* is unknown.
        AliasConflictError
            If *alias* already names a different key.
        """

    @abstractmethod
    def import_public_key(self, algorithm: KeyAlgorithm, public_key: bytes) -> str:
        """Store public-only key material and return its new key id."""

    def import_key(self, jwk: dict[str, object]) -> str:
        """Import a public JWK and return its new key id."""
        algorithm, public_key = jwk_to_public_key(jwk)
        return self.import_public_key(algorithm, public_key)

    def has_key(self, alias_or_id: str) -> bool:
        """Return ``True`` if *alias_or_id* names a stored key."""
        try:
            self.load_key(alias_or_id)
        except KeyNotFoundError:
            return False
        return True


@dataclass
class _StoredKey:
    algorithm: KeyAlgorithm
    public_key: bytes
    private_pem: bytes | None = None


class InMemoryKeyStore(KeyStore):
    """Dict-backed key store. All public methods are thread-safe."""

    def __init__(self) -> None:
        self._keys: dict[str, _StoredKey] = {}
        self._aliases: dict[str, str] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # KeyStore interface
    # ------------------------------------------------------------------

    def generate_key(self, algorithm: KeyAlgorithm) -> str:
        if algorithm is KeyAlgorithm.EdDSA_Ed25519:
            private_key = Ed25519PrivateKey.generate()
            public_key = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        elif algorithm is KeyAlgorithm.ECDSA_Secp256k1:
            private_key = ec.generate_private_key(ec.SECP256K1())
            public_key = private_key.public_key().public_bytes(
                Encoding.X962, PublicFormat.UncompressedPoint
            )
        else:  # pragma: no cover - exhaustive over KeyAlgorithm
            raise KeyAlgorithmMismatchError(f"Cannot generate keys for {algorithm!r}.")

        private_pem = private_key.private_bytes(
            Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
        )
        key_id = uuid.uuid4().hex
        with self._lock:
            self._keys[key_id] = _StoredKey(algorithm, public_key, private_pem)
            self._persist()
        logger.debug("Generated %s key %s", algorithm.value, key_id)
        return key_id

    def load_key(self, alias_or_id: str) -> KeyHandle:
        with self._lock:
            key_id = self._aliases.get(alias_or_id, alias_or_id)
            stored = self._keys.get(key_id)
        if stored is None:
            raise KeyNotFoundError(alias_or_id)
        return KeyHandle(
            key_id=key_id,
            algorithm=stored.algorithm,
            public_key=stored.public_key,
            has_private_key=stored.private_pem is not None,
        )

    def add_alias(self, key_id: str, alias: str) -> None:
        with self._lock:
            if key_id not in self._keys:
                raise KeyNotFoundError(key_id)
            bound = self._aliases.get(alias)
            if bound == key_id:
                return
            if bound is not None or alias in self._keys:
                raise AliasConflictError(alias)
            self._aliases[alias] = key_id
            self._persist()

    def import_public_key(self, algorithm: KeyAlgorithm, public_key: bytes) -> str:
        _check_public_key(algorithm, public_key)
        key_id = uuid.uuid4().hex
        with self._lock:
            self._keys[key_id] = _StoredKey(algorithm, public_key)
            self._persist()
        return key_id

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def aliases_of(self, key_id: str) -> list[str]:
        """Return a sorted list of the aliases bound to *key_id*."""
        with self._lock:
            return sorted(alias for alias, target in self._aliases.items() if target == key_id)

    def private_key_pem(self, alias_or_id: str) -> bytes:
        """Return the PKCS#8 PEM private key for *alias_or_id*.

        Raises
        ------
        KeyNotFoundError
            If the key is unknown or holds no private part.
        """
        handle = self.load_key(alias_or_id)
        with self._lock:
            private_pem = self._keys[handle.key_id].private_pem
        if private_pem is None:
            raise KeyNotFoundError(f"{alias_or_id} (private part)")
        return private_pem

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def _persist(self) -> None:
        """Hook called with the lock held after every mutation."""


class FilesystemKeyStore(InMemoryKeyStore):
    """Key store persisted to ``<base_dir>/keys.json``.

    The file is rewritten after every mutation and read once at
    construction time.

    Parameters
    ----------
    base_dir:
        Directory holding ``keys.json``. Created if missing.
    """

    def __init__(self, base_dir: Path) -> None:
        super().__init__()
        self._base_dir = base_dir
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._path = base_dir / "keys.json"
        if self._path.exists():
            self._load()

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid key store file {self._path}: {exc}") from exc
        for key_id, entry in data.get("keys", {}).items():
            private_pem = entry.get("private_pem")
            self._keys[key_id] = _StoredKey(
                algorithm=KeyAlgorithm(entry["algorithm"]),
                public_key=bytes.fromhex(entry["public_key"]),
                private_pem=private_pem.encode("ascii") if private_pem else None,
            )
            if private_pem:
                # Fail early on a corrupted file rather than at first use.
                load_pem_private_key(private_pem.encode("ascii"), password=None)
        self._aliases.update(data.get("aliases", {}))

    def _persist(self) -> None:
        data = {
            "keys": {
                key_id: {
                    "algorithm": stored.algorithm.value,
                    "public_key": stored.public_key.hex(),
                    "private_pem": (
                        stored.private_pem.decode("ascii") if stored.private_pem else None
                    ),
                }
                for key_id, stored in self._keys.items()
            },
            "aliases": dict(self._aliases),
        }
        tmp_path = self._path.with_name(self._path.name + PARTIAL_SUFFIX)
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)


def _check_public_key(algorithm: KeyAlgorithm, public_key: bytes) -> None:
    """Raise if *public_key* is not a valid point for *algorithm*."""
    try:
        if algorithm is KeyAlgorithm.EdDSA_Ed25519:
            Ed25519PublicKey.from_public_bytes(public_key)
        else:
            ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key)
    except ValueError as exc:
        raise KeyAlgorithmMismatchError(
            f"Public key is not a valid {algorithm.value} key: {exc}"
        ) from exc


__all__ = ["FilesystemKeyStore", "InMemoryKeyStore", "KeyHandle", "KeyStore"]
