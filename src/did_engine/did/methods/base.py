"""MethodHandler — the interface every DID method implements.

A handler owns the method-specific parts of the lifecycle:

- :meth:`MethodHandler.create` builds a new identity and returns its DID;
- :meth:`MethodHandler.resolve` re-derives or re-fetches the authoritative
  document;
- :meth:`MethodHandler.load` returns the locally known document. Its
  default is :meth:`resolve`; handlers with a distinct cache-first path
  override it.

Handlers read the active key store and cache through
:class:`~did_engine.context.ContextManager` on every call and keep no
per-tenant state of their own.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from did_engine.context import ContextManager
from did_engine.did.cache import DidCache
from did_engine.did.document import DIDDocument
from did_engine.did.url import DidUrl
from did_engine.errors import KeyAlgorithmMismatchError
from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.store import KeyHandle


@dataclass(frozen=True)
class DidOptions:
    """Base class for method-specific creation options."""


class MethodHandler(ABC):
    """Abstract base class for DID method handlers.

    Attributes
    ----------
    name:
        The method name handled (the ``<method>`` in ``did:<method>:...``).
    best_effort_resolution:
        ``True`` when a cache miss can be filled by calling :meth:`resolve`
        (the document can be regenerated or fetched unambiguously).
    default_algorithm:
        Algorithm of keys generated when no key alias is supplied.
    """

    name: str = ""
    best_effort_resolution: bool = False
    default_algorithm: KeyAlgorithm = KeyAlgorithm.EdDSA_Ed25519

    def __init__(self, cache: DidCache | None = None) -> None:
        self.cache = cache or DidCache()

    @abstractmethod
    def create(self, key_alias: str | None = None, options: DidOptions | None = None) -> str:
        """Create a new DID and return it."""

    @abstractmethod
    def resolve(self, did_url: DidUrl) -> DIDDocument:
        """Return the authoritative document for *did_url*."""

    def load(self, did_url: DidUrl) -> DIDDocument:
        """Return the locally known document for *did_url*."""
        return self.resolve(did_url)

    async def resolve_async(self, did_url: DidUrl) -> DIDDocument:
        """Cooperative variant of :meth:`resolve`.

        Handlers that resolve locally run :meth:`resolve` directly; network
        handlers override this with a non-blocking implementation.
        """
        return self.resolve(did_url)

    def resolve_raw(self, did_url: DidUrl) -> str:
        """Return the authoritative document as serialized JSON."""
        return self.resolve(did_url).to_json()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def obtain_key(self, key_alias: str | None, allowed: tuple[KeyAlgorithm, ...]) -> KeyHandle:
        """Load *key_alias* or generate a fresh key of :attr:`default_algorithm`.

        Raises
        ------
        KeyNotFoundError
            If *key_alias* is given but unknown.
        KeyAlgorithmMismatchError
            If the key's algorithm is not in *allowed*.
        """
        key_store = ContextManager.key_store()
        if key_alias is None:
            key_id = key_store.generate_key(self.default_algorithm)
        else:
            key_id = key_alias
        key = key_store.load_key(key_id)
        if key.algorithm not in allowed:
            names = ", ".join(algorithm.value for algorithm in allowed)
            raise KeyAlgorithmMismatchError(
                f"did:{self.name} cannot be created with a {key.algorithm.value} key. "
                f"Supported key algorithms: {names}."
            )
        return key


__all__ = ["DidOptions", "MethodHandler"]
