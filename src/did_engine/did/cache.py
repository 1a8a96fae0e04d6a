"""DidCache — DID documents persisted in the active context's HKV store.

Entries live under ``("did", "created", <did>)`` and hold the pretty JSON
encoding of the document. They never expire; :meth:`DidCache.put`
overwrites. The store is looked up on every call through
:class:`~did_engine.context.ContextManager`, so entries are scoped to the
active tenant.
"""
from __future__ import annotations

import logging

from did_engine.context import ContextManager
from did_engine.did.document import DIDDocument, decode_document
from did_engine.storage.hkv import HKVKey

logger = logging.getLogger(__name__)

DID_NAMESPACE = "did"
CREATED_CATEGORY = "created"


class DidCache:
    """Typed access to cached DID documents."""

    def put(self, did: str, document: DIDDocument) -> None:
        """Store *document* under *did*, replacing any previous entry."""
        self.put_raw(did, document.to_json())

    def put_raw(self, did: str, body: str) -> None:
        """Store an already-serialized document body under *did*."""
        ContextManager.hkv_store().put(self._key(did), body)
        logger.debug("Cached DID document for %s", did)

    def get_raw(self, did: str) -> str | None:
        """Return the serialized document stored for *did*, or ``None``."""
        return ContextManager.hkv_store().get(self._key(did))

    def get(self, did: str) -> DIDDocument | None:
        """Return the decoded document stored for *did*, or ``None``.

        Raises
        ------
        DecodeError
            If the stored body is not a valid document.
        """
        body = self.get_raw(did)
        if body is None:
            return None
        return decode_document(body)

    def list_dids(self) -> list[str]:
        """Return the DIDs cached in the active context, sorted."""
        parent = HKVKey(DID_NAMESPACE, CREATED_CATEGORY)
        return sorted(key.name for key in ContextManager.hkv_store().list_children(parent))

    def __contains__(self, did: object) -> bool:
        return isinstance(did, str) and self.get_raw(did) is not None

    @staticmethod
    def _key(did: str) -> HKVKey:
        return HKVKey(DID_NAMESPACE, CREATED_CATEGORY, did)


__all__ = ["CREATED_CATEGORY", "DID_NAMESPACE", "DidCache"]
