"""KeyMethodHandler — the self-resolving ``did:key`` method.

The DID is ``did:key:<multibase(ed25519 public key)>``; resolution rebuilds
the document from the DID string alone, so :meth:`resolve` and
:meth:`load` are the same pure function.

https://w3c-ccg.github.io/did-method-key/
"""
from __future__ import annotations

import logging

from did_engine.context import ContextManager
from did_engine.did.document import DID_CONTEXT_URL, DIDDocument
from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.multibase import (
    build_ed_verification_methods,
    ed25519_public_key_to_multibase,
    multibase_to_ed25519_public_key,
)
from did_engine.did.url import DidMethod, DidUrl
from did_engine.keys.algorithms import KeyAlgorithm

logger = logging.getLogger(__name__)


class KeyMethodHandler(MethodHandler):
    """Create and resolve ``did:key`` identifiers (Ed25519 only)."""

    name = DidMethod.key.value
    best_effort_resolution = True

    def create(self, key_alias: str | None = None, options: DidOptions | None = None) -> str:
        """Create ``did:key`` for an existing or freshly generated Ed25519 key.

        The DID becomes an alias of the key and the resolved document is
        cached.

        Raises
        ------
        KeyAlgorithmMismatchError
            If *key_alias* names a non-Ed25519 key.
        """
        key = self.obtain_key(key_alias, (KeyAlgorithm.EdDSA_Ed25519,))
        did_url = DidUrl(self.name, ed25519_public_key_to_multibase(key.public_key))

        ContextManager.key_store().add_alias(key.key_id, did_url.did)
        self.cache.put(did_url.did, self.resolve(did_url))
        logger.info("Created %s for key %s", did_url.did, key.key_id)
        return did_url.did

    def resolve(self, did_url: DidUrl) -> DIDDocument:
        """Rebuild the document from the public key encoded in the DID.

        Raises
        ------
        InvalidEncodingError
            If the identifier is not an Ed25519 multibase key.
        """
        public_key = multibase_to_ed25519_public_key(did_url.identifier)
        params = build_ed_verification_methods(public_key, did_url)
        return DIDDocument(
            context=[DID_CONTEXT_URL],
            id=did_url.did,
            verification_method=params.verification_methods,
            authentication=params.authentication_refs,
            assertion_method=params.authentication_refs,
            capability_invocation=params.authentication_refs,
            capability_delegation=params.authentication_refs,
            key_agreement=[params.key_agreement_id],
        )


__all__ = ["KeyMethodHandler"]
