"""EbsiMethodHandler — ``did:ebsi`` backed by the EBSI DID registry.

Creation is local: a random v2 identifier is generated, the key is aliased
to both the DID and its key id, and the document is cached. Resolution
always goes to the registry through
:class:`~did_engine.did.resolution.EbsiRegistryResolver`; :meth:`load`
only reads the cache.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from did_engine.context import ContextManager
from did_engine.did.cache import DidCache
from did_engine.did.document import DID_CONTEXT_URL, DIDDocument, EbsiDIDDocument, VerificationMethod
from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.multibase import ED25519_VERIFICATION_KEY_2018
from did_engine.did.resolution import EbsiRegistryResolver
from did_engine.did.url import DidMethod, DidUrl
from did_engine.errors import DecodeError, NotFoundError, UnsupportedCapabilityError
from did_engine.keys.algorithms import KeyAlgorithm

logger = logging.getLogger(__name__)

SECP256K1_VERIFICATION_KEY_2018 = "Secp256k1VerificationKey2018"

_VERIFICATION_KEY_TYPES: dict[KeyAlgorithm, str] = {
    KeyAlgorithm.EdDSA_Ed25519: ED25519_VERIFICATION_KEY_2018,
    KeyAlgorithm.ECDSA_Secp256k1: SECP256K1_VERIFICATION_KEY_2018,
}


@dataclass(frozen=True)
class DidEbsiOptions(DidOptions):
    """Options for ``did:ebsi`` creation.

    Parameters
    ----------
    add_eidas_key:
        Attach an ``EidasVerificationKey2021`` certificate method. Not
        implemented; ``True`` raises
        :class:`~did_engine.errors.UnsupportedCapabilityError`.
    """

    add_eidas_key: bool = False


class EbsiMethodHandler(MethodHandler):
    """Create, fetch and load ``did:ebsi`` identifiers.

    Parameters
    ----------
    resolver:
        Registry client. Defaults to the public pre-production registry.
    """

    name = DidMethod.ebsi.value
    best_effort_resolution = True

    def __init__(
        self,
        cache: DidCache | None = None,
        resolver: EbsiRegistryResolver | None = None,
    ) -> None:
        super().__init__(cache)
        self.resolver = resolver or EbsiRegistryResolver()

    def create(self, key_alias: str | None = None, options: DidOptions | None = None) -> str:
        """Create a new ``did:ebsi`` and cache its document.

        Raises
        ------
        KeyAlgorithmMismatchError
            If the key is neither Ed25519 nor secp256k1.
        UnsupportedCapabilityError
            If ``add_eidas_key`` is requested.
        """
        if options is not None and not isinstance(options, DidEbsiOptions):
            raise TypeError(f"did:ebsi expects DidEbsiOptions, got {type(options).__name__}.")
        if options is not None and options.add_eidas_key:
            raise UnsupportedCapabilityError(
                "EIDAS certificate verification methods are not implemented for did:ebsi."
            )

        key = self.obtain_key(key_alias, tuple(_VERIFICATION_KEY_TYPES))
        did_url = DidUrl.generate_ebsi_v2()
        key_store = ContextManager.key_store()
        key_store.add_alias(key.key_id, did_url.did)

        kid = str(did_url.with_fragment(key.key_id))
        key_store.add_alias(key.key_id, kid)

        document = EbsiDIDDocument(
            context=[DID_CONTEXT_URL],
            id=did_url.did,
            verification_method=[
                VerificationMethod(
                    id=kid,
                    type=_VERIFICATION_KEY_TYPES[key.algorithm],
                    controller=did_url.did,
                    public_key_jwk=key.to_public_jwk(kid=kid),
                )
            ],
            authentication=[kid],
        )
        self.cache.put(did_url.did, document)
        logger.info("Created %s for key %s", did_url.did, key.key_id)
        return did_url.did

    def resolve(self, did_url: DidUrl) -> EbsiDIDDocument:
        """Fetch the document from the registry.

        Raises
        ------
        ResolutionError
            When the registry cannot be reached after all retries.
        DecodeError
            When the registry body is not a ``did:ebsi`` document.
        """
        return self.resolver.resolve(did_url.did)

    async def resolve_async(self, did_url: DidUrl) -> EbsiDIDDocument:
        """Cooperative variant of :meth:`resolve`."""
        return await self.resolver.resolve_async(did_url.did)

    def resolve_raw(self, did_url: DidUrl) -> str:
        """Return the registry body for the DID without decoding it."""
        return self.resolver.resolve_raw(did_url.did)

    def load(self, did_url: DidUrl) -> EbsiDIDDocument:
        """Return the cached document.

        Raises
        ------
        NotFoundError
            If the DID is not cached in the active context.
        DecodeError
            If the cached document is not a ``did:ebsi`` document.
        """
        document: DIDDocument | None = self.cache.get(did_url.did)
        if document is None:
            raise NotFoundError(f"DID {did_url.did!r} is not stored in the active context.")
        if not isinstance(document, EbsiDIDDocument):
            raise DecodeError(f"Cached document for {did_url.did!r} is not a did:ebsi document.")
        return document


__all__ = ["DidEbsiOptions", "EbsiMethodHandler", "SECP256K1_VERIFICATION_KEY_2018"]
