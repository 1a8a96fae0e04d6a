"""WebMethodHandler — ``did:web`` with local placeholder resolution.

``did:web:<domain>[:<path>...]`` names a document hosted at
``https://<domain>/<path>/did.json``. This handler does not fetch it:
:meth:`WebMethodHandler.resolve` rebuilds a placeholder document from the
key aliased to the DID in the local key store. Documents built this way are
only meaningful to the process that created the DID.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from did_engine.context import ContextManager
from did_engine.did.cache import DidCache
from did_engine.did.document import DID_CONTEXT_URL, DIDDocument, VerificationMethod
from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.multibase import ED25519_VERIFICATION_KEY_2018, b58encode
from did_engine.did.url import DidMethod, DidUrl
from did_engine.errors import AliasConflictError, KeyNotFoundError, MissingOptionError, NotFoundError
from did_engine.keys.algorithms import KeyAlgorithm

logger = logging.getLogger(__name__)

ECDSA_SECP256K1_VERIFICATION_KEY_2019 = "EcdsaSecp256k1VerificationKey2019"
_PLACEHOLDER_KEY_FRAGMENT = "key-1"


@dataclass(frozen=True)
class DidWebOptions(DidOptions):
    """Options for ``did:web`` creation.

    Parameters
    ----------
    domain:
        Host the document would be served from. Mandatory.
    path:
        Optional path below the domain; ``/`` separators become ``:``.
    """

    domain: str | None = None
    path: str | None = None


class WebMethodHandler(MethodHandler):
    """Create ``did:web`` identifiers bound to local keys."""

    name = DidMethod.web.value
    best_effort_resolution = False

    def create(self, key_alias: str | None = None, options: DidOptions | None = None) -> str:
        """Create ``did:web:<domain>[:<path>]`` for an existing or new key.

        Raises
        ------
        MissingOptionError
            If no options or no ``domain`` are given.
        AliasConflictError
            If the DID is already bound to another key.
        """
        if options is not None and not isinstance(options, DidWebOptions):
            raise TypeError(f"did:web expects DidWebOptions, got {type(options).__name__}.")
        if options is None or not options.domain:
            raise MissingOptionError("Missing 'domain' option for creating did:web.")

        did_url = DidUrl(self.name, options.domain + web_path_suffix(options.path))
        key_store = ContextManager.key_store()
        # A fresh key is never bound to an existing DID; fail before generating it.
        if key_alias is None and key_store.has_key(did_url.did):
            raise AliasConflictError(did_url.did)

        key = self.obtain_key(key_alias, tuple(KeyAlgorithm))
        try:
            key_store.add_alias(key.key_id, did_url.did)
        except AliasConflictError as exc:
            raise AliasConflictError(did_url.did) from exc

        self.cache.put(did_url.did, self.resolve(did_url))
        logger.info("Created %s for key %s", did_url.did, key.key_id)
        return did_url.did

    def resolve(self, did_url: DidUrl) -> DIDDocument:
        """Build a placeholder document from the locally aliased key.

        Raises
        ------
        NotFoundError
            If no local key is aliased to the DID.
        """
        logger.warning(
            "did:web resolution is local only and does not fetch %s; "
            "use the resulting document for demonstration purposes.",
            did_web_document_url(did_url),
        )
        try:
            key = ContextManager.key_store().load_key(did_url.did)
        except KeyNotFoundError as exc:
            raise NotFoundError(
                f"No local key is aliased to {did_url.did!r}; "
                "did:web documents can only be built for DIDs created here."
            ) from exc

        key_id = f"{did_url.did}#{_PLACEHOLDER_KEY_FRAGMENT}"
        if key.algorithm is KeyAlgorithm.EdDSA_Ed25519:
            method = VerificationMethod(
                id=key_id,
                type=ED25519_VERIFICATION_KEY_2018,
                controller=did_url.did,
                public_key_base58=b58encode(key.public_key),
            )
        else:
            method = VerificationMethod(
                id=key_id,
                type=ECDSA_SECP256K1_VERIFICATION_KEY_2019,
                controller=did_url.did,
                public_key_jwk=key.to_public_jwk(kid=key_id),
            )
        key_ref = [key_id]
        return DIDDocument(
            context=[DID_CONTEXT_URL],
            id=did_url.did,
            verification_method=[method],
            authentication=key_ref,
            assertion_method=key_ref,
            capability_invocation=key_ref,
            capability_delegation=key_ref,
        )

    def load(self, did_url: DidUrl) -> DIDDocument:
        """Return the cached document, building the placeholder on a miss."""
        cached = self.cache.get(did_url.did)
        if cached is not None:
            return cached
        return self.resolve(did_url)


def web_path_suffix(path: str | None) -> str:
    """Turn ``"a/b"`` into ``":a:b"``; empty or ``None`` gives ``""``."""
    if not path:
        return ""
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments:
        return ""
    return ":" + ":".join(segments)


def did_web_document_url(did_url: DidUrl) -> str:
    """Return the HTTPS URL a ``did:web`` document is published at."""
    domain, *path = did_url.identifier.split(":")
    domain = domain.replace("%3A", ":")
    if path:
        return f"https://{domain}/{'/'.join(path)}/did.json"
    return f"https://{domain}/.well-known/did.json"


__all__ = ["DidWebOptions", "WebMethodHandler", "did_web_document_url", "web_path_suffix"]
