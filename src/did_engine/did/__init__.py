"""did_engine.did — DID identifiers, documents, methods and the dispatch engine.

Submodules
----------
url
    DidUrl parsing and the DidMethod enum.
document
    DIDDocument, EbsiDIDDocument, VerificationMethod, ServiceEndpoint.
multibase
    Key-material transforms (base58btc, multibase, Ed25519 -> X25519).
cache
    DidCache over the active context's HKV store.
resolution
    EbsiRegistryResolver with bounded retry.
methods
    MethodHandler and the key, web and ebsi handlers.
importer
    KeyImporter for importing document keys into the key store.
service
    DidService, the dispatch engine.
"""
from __future__ import annotations

from did_engine.did.cache import DidCache
from did_engine.did.document import (
    DID_CONTEXT_URL,
    DIDDocument,
    EbsiDIDDocument,
    ServiceEndpoint,
    VerificationMethod,
    decode_document,
)
from did_engine.did.importer import KeyImporter
from did_engine.did.methods import (
    DidEbsiOptions,
    DidOptions,
    DidWebOptions,
    EbsiMethodHandler,
    KeyMethodHandler,
    MethodHandler,
    MethodRegistry,
    WebMethodHandler,
)
from did_engine.did.resolution import EbsiRegistryResolver, RetryPolicy
from did_engine.did.service import DidService, LookupResult, LookupStatus
from did_engine.did.url import DidMethod, DidUrl

__all__ = [
    "DID_CONTEXT_URL",
    "DIDDocument",
    "DidCache",
    "DidEbsiOptions",
    "DidMethod",
    "DidOptions",
    "DidService",
    "DidUrl",
    "DidWebOptions",
    "EbsiDIDDocument",
    "EbsiMethodHandler",
    "EbsiRegistryResolver",
    "KeyImporter",
    "KeyMethodHandler",
    "LookupResult",
    "LookupStatus",
    "MethodHandler",
    "MethodRegistry",
    "RetryPolicy",
    "ServiceEndpoint",
    "VerificationMethod",
    "WebMethodHandler",
    "decode_document",
]
