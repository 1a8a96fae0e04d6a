"""did-engine — DID lifecycle engine for did:key, did:web and did:ebsi.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick start
-----------
::

    from did_engine import DidMethod, DidService, DidWebOptions

    service = DidService()
    did = service.create(DidMethod.key)
    document = service.resolve(did)

    web_did = service.create(
        DidMethod.web, options=DidWebOptions(domain="example.com", path="a/b")
    )
    assert web_did == "did:web:example.com:a:b"
"""
from __future__ import annotations

__version__: str = "0.1.0"

from did_engine.config import EngineSettings
from did_engine.context import ContextManager, ServiceContext
from did_engine.did import (
    DIDDocument,
    DidCache,
    DidEbsiOptions,
    DidMethod,
    DidOptions,
    DidService,
    DidUrl,
    DidWebOptions,
    EbsiDIDDocument,
    EbsiRegistryResolver,
    KeyImporter,
    LookupResult,
    LookupStatus,
    MethodHandler,
    MethodRegistry,
    RetryPolicy,
    ServiceEndpoint,
    VerificationMethod,
)
from did_engine.errors import (
    AliasConflictError,
    DecodeError,
    DidEngineError,
    InvalidDidError,
    InvalidEncodingError,
    KeyAlgorithmMismatchError,
    KeyNotFoundError,
    MissingOptionError,
    NoImportableKeyError,
    NotFoundError,
    ResolutionError,
    UnsupportedCapabilityError,
    UnsupportedMethodError,
)
from did_engine.keys import (
    FilesystemKeyStore,
    InMemoryKeyStore,
    KeyAlgorithm,
    KeyHandle,
    KeyStore,
)
from did_engine.storage import FilesystemHKVStore, HKVKey, HKVStore, InMemoryHKVStore

__all__ = [
    "__version__",
    # config / context
    "ContextManager",
    "EngineSettings",
    "ServiceContext",
    # did
    "DIDDocument",
    "DidCache",
    "DidEbsiOptions",
    "DidMethod",
    "DidOptions",
    "DidService",
    "DidUrl",
    "DidWebOptions",
    "EbsiDIDDocument",
    "EbsiRegistryResolver",
    "KeyImporter",
    "LookupResult",
    "LookupStatus",
    "MethodHandler",
    "MethodRegistry",
    "RetryPolicy",
    "ServiceEndpoint",
    "VerificationMethod",
    # errors
    "AliasConflictError",
    "DecodeError",
    "DidEngineError",
    "InvalidDidError",
    "InvalidEncodingError",
    "KeyAlgorithmMismatchError",
    "KeyNotFoundError",
    "MissingOptionError",
    "NoImportableKeyError",
    "NotFoundError",
    "ResolutionError",
    "UnsupportedCapabilityError",
    "UnsupportedMethodError",
    # keys
    "FilesystemKeyStore",
    "InMemoryKeyStore",
    "KeyAlgorithm",
    "KeyHandle",
    "KeyStore",
    # storage
    "FilesystemHKVStore",
    "HKVKey",
    "HKVStore",
    "InMemoryHKVStore",
]
