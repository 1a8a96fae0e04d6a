"""Tests for the key, web and ebsi method handlers and the registration table."""
from __future__ import annotations

import logging

import pytest

from did_engine.context import ServiceContext
from did_engine.did.cache import DidCache
from did_engine.did.document import DIDDocument, EbsiDIDDocument, ServiceEndpoint
from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.methods.ebsi import (
    SECP256K1_VERIFICATION_KEY_2018,
    DidEbsiOptions,
    EbsiMethodHandler,
)
from did_engine.did.methods.key import KeyMethodHandler
from did_engine.did.methods.registry import MethodRegistry
from did_engine.did.methods.web import (
    DidWebOptions,
    WebMethodHandler,
    did_web_document_url,
    web_path_suffix,
)
from did_engine.did.multibase import (
    ED25519_VERIFICATION_KEY_2018,
    X25519_KEY_AGREEMENT_KEY_2019,
    b58decode,
)
from did_engine.did.url import DidUrl
from did_engine.errors import (
    AliasConflictError,
    InvalidEncodingError,
    KeyAlgorithmMismatchError,
    KeyNotFoundError,
    MissingOptionError,
    NotFoundError,
    UnsupportedCapabilityError,
    UnsupportedMethodError,
)
from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.jwk import jwk_to_public_key


@pytest.fixture()
def cache() -> DidCache:
    return DidCache()


# ---------------------------------------------------------------------------
# did:key
# ---------------------------------------------------------------------------


class TestKeyMethodHandler:
    def test_create_returns_did_key(self, cache: DidCache) -> None:
        did = KeyMethodHandler(cache).create()
        assert did.startswith("did:key:z6Mk")

    def test_create_then_resolve_authentication(self, cache: DidCache) -> None:
        handler = KeyMethodHandler(cache)
        did = handler.create()
        suffix = did.split(":")[2]
        document = handler.resolve(DidUrl.parse(did))
        assert document.authentication == [f"{did}#{suffix}"]

    def test_document_relationships(self, cache: DidCache) -> None:
        handler = KeyMethodHandler(cache)
        did = handler.create()
        document = handler.resolve(DidUrl.parse(did))
        signing_id = document.authentication[0]
        assert document.assertion_method == [signing_id]
        assert document.capability_invocation == [signing_id]
        assert document.capability_delegation == [signing_id]
        assert len(document.key_agreement) == 1
        agreement = document.resolve_verification_method(document.key_agreement[0])
        assert agreement is not None
        assert agreement.type == X25519_KEY_AGREEMENT_KEY_2019

    def test_signing_key_matches_stored_key(
        self, cache: DidCache, service_context: ServiceContext
    ) -> None:
        did = KeyMethodHandler(cache).create()
        key = service_context.key_store.load_key(did)
        document = cache.get(did)
        assert document is not None
        signing = document.resolve_verification_method(document.authentication[0])
        assert signing.type == ED25519_VERIFICATION_KEY_2018
        assert b58decode(signing.public_key_base58) == key.public_key

    def test_create_caches_document(self, cache: DidCache) -> None:
        did = KeyMethodHandler(cache).create()
        assert did in cache

    def test_create_with_existing_key_alias(self, service_context: ServiceContext) -> None:
        key_id = service_context.key_store.generate_key(KeyAlgorithm.EdDSA_Ed25519)
        handler = KeyMethodHandler()
        did = handler.create(key_alias=key_id)
        assert handler.create(key_alias=key_id) == did
        assert service_context.key_store.load_key(did).key_id == key_id

    def test_secp256k1_key_is_rejected(self, service_context: ServiceContext) -> None:
        key_id = service_context.key_store.generate_key(KeyAlgorithm.ECDSA_Secp256k1)
        with pytest.raises(KeyAlgorithmMismatchError, match="did:key"):
            KeyMethodHandler().create(key_alias=key_id)

    def test_unknown_key_alias(self) -> None:
        with pytest.raises(KeyNotFoundError):
            KeyMethodHandler().create(key_alias="missing")

    def test_load_is_resolve(self, cache: DidCache) -> None:
        handler = KeyMethodHandler(cache)
        did_url = DidUrl.parse(handler.create())
        assert handler.load(did_url) == handler.resolve(did_url)

    def test_resolve_rejects_foreign_multicodec(self) -> None:
        # An X25519 did:key identifier.
        did_url = DidUrl.parse("did:key:z6LSbysY2xFMRpGMhb7tFTLMpeuPRaqaWM1yECx2AtzE3KCc")
        with pytest.raises(InvalidEncodingError):
            KeyMethodHandler().resolve(did_url)

    def test_resolve_raw_is_json(self, cache: DidCache) -> None:
        handler = KeyMethodHandler(cache)
        did_url = DidUrl.parse(handler.create())
        assert DIDDocument.from_json(handler.resolve_raw(did_url)) == handler.resolve(did_url)


# ---------------------------------------------------------------------------
# did:web
# ---------------------------------------------------------------------------


class TestWebHelpers:
    @pytest.mark.parametrize(
        ("path", "suffix"),
        [(None, ""), ("", ""), ("/", ""), ("a/b", ":a:b"), ("/user/alice/", ":user:alice")],
    )
    def test_web_path_suffix(self, path: str | None, suffix: str) -> None:
        assert web_path_suffix(path) == suffix

    def test_document_url_with_path(self) -> None:
        did_url = DidUrl.parse("did:web:example.com:a:b")
        assert did_web_document_url(did_url) == "https://example.com/a/b/did.json"

    def test_document_url_without_path(self) -> None:
        did_url = DidUrl.parse("did:web:localhost%3A8443")
        assert did_web_document_url(did_url) == "https://localhost:8443/.well-known/did.json"


class TestWebMethodHandler:
    def test_create_with_domain_and_path(self, cache: DidCache) -> None:
        did = WebMethodHandler(cache).create(
            options=DidWebOptions(domain="example.com", path="a/b")
        )
        assert did == "did:web:example.com:a:b"

    def test_create_with_domain_only(self, cache: DidCache) -> None:
        did = WebMethodHandler(cache).create(options=DidWebOptions(domain="example.com"))
        assert did == "did:web:example.com"

    def test_create_without_options_raises(
        self, cache: DidCache, service_context: ServiceContext
    ) -> None:
        with pytest.raises(MissingOptionError, match="domain"):
            WebMethodHandler(cache).create()
        assert len(service_context.key_store) == 0
        assert cache.list_dids() == []

    def test_options_without_domain_raise(self, cache: DidCache) -> None:
        with pytest.raises(MissingOptionError, match="domain"):
            WebMethodHandler(cache).create(options=DidWebOptions(path="a/b"))

    def test_wrong_options_type_raises(self, cache: DidCache) -> None:
        with pytest.raises(TypeError):
            WebMethodHandler(cache).create(options=DidEbsiOptions())

    def test_same_did_for_another_key_conflicts(self, cache: DidCache) -> None:
        handler = WebMethodHandler(cache)
        options = DidWebOptions(domain="example.com", path="a/b")
        handler.create(options=options)
        with pytest.raises(AliasConflictError, match="did:web:example.com:a:b"):
            handler.create(options=options)

    def test_conflict_does_not_generate_a_key(
        self, cache: DidCache, service_context: ServiceContext
    ) -> None:
        handler = WebMethodHandler(cache)
        options = DidWebOptions(domain="example.com")
        handler.create(options=options)
        assert len(service_context.key_store) == 1
        with pytest.raises(AliasConflictError):
            handler.create(options=options)
        assert len(service_context.key_store) == 1

    def test_recreate_with_the_bound_key_is_idempotent(self, cache: DidCache) -> None:
        handler = WebMethodHandler(cache)
        options = DidWebOptions(domain="example.com")
        did = handler.create(options=options)
        assert handler.create(key_alias=did, options=options) == did

    def test_resolve_builds_placeholder_from_local_key(
        self, cache: DidCache, service_context: ServiceContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        handler = WebMethodHandler(cache)
        did = handler.create(options=DidWebOptions(domain="example.com"))
        key = service_context.key_store.load_key(did)
        with caplog.at_level(logging.WARNING, logger="did_engine.did.methods.web"):
            document = handler.resolve(DidUrl.parse(did))
        assert "local only" in caplog.text
        method = document.verification_method[0]
        assert method.id == f"{did}#key-1"
        assert method.type == ED25519_VERIFICATION_KEY_2018
        assert b58decode(method.public_key_base58) == key.public_key
        assert document.authentication == [f"{did}#key-1"]

    def test_secp256k1_placeholder_uses_jwk(
        self, cache: DidCache, service_context: ServiceContext
    ) -> None:
        key_id = service_context.key_store.generate_key(KeyAlgorithm.ECDSA_Secp256k1)
        handler = WebMethodHandler(cache)
        did = handler.create(key_alias=key_id, options=DidWebOptions(domain="example.com"))
        method = handler.resolve(DidUrl.parse(did)).verification_method[0]
        assert method.type == "EcdsaSecp256k1VerificationKey2019"
        assert jwk_to_public_key(method.public_key_jwk) == (
            KeyAlgorithm.ECDSA_Secp256k1,
            service_context.key_store.load_key(key_id).public_key,
        )

    def test_resolve_unknown_did_raises(self, cache: DidCache) -> None:
        with pytest.raises(NotFoundError, match="did:web:unknown.example"):
            WebMethodHandler(cache).resolve(DidUrl.parse("did:web:unknown.example"))

    def test_load_prefers_cache(self, cache: DidCache) -> None:
        handler = WebMethodHandler(cache)
        did = handler.create(options=DidWebOptions(domain="example.com"))
        placeholder = handler.resolve(DidUrl.parse(did))
        updated = placeholder.model_copy(
            update={
                "service": [
                    ServiceEndpoint(id=f"{did}#hub", type="LinkedDomains", endpoint="https://x.test")
                ]
            }
        )
        cache.put(did, updated)
        assert handler.load(DidUrl.parse(did)) == updated

    def test_load_falls_back_to_placeholder(self, service_context: ServiceContext) -> None:
        handler = WebMethodHandler(DidCache())
        did = handler.create(options=DidWebOptions(domain="example.com"))
        service_context.hkv_store.delete(DidCache._key(did))
        assert handler.load(DidUrl.parse(did)).id == did


# ---------------------------------------------------------------------------
# did:ebsi
# ---------------------------------------------------------------------------


class TestEbsiMethodHandler:
    def test_create_returns_v2_did(self, cache: DidCache) -> None:
        did = EbsiMethodHandler(cache).create()
        assert did.startswith("did:ebsi:z")

    def test_created_document(self, cache: DidCache, service_context: ServiceContext) -> None:
        handler = EbsiMethodHandler(cache)
        did = handler.create()
        key = service_context.key_store.load_key(did)
        document = handler.load(DidUrl.parse(did))
        kid = f"{did}#{key.key_id}"
        assert isinstance(document, EbsiDIDDocument)
        assert document.authentication == [kid]
        method = document.verification_method[0]
        assert method.id == kid
        assert method.type == ED25519_VERIFICATION_KEY_2018
        assert method.public_key_jwk["kid"] == kid
        assert jwk_to_public_key(method.public_key_jwk) == (
            KeyAlgorithm.EdDSA_Ed25519,
            key.public_key,
        )

    def test_did_and_kid_are_aliases(self, cache: DidCache, service_context: ServiceContext) -> None:
        did = EbsiMethodHandler(cache).create()
        key = service_context.key_store.load_key(did)
        assert service_context.key_store.load_key(f"{did}#{key.key_id}").key_id == key.key_id

    def test_secp256k1_key(self, cache: DidCache, service_context: ServiceContext) -> None:
        key_id = service_context.key_store.generate_key(KeyAlgorithm.ECDSA_Secp256k1)
        handler = EbsiMethodHandler(cache)
        did = handler.create(key_alias=key_id)
        method = handler.load(DidUrl.parse(did)).verification_method[0]
        assert method.type == SECP256K1_VERIFICATION_KEY_2018
        assert method.public_key_jwk["kty"] == "EC"

    def test_eidas_key_is_not_supported(self, cache: DidCache) -> None:
        with pytest.raises(UnsupportedCapabilityError, match="EIDAS"):
            EbsiMethodHandler(cache).create(options=DidEbsiOptions(add_eidas_key=True))

    def test_eidas_error_is_not_implemented(self, cache: DidCache) -> None:
        with pytest.raises(NotImplementedError):
            EbsiMethodHandler(cache).create(options=DidEbsiOptions(add_eidas_key=True))

    def test_each_create_generates_a_new_did(self, cache: DidCache) -> None:
        handler = EbsiMethodHandler(cache)
        assert handler.create() != handler.create()

    def test_load_unknown_did_raises(self, cache: DidCache) -> None:
        did_url = DidUrl.generate_ebsi_v2()
        with pytest.raises(NotFoundError):
            EbsiMethodHandler(cache).load(did_url)


# ---------------------------------------------------------------------------
# MethodRegistry
# ---------------------------------------------------------------------------


class _ExampleHandler(MethodHandler):
    name = "example"

    def create(self, key_alias: str | None = None, options: DidOptions | None = None) -> str:
        return "did:example:123"

    def resolve(self, did_url: DidUrl) -> DIDDocument:
        return DIDDocument(id=did_url.did)


class TestMethodRegistry:
    def test_defaults(self) -> None:
        assert MethodRegistry.with_defaults().methods() == ["ebsi", "key", "web"]

    def test_unknown_method_raises(self) -> None:
        with pytest.raises(UnsupportedMethodError, match="'example'"):
            MethodRegistry.with_defaults().get("example")

    def test_register_new_method(self) -> None:
        registry = MethodRegistry.with_defaults()
        registry.register(_ExampleHandler())
        assert "example" in registry
        assert registry.get("example").create() == "did:example:123"

    def test_duplicate_registration_raises(self) -> None:
        registry = MethodRegistry.with_defaults()
        with pytest.raises(ValueError, match="already registered"):
            registry.register(KeyMethodHandler())

    def test_replace(self) -> None:
        registry = MethodRegistry.with_defaults()
        replacement = KeyMethodHandler()
        registry.register(replacement, replace=True)
        assert registry.get("key") is replacement

    def test_nameless_handler_is_rejected(self) -> None:
        handler = _ExampleHandler()
        handler.name = ""
        with pytest.raises(ValueError, match="does not declare a method name"):
            MethodRegistry().register(handler)
