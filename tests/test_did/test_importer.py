"""Tests for KeyImporter — importing document keys into the key store.

Covers:
- encoding priority per verification method (JWK, base58, PEM, multibase)
- one alias per import, named after the verification method id
- alias conflicts, documents without importable keys, unknown DIDs
"""
from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from did_engine.context import ServiceContext
from did_engine.did.document import DIDDocument, VerificationMethod
from did_engine.did.multibase import (
    b58encode,
    ed25519_public_key_to_multibase,
    encode_multibase_key,
)
from did_engine.did.service import DidService
from did_engine.errors import (
    AliasConflictError,
    InvalidEncodingError,
    NoImportableKeyError,
    NotFoundError,
)
from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.jwk import public_key_to_jwk
from did_engine.keys.store import InMemoryKeyStore

_DID = "did:web:example.com:issuer"
_KEY_ID = f"{_DID}#key-1"


@pytest.fixture()
def service() -> DidService:
    return DidService()


@pytest.fixture()
def key_store(service_context: ServiceContext) -> InMemoryKeyStore:
    assert isinstance(service_context.key_store, InMemoryKeyStore)
    return service_context.key_store


def _ed25519_private_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


def _raw(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def _publish(service: DidService, *methods: VerificationMethod) -> None:
    """Make a document for _DID available to the service through its cache."""
    service.update(
        DIDDocument(
            id=_DID,
            verification_method=list(methods),
            authentication=[method.id for method in methods],
        )
    )


# ---------------------------------------------------------------------------
# PEM
# ---------------------------------------------------------------------------


class TestPemImport:
    def test_pem_only_document_imports_exactly_one_alias(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        private_key = _ed25519_private_key()
        pem = private_key.public_key().public_bytes(
            Encoding.PEM, PublicFormat.SubjectPublicKeyInfo
        ).decode("ascii")
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID, type="Ed25519VerificationKey2018", controller=_DID, public_key_pem=pem
            ),
        )

        assert service.import_key(_DID) == [_KEY_ID]
        key = key_store.load_key(_KEY_ID)
        assert key.algorithm is KeyAlgorithm.EdDSA_Ed25519
        assert key.public_key == _raw(private_key)
        assert key.has_private_key is False
        assert key_store.aliases_of(key.key_id) == [_KEY_ID]
        assert len(key_store) == 1

    def test_secp256k1_pem(self, service: DidService, key_store: InMemoryKeyStore) -> None:
        public_key = ec.generate_private_key(ec.SECP256K1()).public_key()
        pem = public_key.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo).decode()
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID, type="JsonWebKey2020", controller=_DID, public_key_pem=pem
            ),
        )

        service.import_key(_DID)
        key = key_store.load_key(_KEY_ID)
        assert key.algorithm is KeyAlgorithm.ECDSA_Secp256k1
        assert key.public_key == public_key.public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )

    def test_unsupported_pem_curve_is_not_importable(self, service: DidService) -> None:
        pem = ec.generate_private_key(ec.SECP256R1()).public_key().public_bytes(
            Encoding.PEM, PublicFormat.SubjectPublicKeyInfo
        ).decode()
        _publish(
            service,
            VerificationMethod(id=_KEY_ID, type="JsonWebKey2020", controller=_DID, public_key_pem=pem),
        )
        with pytest.raises(NoImportableKeyError):
            service.import_key(_DID)

    def test_malformed_pem_raises(self, service: DidService) -> None:
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Ed25519VerificationKey2018",
                controller=_DID,
                public_key_pem="-----BEGIN PUBLIC KEY-----\ngarbage\n-----END PUBLIC KEY-----\n",
            ),
        )
        with pytest.raises(InvalidEncodingError, match="Invalid PEM"):
            service.import_key(_DID)


# ---------------------------------------------------------------------------
# JWK, base58, multibase
# ---------------------------------------------------------------------------


class TestOtherEncodings:
    def test_jwk(self, service: DidService, key_store: InMemoryKeyStore) -> None:
        point = ec.generate_private_key(ec.SECP256K1()).public_key().public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Secp256k1VerificationKey2018",
                controller=_DID,
                public_key_jwk=public_key_to_jwk(KeyAlgorithm.ECDSA_Secp256k1, point),
            ),
        )
        assert service.import_key(_DID) == [_KEY_ID]
        assert key_store.load_key(_KEY_ID).public_key == point

    def test_base58(self, service: DidService, key_store: InMemoryKeyStore) -> None:
        public_key = _raw(_ed25519_private_key())
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Ed25519VerificationKey2018",
                controller=_DID,
                public_key_base58=b58encode(public_key),
            ),
        )
        service.import_key(_DID)
        assert key_store.load_key(_KEY_ID).public_key == public_key

    def test_multibase(self, service: DidService, key_store: InMemoryKeyStore) -> None:
        public_key = _raw(_ed25519_private_key())
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Ed25519VerificationKey2020",
                controller=_DID,
                public_key_multibase=ed25519_public_key_to_multibase(public_key),
            ),
        )
        service.import_key(_DID)
        assert key_store.load_key(_KEY_ID).algorithm is KeyAlgorithm.EdDSA_Ed25519

    def test_compressed_secp256k1_multibase(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        public_key = ec.generate_private_key(ec.SECP256K1()).public_key()
        compressed = public_key.public_bytes(Encoding.X962, PublicFormat.CompressedPoint)
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="EcdsaSecp256k1VerificationKey2019",
                controller=_DID,
                public_key_multibase=encode_multibase_key(b"\xe7\x01", compressed),
            ),
        )
        service.import_key(_DID)
        assert key_store.load_key(_KEY_ID).public_key == public_key.public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )

    def test_every_method_is_imported(self, service: DidService) -> None:
        first = VerificationMethod(
            id=f"{_DID}#key-1",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_base58=b58encode(_raw(_ed25519_private_key())),
        )
        second = VerificationMethod(
            id=f"{_DID}#key-2",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_jwk=public_key_to_jwk(
                KeyAlgorithm.EdDSA_Ed25519, _raw(_ed25519_private_key())
            ),
        )
        _publish(service, first, second)
        assert service.import_key(_DID) == [first.id, second.id]

    def test_did_key_is_resolved_and_imported(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        public_key = _raw(_ed25519_private_key())
        suffix = ed25519_public_key_to_multibase(public_key)
        did = f"did:key:{suffix}"

        # The X25519 agreement key has no importable type and is skipped.
        assert service.import_key(did) == [f"{did}#{suffix}"]
        assert key_store.load_key(f"{did}#{suffix}").public_key == public_key


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestImportFailures:
    def test_existing_alias_is_not_overwritten(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Ed25519VerificationKey2018",
                controller=_DID,
                public_key_base58=b58encode(_raw(_ed25519_private_key())),
            ),
        )
        service.import_key(_DID)
        before = key_store.load_key(_KEY_ID)

        with pytest.raises(AliasConflictError, match=_KEY_ID):
            service.import_key(_DID)
        assert key_store.load_key(_KEY_ID) == before
        assert len(key_store) == 1

    def test_conflict_on_a_later_method_imports_nothing(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        first = VerificationMethod(
            id=f"{_DID}#k1",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_base58=b58encode(_raw(_ed25519_private_key())),
        )
        second = VerificationMethod(
            id=f"{_DID}#k2",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_base58=b58encode(_raw(_ed25519_private_key())),
        )
        existing = key_store.generate_key(KeyAlgorithm.EdDSA_Ed25519)
        key_store.add_alias(existing, second.id)
        _publish(service, first, second)

        with pytest.raises(AliasConflictError, match="#k2"):
            service.import_key(_DID)
        assert len(key_store) == 1
        assert not key_store.has_key(first.id)

    def test_invalid_later_key_imports_nothing(
        self, service: DidService, key_store: InMemoryKeyStore
    ) -> None:
        valid = VerificationMethod(
            id=f"{_DID}#k1",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_base58=b58encode(_raw(_ed25519_private_key())),
        )
        truncated = VerificationMethod(
            id=f"{_DID}#k2",
            type="Ed25519VerificationKey2018",
            controller=_DID,
            public_key_base58=b58encode(b"\x01" * 16),
        )
        _publish(service, valid, truncated)

        with pytest.raises(InvalidEncodingError, match="#k2"):
            service.import_key(_DID)
        assert len(key_store) == 0

    def test_non_ascii_pem_raises_invalid_encoding(self, service: DidService) -> None:
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="Ed25519VerificationKey2018",
                controller=_DID,
                public_key_pem="-----BEGIN PUBLIC KEY-----\nclé\n-----END PUBLIC KEY-----\n",
            ),
        )
        with pytest.raises(InvalidEncodingError, match="Invalid PEM"):
            service.import_key(_DID)

    def test_document_without_importable_keys(self, service: DidService) -> None:
        agreement_key = X25519PrivateKey.generate().public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        _publish(
            service,
            VerificationMethod(
                id=_KEY_ID,
                type="X25519KeyAgreementKey2019",
                controller=_DID,
                public_key_base58=b58encode(agreement_key),
            ),
        )
        with pytest.raises(NoImportableKeyError, match=_DID):
            service.import_key(_DID)

    def test_document_without_methods(self, service: DidService) -> None:
        service.update(DIDDocument(id=_DID))
        with pytest.raises(NoImportableKeyError):
            service.import_key(_DID)

    def test_unknown_did(self, service: DidService) -> None:
        with pytest.raises(NotFoundError, match="did:web:nowhere.example"):
            service.import_key("did:web:nowhere.example")
