"""KeyImporter — import the public keys of a DID document into the key store.

For every verification method the encodings are tried in a fixed order,
JWK, base58, PEM, then multibase, and the first one present and supported is
imported. The imported key is aliased to the verification method id, so
each successful import registers exactly one new alias.

An alias that already exists is never overwritten
(:class:`~did_engine.errors.AliasConflictError`). If no method of the
document yields a key, :class:`~did_engine.errors.NoImportableKeyError` is
raised.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_pem_public_key,
)

from did_engine.context import ContextManager
from did_engine.did.document import DIDDocument, VerificationMethod
from did_engine.did.multibase import (
    ED25519_MULTICODEC_PREFIX,
    b58decode,
    decode_multibase_key,
)
from did_engine.errors import (
    AliasConflictError,
    InvalidEncodingError,
    KeyAlgorithmMismatchError,
    NoImportableKeyError,
    NotFoundError,
)
from did_engine.keys.algorithms import KeyAlgorithm
from did_engine.keys.jwk import jwk_to_public_key
from did_engine.keys.store import KeyStore

logger = logging.getLogger(__name__)

SECP256K1_MULTICODEC_PREFIX: bytes = b"\xe7\x01"

_ED25519_TYPES = frozenset(
    {"Ed25519VerificationKey2018", "Ed25519VerificationKey2020"}
)
_SECP256K1_TYPES = frozenset(
    {
        "Secp256k1VerificationKey2018",
        "EcdsaSecp256k1VerificationKey2019",
    }
)

# (algorithm, public key bytes) or None when the material is not importable.
_Material = tuple[KeyAlgorithm, bytes] | None


class KeyImporter:
    """Reconcile a DID document's keys with the active key store.

    Parameters
    ----------
    loader:
        Returns the document for a DID, or ``None`` if it can be neither
        loaded nor resolved. Usually
        :meth:`DidService.load_or_resolve_any <did_engine.did.service.DidService.load_or_resolve_any>`.
    """

    def __init__(self, loader: Callable[[str], DIDDocument | None]) -> None:
        self._loader = loader

    def import_key_material(self, did: str) -> list[str]:
        """Import the keys of *did*'s document.

        Returns
        -------
        list[str]
            The verification method ids that were imported and aliased.

        Raises
        ------
        NotFoundError
            If the document can be neither loaded nor resolved.
        AliasConflictError
            If a verification method id is already a key alias.
        NoImportableKeyError
            If no verification method carries importable key material.
        """
        document = self._loader(did)
        if document is None:
            raise NotFoundError(f"Could not load or resolve {did!r}.")

        pending: list[tuple[str, tuple[KeyAlgorithm, bytes]]] = []
        for method in document.verification_method:
            for extract in (_from_jwk, _from_base58, _from_pem, _from_multibase):
                material = extract(method)
                if material is not None:
                    pending.append((method.id, _validated(method, material)))
                    break
            else:
                logger.debug("No importable key material in %s", method.id)

        if not pending:
            raise NoImportableKeyError(
                f"Could not import any key of {did!r}: no verification method carries "
                "a supported JWK, base58, PEM or multibase public key."
            )

        # Every alias is checked before the first write so a conflict leaves the store untouched.
        key_store = ContextManager.key_store()
        seen: set[str] = set()
        for alias, _ in pending:
            if alias in seen or key_store.has_key(alias):
                raise AliasConflictError(alias)
            seen.add(alias)
        for alias, material in pending:
            _import(key_store, alias, material)
        return [alias for alias, _ in pending]


def _import(key_store: KeyStore, alias: str, material: tuple[KeyAlgorithm, bytes]) -> None:
    algorithm, public_key = material
    key_id = key_store.import_public_key(algorithm, public_key)
    key_store.add_alias(key_id, alias)
    logger.info("Imported %s key %s as %s", algorithm.value, key_id, alias)


def _validated(
    method: VerificationMethod, material: tuple[KeyAlgorithm, bytes]
) -> tuple[KeyAlgorithm, bytes]:
    algorithm, public_key = material
    try:
        if algorithm is KeyAlgorithm.EdDSA_Ed25519:
            Ed25519PublicKey.from_public_bytes(public_key)
        else:
            ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), public_key)
    except ValueError as exc:
        raise InvalidEncodingError(
            f"Invalid {algorithm.value} public key in {method.id!r}: {exc}"
        ) from exc
    return material


def _from_jwk(method: VerificationMethod) -> _Material:
    if not method.public_key_jwk:
        return None
    try:
        return jwk_to_public_key(method.public_key_jwk)
    except KeyAlgorithmMismatchError as exc:
        logger.debug("Skipping JWK of %s: %s", method.id, exc)
        return None


def _from_base58(method: VerificationMethod) -> _Material:
    if not method.public_key_base58:
        return None
    raw = b58decode(method.public_key_base58)
    return _typed_material(method, raw)


def _from_multibase(method: VerificationMethod) -> _Material:
    value = method.public_key_multibase
    if not value:
        return None
    try:
        return KeyAlgorithm.EdDSA_Ed25519, decode_multibase_key(ED25519_MULTICODEC_PREFIX, value)
    except InvalidEncodingError:
        pass
    try:
        compressed = decode_multibase_key(SECP256K1_MULTICODEC_PREFIX, value)
    except InvalidEncodingError:
        logger.debug("Skipping multibase key of %s: unsupported multicodec", method.id)
        return None
    return KeyAlgorithm.ECDSA_Secp256k1, _uncompressed_secp256k1(compressed)


def _from_pem(method: VerificationMethod) -> _Material:
    if not method.public_key_pem:
        return None
    try:
        pem = method.public_key_pem.encode("ascii")
        if b"BEGIN CERTIFICATE" in pem:
            public_key = x509.load_pem_x509_certificate(pem).public_key()
        else:
            public_key = load_pem_public_key(pem)
    except ValueError as exc:
        raise InvalidEncodingError(f"Invalid PEM public key in {method.id!r}: {exc}") from exc

    if isinstance(public_key, Ed25519PublicKey):
        return KeyAlgorithm.EdDSA_Ed25519, public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)
    if isinstance(public_key, ec.EllipticCurvePublicKey) and isinstance(
        public_key.curve, ec.SECP256K1
    ):
        return KeyAlgorithm.ECDSA_Secp256k1, public_key.public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )
    logger.debug("Skipping PEM of %s: unsupported key type %s", method.id, type(public_key).__name__)
    return None


def _typed_material(method: VerificationMethod, raw: bytes) -> _Material:
    """Interpret raw key bytes according to the verification method type."""
    if method.type in _ED25519_TYPES:
        return KeyAlgorithm.EdDSA_Ed25519, raw
    if method.type in _SECP256K1_TYPES:
        return KeyAlgorithm.ECDSA_Secp256k1, _uncompressed_secp256k1(raw)
    logger.debug("Skipping base58 key of %s: unsupported type %s", method.id, method.type)
    return None


def _uncompressed_secp256k1(point: bytes) -> bytes:
    try:
        public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), point)
    except ValueError as exc:
        raise InvalidEncodingError(f"Invalid secp256k1 point: {exc}") from exc
    return public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)


__all__ = ["KeyImporter"]
