"""Key-material transforms: multibase encoding and Ed25519 → X25519 derivation.

did:key encoding
----------------
1. Take the raw 32-byte Ed25519 public key.
2. Prepend the Ed25519 multicodec prefix: ``0xed 0x01`` (2 bytes).
3. Encode the 34-byte result with base58btc.
4. Prefix the encoded string with ``z`` (the multibase indicator for base58btc).

X25519 key-agreement keys use the same scheme with the ``0xec 0x01`` prefix.

The Ed25519 → X25519 conversion is the birational map from the twisted
Edwards curve to its Montgomery form, ``u = (1 + y) / (1 - y) mod p``,
computed by libsodium through PyNaCl.

Every function in this module is pure and deterministic.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import nacl.bindings
import nacl.exceptions

from did_engine.did.document import VerificationMethod
from did_engine.errors import InvalidEncodingError, KeyAlgorithmMismatchError

if TYPE_CHECKING:
    from did_engine.did.url import DidUrl

# ---------------------------------------------------------------------------
# Multicodec prefixes (varint-encoded)
# ---------------------------------------------------------------------------

ED25519_MULTICODEC_PREFIX: bytes = b"\xed\x01"
X25519_MULTICODEC_PREFIX: bytes = b"\xec\x01"

MULTIBASE_BASE58BTC: str = "z"

ED25519_PUBLIC_KEY_SIZE = 32

ED25519_VERIFICATION_KEY_2018 = "Ed25519VerificationKey2018"
X25519_KEY_AGREEMENT_KEY_2019 = "X25519KeyAgreementKey2019"

# ---------------------------------------------------------------------------
# Base58btc codec
# ---------------------------------------------------------------------------

_BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX: dict[str, int] = {char: index for index, char in enumerate(_BASE58_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode *data* to a base58btc string.

    Leading zero bytes are preserved as leading ``1`` characters.
    """
    n = int.from_bytes(data, "big")
    result: list[str] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder])
    for byte in data:
        if byte != 0:
            break
        result.append("1")
    return "".join(reversed(result))


def b58decode(encoded: str) -> bytes:
    """Decode a base58btc string back to bytes.

    Raises
    ------
    InvalidEncodingError
        If the string contains a character outside the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        index = _BASE58_INDEX.get(char)
        if index is None:
            raise InvalidEncodingError(
                f"Invalid base58btc character {char!r} in encoded string {encoded!r}"
            )
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + result


# ---------------------------------------------------------------------------
# Multibase / multicodec
# ---------------------------------------------------------------------------


def encode_multibase_key(prefix: bytes, public_key: bytes) -> str:
    """Return ``z`` + base58btc(*prefix* || *public_key*)."""
    return MULTIBASE_BASE58BTC + b58encode(prefix + public_key)


def decode_multibase_key(prefix: bytes, text: str) -> bytes:
    """Inverse of :func:`encode_multibase_key` for a fixed multicodec *prefix*.

    Raises
    ------
    InvalidEncodingError
        If *text* is not base58btc multibase, or its multicodec prefix is not
        *prefix*.
    """
    if not text.startswith(MULTIBASE_BASE58BTC) or len(text) == 1:
        raise InvalidEncodingError(
            f"Expected a base58btc multibase value starting with 'z', got {text!r}."
        )
    decoded = b58decode(text[1:])
    if not decoded.startswith(prefix):
        found = decoded[: len(prefix)].hex()
        raise InvalidEncodingError(
            f"Unsupported multicodec prefix 0x{found} in {text!r}. "
            f"Expected 0x{prefix.hex()}."
        )
    return decoded[len(prefix) :]


def ed25519_public_key_to_multibase(public_key: bytes) -> str:
    """Encode a raw Ed25519 public key as ``z<base58btc(0xed01 || key)>``."""
    _check_ed25519_size(public_key)
    return encode_multibase_key(ED25519_MULTICODEC_PREFIX, public_key)


def multibase_to_ed25519_public_key(text: str) -> bytes:
    """Decode an Ed25519 multibase value back to the raw 32-byte public key.

    Raises
    ------
    InvalidEncodingError
        If the value is malformed, uses another multicodec, or does not
        carry exactly 32 key bytes.
    """
    public_key = decode_multibase_key(ED25519_MULTICODEC_PREFIX, text)
    if len(public_key) != ED25519_PUBLIC_KEY_SIZE:
        raise InvalidEncodingError(
            f"Ed25519 public key in {text!r} is {len(public_key)} bytes, expected 32."
        )
    return public_key


def x25519_public_key_to_multibase(public_key: bytes) -> str:
    """Encode a raw X25519 public key as ``z<base58btc(0xec01 || key)>``."""
    return encode_multibase_key(X25519_MULTICODEC_PREFIX, public_key)


# ---------------------------------------------------------------------------
# Ed25519 -> X25519
# ---------------------------------------------------------------------------


def ed25519_to_x25519(public_key: bytes) -> bytes:
    """Map an Ed25519 public key to the equivalent X25519 public key.

    Raises
    ------
    KeyAlgorithmMismatchError
        If *public_key* is not a 32-byte point on the Ed25519 curve.
    """
    _check_ed25519_size(public_key)
    try:
        return nacl.bindings.crypto_sign_ed25519_pk_to_curve25519(public_key)
    except nacl.exceptions.CryptoError as exc:
        raise KeyAlgorithmMismatchError(
            f"Public key {public_key.hex()} is not a valid Ed25519 point: {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# Verification methods
# ---------------------------------------------------------------------------


class EdVerificationParams(NamedTuple):
    """Verification material derived from one Ed25519 key."""

    key_agreement_id: str
    verification_methods: list[VerificationMethod]
    authentication_refs: list[str]


def build_ed_verification_methods(public_key: bytes, did_url: "DidUrl") -> EdVerificationParams:
    """Build the signing and key-agreement verification methods for a DID.

    Produces an ``Ed25519VerificationKey2018`` method at
    ``<did>#<identifier>`` and an ``X25519KeyAgreementKey2019`` method at
    ``<did>#<multibase(x25519 key)>``, both carrying ``publicKeyBase58``.

    Parameters
    ----------
    public_key:
        The raw 32-byte Ed25519 public key.
    did_url:
        The DID the methods belong to. Any fragment is ignored.

    Returns
    -------
    EdVerificationParams
        ``(key_agreement_id, verification_methods, authentication_refs)``
        where ``authentication_refs`` holds only the signing-key id.
    """
    agreement_key = ed25519_to_x25519(public_key)
    did = did_url.did
    signing_id = f"{did}#{did_url.identifier}"
    agreement_id = f"{did}#{x25519_public_key_to_multibase(agreement_key)}"

    verification_methods = [
        VerificationMethod(
            id=signing_id,
            type=ED25519_VERIFICATION_KEY_2018,
            controller=did,
            public_key_base58=b58encode(public_key),
        ),
        VerificationMethod(
            id=agreement_id,
            type=X25519_KEY_AGREEMENT_KEY_2019,
            controller=did,
            public_key_base58=b58encode(agreement_key),
        ),
    ]
    return EdVerificationParams(agreement_id, verification_methods, [signing_id])


def _check_ed25519_size(public_key: bytes) -> None:
    if len(public_key) != ED25519_PUBLIC_KEY_SIZE:
        raise KeyAlgorithmMismatchError(
            f"Ed25519 public keys are 32 bytes, got {len(public_key)}. "
            "Is this a key of a different curve?"
        )


__all__ = [
    "ED25519_MULTICODEC_PREFIX",
    "ED25519_VERIFICATION_KEY_2018",
    "EdVerificationParams",
    "X25519_KEY_AGREEMENT_KEY_2019",
    "X25519_MULTICODEC_PREFIX",
    "b58decode",
    "b58encode",
    "build_ed_verification_methods",
    "decode_multibase_key",
    "ed25519_public_key_to_multibase",
    "ed25519_to_x25519",
    "encode_multibase_key",
    "multibase_to_ed25519_public_key",
    "x25519_public_key_to_multibase",
]
