"""Public-key JWK conversion for the key algorithms the engine understands.

Only public material is handled here. Ed25519 keys map to ``OKP`` JWKs
(RFC 8037), secp256k1 keys to ``EC`` JWKs with uncompressed coordinates.
"""
from __future__ import annotations

import base64
import binascii

from did_engine.errors import InvalidEncodingError, KeyAlgorithmMismatchError
from did_engine.keys.algorithms import KeyAlgorithm

_SECP256K1_COORDINATE_SIZE = 32


def b64url_encode(data: bytes) -> str:
    """Base64url-encode *data* without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded base64url *text*.

    Raises
    ------
    InvalidEncodingError
        If *text* is not valid base64url.
    """
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise InvalidEncodingError(f"Invalid base64url value {text!r}: {exc}") from exc


def public_key_to_jwk(
    algorithm: KeyAlgorithm, public_key: bytes, kid: str | None = None
) -> dict[str, str]:
    """Build a public JWK.

    Parameters
    ----------
    algorithm:
        Algorithm of *public_key*.
    public_key:
        Raw 32-byte Ed25519 key, or a 65-byte uncompressed secp256k1 point.
    kid:
        Optional key id to embed.

    Returns
    -------
    dict[str, str]
        The JWK as a plain dictionary.
    """
    if algorithm is KeyAlgorithm.EdDSA_Ed25519:
        jwk = {"kty": "OKP", "crv": "Ed25519", "x": b64url_encode(public_key)}
    elif algorithm is KeyAlgorithm.ECDSA_Secp256k1:
        if len(public_key) != 1 + 2 * _SECP256K1_COORDINATE_SIZE or public_key[0] != 0x04:
            raise InvalidEncodingError(
                "secp256k1 public keys must be 65-byte uncompressed points (0x04 || x || y)."
            )
        x = public_key[1 : 1 + _SECP256K1_COORDINATE_SIZE]
        y = public_key[1 + _SECP256K1_COORDINATE_SIZE :]
        jwk = {
            "kty": "EC",
            "crv": "secp256k1",
            "x": b64url_encode(x),
            "y": b64url_encode(y),
        }
    else:  # pragma: no cover - exhaustive over KeyAlgorithm
        raise KeyAlgorithmMismatchError(f"No JWK mapping for algorithm {algorithm!r}.")
    if kid is not None:
        jwk["kid"] = kid
    return jwk


def jwk_to_public_key(jwk: dict[str, object]) -> tuple[KeyAlgorithm, bytes]:
    """Extract ``(algorithm, public_key_bytes)`` from a public JWK.

    Raises
    ------
    KeyAlgorithmMismatchError
        If the key type or curve is not supported.
    InvalidEncodingError
        If coordinates are missing or have the wrong length.
    """
    kty = jwk.get("kty")
    crv = jwk.get("crv")
    if kty == "OKP" and crv == "Ed25519":
        x = _coordinate(jwk, "x")
        if len(x) != 32:
            raise InvalidEncodingError(f"Ed25519 JWK 'x' must be 32 bytes, got {len(x)}.")
        return KeyAlgorithm.EdDSA_Ed25519, x
    if kty == "EC" and crv == "secp256k1":
        x = _coordinate(jwk, "x")
        y = _coordinate(jwk, "y")
        if len(x) != _SECP256K1_COORDINATE_SIZE or len(y) != _SECP256K1_COORDINATE_SIZE:
            raise InvalidEncodingError("secp256k1 JWK coordinates must be 32 bytes each.")
        return KeyAlgorithm.ECDSA_Secp256k1, b"\x04" + x + y
    raise KeyAlgorithmMismatchError(
        f"Unsupported JWK key type kty={kty!r} crv={crv!r}. "
        "Supported: OKP/Ed25519, EC/secp256k1."
    )


def _coordinate(jwk: dict[str, object], name: str) -> bytes:
    value = jwk.get(name)
    if not isinstance(value, str) or not value:
        raise InvalidEncodingError(f"JWK is missing the {name!r} member.")
    return b64url_decode(value)


__all__ = ["b64url_decode", "b64url_encode", "jwk_to_public_key", "public_key_to_jwk"]
