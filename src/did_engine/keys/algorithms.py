"""Key algorithms supported by the key stores."""
from __future__ import annotations

from enum import Enum


class KeyAlgorithm(str, Enum):
    """Signature algorithms a stored key can use."""

    EdDSA_Ed25519 = "EdDSA_Ed25519"
    ECDSA_Secp256k1 = "ECDSA_Secp256k1"


__all__ = ["KeyAlgorithm"]
