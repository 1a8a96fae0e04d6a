"""Exception taxonomy for did-engine.

Every failure surfaced by the engine is a subclass of :class:`DidEngineError`.
Where a builtin exception type describes the failure category well (a
malformed value, a missing entry), the engine error also subclasses it so
callers that only know about builtins keep working.
"""
from __future__ import annotations


class DidEngineError(Exception):
    """Base exception for all did-engine errors."""


class InvalidDidError(DidEngineError, ValueError):
    """Raised when a string cannot be parsed as a DID URL."""

    def __init__(self, did: str, reason: str) -> None:
        self.did = did
        super().__init__(
            f"Malformed DID {did!r}: {reason}. "
            "Expected format: did:<method>:<method-specific-id>[#<fragment>]"
        )


class UnsupportedMethodError(DidEngineError):
    """Raised when no handler is registered for a DID method."""

    def __init__(self, method: str, supported: list[str] | None = None) -> None:
        self.method = method
        hint = f" Supported methods: {sorted(supported)}" if supported else ""
        super().__init__(f"DID method {method!r} is not supported.{hint}")


class KeyAlgorithmMismatchError(DidEngineError):
    """Raised when a key's algorithm cannot be used for the requested operation."""


class InvalidEncodingError(DidEngineError, ValueError):
    """Raised on malformed multibase, base58 or multicodec input."""


class DecodeError(DidEngineError, ValueError):
    """Raised when a document body does not parse into the expected shape."""


class ResolutionError(DidEngineError):
    """Raised when a remote registry could not be reached after all retries.

    Attributes
    ----------
    did:
        The DID that was being resolved.
    attempts:
        Number of fetch attempts performed.
    last_error:
        The transport error raised by the final attempt.
    """

    def __init__(self, did: str, attempts: int, last_error: BaseException | None) -> None:
        self.did = did
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Could not resolve {did!r} after {attempts} attempt(s): {last_error}"
        )


class NotFoundError(DidEngineError, KeyError):
    """Raised when a DID document or key cannot be found."""

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return str(self.args[0]) if self.args else ""


class KeyNotFoundError(NotFoundError):
    """Raised when a key id or alias is unknown to the key store."""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(f"No key stored under id or alias {alias!r}.")


class AliasConflictError(DidEngineError):
    """Raised when a key alias is already bound and would be overwritten."""

    def __init__(self, alias: str) -> None:
        self.alias = alias
        super().__init__(
            f"Key alias {alias!r} already exists. "
            "Remove the existing key or choose a different alias."
        )


class NoImportableKeyError(DidEngineError):
    """Raised when no verification method of a document carries importable key material."""


class MissingOptionError(DidEngineError, ValueError):
    """Raised when a mandatory method option was not supplied."""


class UnsupportedCapabilityError(DidEngineError, NotImplementedError):
    """Raised for capabilities that are declared but intentionally not implemented."""


__all__ = [
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
]
