"""DidUrl — structured form of a DID string.

Grammar
-------
::

    did:<method>:<method-specific-id>[#<fragment>]

``<method>`` is one or more lowercase letters or digits. The
method-specific id may contain ``:`` as a separator (``did:web`` uses it in
place of ``/``) but must not start or end with one.

Parsing is total: :meth:`DidUrl.parse` either returns a fully populated
value or raises :class:`~did_engine.errors.InvalidDidError`. It never
truncates, and ``str(DidUrl.parse(s)) == s`` for every accepted ``s``.

Specification reference
-----------------------
https://www.w3.org/TR/did-core/#did-syntax
"""
from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from enum import Enum

from did_engine.errors import InvalidDidError

_METHOD_PATTERN = re.compile(r"^[a-z0-9]+$")
_IDCHAR = r"[A-Za-z0-9._\-]|%[0-9A-Fa-f]{2}"
_IDENTIFIER_PATTERN = re.compile(rf"^(?:{_IDCHAR})+(?::(?:{_IDCHAR})+)*$")
_FRAGMENT_PATTERN = re.compile(r"^[A-Za-z0-9._\-~!$&'()*+,;=:@/?%]*$")

# EBSI v2 legal-entity identifiers: multibase base58btc of 0x01 || 16 random bytes.
_EBSI_V2_VERSION_BYTE = b"\x01"
_EBSI_V2_RANDOM_SIZE = 16


class DidMethod(str, Enum):
    """DID methods with built-in handlers."""

    key = "key"
    web = "web"
    ebsi = "ebsi"


@dataclass(frozen=True)
class DidUrl:
    """A parsed DID, optionally with a fragment.

    Parameters
    ----------
    method:
        The DID method name (``key``, ``web``, ``ebsi``, ...).
    identifier:
        The method-specific identifier.
    fragment:
        The part after ``#``, or ``None``.
    """

    method: str
    identifier: str
    fragment: str | None = None

    def __post_init__(self) -> None:
        if not _METHOD_PATTERN.match(self.method):
            raise InvalidDidError(self._raw(), f"invalid method name {self.method!r}")
        if not _IDENTIFIER_PATTERN.match(self.identifier):
            raise InvalidDidError(
                self._raw(), f"invalid method-specific identifier {self.identifier!r}"
            )
        if self.fragment is not None and not _FRAGMENT_PATTERN.match(self.fragment):
            raise InvalidDidError(self._raw(), f"invalid fragment {self.fragment!r}")

    @classmethod
    def parse(cls, text: str) -> "DidUrl":
        """Parse a DID URL string.

        Parameters
        ----------
        text:
            A string such as ``did:web:example.com:user#key-1``.

        Returns
        -------
        DidUrl
            The parsed value.

        Raises
        ------
        InvalidDidError
            If *text* does not follow the DID grammar.
        """
        if not isinstance(text, str):
            raise InvalidDidError(repr(text), "not a string")
        scheme, sep, rest = text.partition(":")
        if scheme != "did" or not sep:
            raise InvalidDidError(text, "missing 'did:' scheme")
        method, sep, remainder = rest.partition(":")
        if not method:
            raise InvalidDidError(text, "missing method segment")
        if not sep:
            raise InvalidDidError(text, "missing method-specific identifier")
        identifier, hash_sign, fragment = remainder.partition("#")
        return cls(
            method=method,
            identifier=identifier,
            fragment=fragment if hash_sign else None,
        )

    @classmethod
    def generate_ebsi_v2(cls) -> "DidUrl":
        """Generate a fresh random ``did:ebsi`` identifier (v2 rule)."""
        from did_engine.did.multibase import b58encode

        raw = _EBSI_V2_VERSION_BYTE + secrets.token_bytes(_EBSI_V2_RANDOM_SIZE)
        return cls(method=DidMethod.ebsi.value, identifier="z" + b58encode(raw))

    @property
    def did(self) -> str:
        """The DID without fragment."""
        return f"did:{self.method}:{self.identifier}"

    def with_fragment(self, fragment: str) -> "DidUrl":
        """Return a copy of this DID URL pointing at *fragment*."""
        return DidUrl(self.method, self.identifier, fragment)

    def __str__(self) -> str:
        if self.fragment is None:
            return self.did
        return f"{self.did}#{self.fragment}"

    def _raw(self) -> str:
        suffix = "" if self.fragment is None else f"#{self.fragment}"
        return f"did:{self.method}:{self.identifier}{suffix}"


__all__ = ["DidMethod", "DidUrl"]
