"""DIDDocument — W3C DID Core document model and its JSON wire format.

JSON representation
-------------------
::

    {
      "@context": ["https://w3id.org/did/v1"],
      "id": "did:key:z6Mk...",
      "verificationMethod": [
        {"id": "...", "type": "...", "controller": "...", "publicKeyBase58": "..."}
      ],
      "authentication": ["did:key:z6Mk...#z6Mk..."],
      "assertionMethod": [...],
      "keyAgreement": [...],
      "capabilityInvocation": [...],
      "capabilityDelegation": [...],
      "service": [...]
    }

Each verification method carries at most one of ``publicKeyJwk``,
``publicKeyBase58``, ``publicKeyMultibase`` or ``publicKeyPem``.

Every reference in a relationship list must name a declared verification
method. Embedded verification methods found in relationship lists on decode
are moved into ``verificationMethod`` and replaced by their id.

Specification reference
-----------------------
https://www.w3.org/TR/did-core/#data-model
"""
from __future__ import annotations

import json
from dataclasses import dataclass

from pydantic import BaseModel, Field, field_validator, model_validator

from did_engine.errors import DecodeError, InvalidDidError
from did_engine.did.url import DidMethod, DidUrl

DID_CONTEXT_URL: str = "https://w3id.org/did/v1"

# (python attribute, JSON member) for every verification relationship.
RELATIONSHIPS: tuple[tuple[str, str], ...] = (
    ("authentication", "authentication"),
    ("assertion_method", "assertionMethod"),
    ("key_agreement", "keyAgreement"),
    ("capability_invocation", "capabilityInvocation"),
    ("capability_delegation", "capabilityDelegation"),
)

# (python attribute, JSON member) for every public key encoding.
_KEY_ENCODINGS: tuple[tuple[str, str], ...] = (
    ("public_key_jwk", "publicKeyJwk"),
    ("public_key_base58", "publicKeyBase58"),
    ("public_key_multibase", "publicKeyMultibase"),
    ("public_key_pem", "publicKeyPem"),
)


# ------------------------------------------------------------------
# Verification method
# ------------------------------------------------------------------


@dataclass(frozen=True)
class VerificationMethod:
    """A public key bound to a DID.

    Parameters
    ----------
    id:
        The verification method id (e.g. ``did:ebsi:z...#keys-1``).
    type:
        Verification method type, e.g. ``"Ed25519VerificationKey2018"``.
    controller:
        The DID that controls this key.
    public_key_jwk, public_key_base58, public_key_multibase, public_key_pem:
        The key material. At most one may be set.
    """

    id: str
    type: str
    controller: str
    public_key_base58: str | None = None
    public_key_multibase: str | None = None
    public_key_jwk: dict[str, object] | None = None
    public_key_pem: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("VerificationMethod.id must not be empty.")
        if not self.type:
            raise ValueError("VerificationMethod.type must not be empty.")
        if not self.controller:
            raise ValueError("VerificationMethod.controller must not be empty.")
        populated = [member for attr, member in _KEY_ENCODINGS if getattr(self, attr)]
        if len(populated) > 1:
            raise ValueError(
                f"VerificationMethod {self.id!r} carries several key encodings "
                f"{populated}; at most one is allowed."
            )

    @property
    def key_encoding(self) -> str | None:
        """JSON member name of the populated key encoding, or ``None``."""
        for attr, member in _KEY_ENCODINGS:
            if getattr(self, attr):
                return member
        return None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a W3C-compatible plain dictionary."""
        data: dict[str, object] = {
            "id": self.id,
            "type": self.type,
            "controller": self.controller,
        }
        for attr, member in _KEY_ENCODINGS:
            value = getattr(self, attr)
            if value:
                data[member] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "VerificationMethod":
        """Build a verification method from its JSON dictionary form."""
        return cls(
            id=data["id"],
            type=data["type"],
            controller=data["controller"],
            public_key_base58=data.get("publicKeyBase58"),
            public_key_multibase=data.get("publicKeyMultibase"),
            public_key_jwk=data.get("publicKeyJwk"),
            public_key_pem=data.get("publicKeyPem"),
        )


# ------------------------------------------------------------------
# Service endpoint
# ------------------------------------------------------------------


@dataclass(frozen=True)
class ServiceEndpoint:
    """A service endpoint advertised in a DID document."""

    id: str
    type: str
    endpoint: str | dict[str, object] | list[object]

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ServiceEndpoint.id must not be empty.")
        if not self.type:
            raise ValueError("ServiceEndpoint.type must not be empty.")
        if not self.endpoint:
            raise ValueError("ServiceEndpoint.endpoint must not be empty.")

    def to_dict(self) -> dict[str, object]:
        """Serialize to a W3C-compatible plain dictionary."""
        return {"id": self.id, "type": self.type, "serviceEndpoint": self.endpoint}


# ------------------------------------------------------------------
# DID Document (Pydantic v2)
# ------------------------------------------------------------------


class DIDDocument(BaseModel):
    """A W3C DID Core document.

    Instances are immutable: a changed document is a new document, which
    replaces the cached entry when stored.

    Parameters
    ----------
    context:
        JSON-LD context URIs. A single string is accepted and wrapped.
    id:
        The DID subject. Must be a DID without fragment.
    verification_method:
        Public keys associated with this DID.
    authentication, assertion_method, key_agreement, capability_invocation, capability_delegation:
        Verification-method ids authorised for each relationship.
    service:
        Optional service endpoints.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    context: list[str] = Field(default_factory=lambda: [DID_CONTEXT_URL])
    id: str
    verification_method: list[VerificationMethod] = Field(default_factory=list)
    authentication: list[str] = Field(default_factory=list)
    assertion_method: list[str] = Field(default_factory=list)
    key_agreement: list[str] = Field(default_factory=list)
    capability_invocation: list[str] = Field(default_factory=list)
    capability_delegation: list[str] = Field(default_factory=list)
    service: list[ServiceEndpoint] | None = None

    @field_validator("context", mode="before")
    @classmethod
    def wrap_single_context(cls, value: object) -> object:
        """Accept ``"@context": "<uri>"`` as a one-element list."""
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("context")
    @classmethod
    def validate_context_not_empty(cls, value: list[str]) -> list[str]:
        """Ensure context has at least one entry."""
        if not value:
            raise ValueError("context must contain at least one URI.")
        return value

    @field_validator("id")
    @classmethod
    def validate_did(cls, value: str) -> str:
        """Validate the document id is a DID without fragment."""
        did_url = DidUrl.parse(value)
        if did_url.fragment is not None:
            raise ValueError(f"Document id {value!r} must not carry a fragment.")
        return value

    @model_validator(mode="after")
    def validate_references(self) -> "DIDDocument":
        """Validate every relationship reference names a declared method."""
        method_ids = {vm.id for vm in self.verification_method}
        for attr, member in RELATIONSHIPS:
            for reference in getattr(self, attr):
                if reference not in method_ids:
                    raise ValueError(
                        f"{member} reference {reference!r} does not match any "
                        "declared verificationMethod id."
                    )
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def did_url(self) -> DidUrl:
        """The parsed document id."""
        return DidUrl.parse(self.id)

    def resolve_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Return the VerificationMethod with the given id, or ``None``."""
        for method in self.verification_method:
            if method.id == method_id:
                return method
        return None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Return the W3C JSON representation as a plain dictionary."""
        data: dict[str, object] = {
            "@context": list(self.context),
            "id": self.id,
            "verificationMethod": [vm.to_dict() for vm in self.verification_method],
        }
        for attr, member in RELATIONSHIPS:
            data[member] = list(getattr(self, attr))
        if self.service is not None:
            data["service"] = [svc.to_dict() for svc in self.service]
        return data

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize this document to a JSON string (pretty-printed by default)."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "DIDDocument":
        """Reconstruct a document from its JSON dictionary form.

        Raises
        ------
        DecodeError
            If required members are missing or the document is invalid.
        """
        if not isinstance(data, dict):
            raise DecodeError(f"A DID document must be a JSON object, got {type(data).__name__}.")
        try:
            verification_methods = [
                VerificationMethod.from_dict(vm) for vm in data.get("verificationMethod") or []
            ]
            relationships: dict[str, list[str]] = {}
            for attr, member in RELATIONSHIPS:
                relationships[attr] = _references(
                    data.get(member) or [], verification_methods
                )
            service = data.get("service")
            return cls(
                context=data.get("@context", [DID_CONTEXT_URL]),
                id=data["id"],
                verification_method=verification_methods,
                service=(
                    [
                        ServiceEndpoint(
                            id=svc["id"], type=svc["type"], endpoint=svc["serviceEndpoint"]
                        )
                        for svc in service
                    ]
                    if service is not None
                    else None
                ),
                **relationships,
            )
        except KeyError as exc:
            raise DecodeError(f"Missing required member {exc} in DID document.") from exc
        except (TypeError, AttributeError, ValueError) as exc:
            # ValidationError and InvalidDidError are both ValueErrors.
            raise DecodeError(f"Invalid DID document: {exc}") from exc

    @classmethod
    def from_json(cls, json_str: str) -> "DIDDocument":
        """Deserialize a document from a JSON string.

        Raises
        ------
        DecodeError
            If the JSON is malformed or the document fails validation.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"Invalid JSON: {exc}") from exc
        return cls.from_dict(data)


class EbsiDIDDocument(DIDDocument):
    """A DID document of the ``did:ebsi`` method.

    In addition to the generic rules the subject must be a ``did:ebsi`` DID
    and at least one verification method must be declared.
    """

    @field_validator("id")
    @classmethod
    def validate_ebsi_did(cls, value: str) -> str:
        """Validate the document id uses the ebsi method."""
        if DidUrl.parse(value).method != DidMethod.ebsi.value:
            raise ValueError(f"{value!r} is not a did:ebsi identifier.")
        return value

    @model_validator(mode="after")
    def validate_has_verification_method(self) -> "EbsiDIDDocument":
        """Ensure the document declares at least one key."""
        if not self.verification_method:
            raise ValueError("A did:ebsi document must declare a verificationMethod.")
        return self


def document_class_for(method: str) -> type[DIDDocument]:
    """Return the document class used for DIDs of *method*."""
    if method == DidMethod.ebsi.value:
        return EbsiDIDDocument
    return DIDDocument


def decode_document(json_str: str) -> DIDDocument:
    """Decode a JSON document into the class matching its DID method.

    Raises
    ------
    DecodeError
        If the body is not valid JSON, has no parsable ``id``, or fails
        validation for its method's document shape.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("id"), str):
        raise DecodeError("A DID document must be a JSON object with a string 'id'.")
    try:
        method = DidUrl.parse(data["id"]).method
    except InvalidDidError as exc:
        raise DecodeError(f"Invalid DID document id: {exc}") from exc
    return document_class_for(method).from_dict(data)


def _references(entries: list[object], verification_methods: list[VerificationMethod]) -> list[str]:
    """Normalise relationship entries to ids, hoisting embedded methods."""
    known = {vm.id for vm in verification_methods}
    references: list[str] = []
    for entry in entries:
        if isinstance(entry, dict):
            embedded = VerificationMethod.from_dict(entry)
            if embedded.id not in known:
                verification_methods.append(embedded)
                known.add(embedded.id)
            references.append(embedded.id)
        elif isinstance(entry, str):
            references.append(entry)
        else:
            raise TypeError(f"Unsupported relationship entry {entry!r}.")
    return references


__all__ = [
    "DID_CONTEXT_URL",
    "DIDDocument",
    "EbsiDIDDocument",
    "RELATIONSHIPS",
    "ServiceEndpoint",
    "VerificationMethod",
    "decode_document",
    "document_class_for",
]
