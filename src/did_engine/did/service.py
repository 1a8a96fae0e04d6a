"""DidService — the DID lifecycle dispatch engine.

Entry points
------------
- :meth:`DidService.create` — create a DID with a registered method;
- :meth:`DidService.resolve` — authoritative re-derivation or fetch;
- :meth:`DidService.load` — the method's local view (see below);
- :meth:`DidService.lookup` / :meth:`DidService.load_or_resolve_any` —
  cache first, best-effort resolution on a miss;
- :meth:`DidService.list_created` — DIDs cached in the active context;
- :meth:`DidService.import_key` — import a document's public keys.

``load`` per method
-------------------
========  ===========================================================
``key``   same as ``resolve`` (the DID string is the whole document)
``web``   cache first, falling back to the local placeholder
``ebsi``  cache only; ``NotFoundError`` on a miss
========  ===========================================================

Example
-------
::

    service = DidService()
    did = service.create(DidMethod.key)
    document = service.resolve(did)
    assert document.authentication == [f"{did}#{did.split(':')[2]}"]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from did_engine.config import EngineSettings
from did_engine.did.cache import DidCache
from did_engine.did.document import DIDDocument
from did_engine.did.importer import KeyImporter
from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.methods.registry import MethodRegistry
from did_engine.did.url import DidMethod, DidUrl
from did_engine.errors import DecodeError, ResolutionError

logger = logging.getLogger(__name__)


class LookupStatus(str, Enum):
    """Outcome of a best-effort :meth:`DidService.lookup`."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class LookupResult:
    """Result of :meth:`DidService.lookup`.

    Parameters
    ----------
    status:
        Whether a document was found.
    document:
        The document when ``status`` is ``FOUND``.
    error:
        The resolution error when ``status`` is ``TRANSIENT_FAILURE``.
    """

    status: LookupStatus
    document: DIDDocument | None = None
    error: Exception | None = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


class DidService:
    """Dispatch DID operations to the registered method handlers.

    Parameters
    ----------
    settings:
        Engine configuration. Defaults to :class:`EngineSettings` defaults.
    methods:
        Handler table. Defaults to the built-in ``key``, ``web`` and ``ebsi``
        handlers built from *settings*.
    cache:
        Document cache; must be the one the handlers use.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        methods: MethodRegistry | None = None,
        cache: DidCache | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.cache = cache or DidCache()
        self.methods = methods or MethodRegistry.with_defaults(self.settings, self.cache)
        self.importer = KeyImporter(self.load_or_resolve_any)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(
        self,
        method: DidMethod | str,
        key_alias: str | None = None,
        options: DidOptions | None = None,
    ) -> str:
        """Create a new DID.

        Parameters
        ----------
        method:
            The DID method, e.g. ``DidMethod.key`` or ``"ebsi"``.
        key_alias:
            Alias or id of an existing key. A key of the method's default
            algorithm is generated when omitted.
        options:
            Method-specific options (``DidWebOptions``, ``DidEbsiOptions``).

        Returns
        -------
        str
            The new DID.

        Raises
        ------
        UnsupportedMethodError
            If no handler is registered for *method*.
        KeyAlgorithmMismatchError
            If the key cannot be used with *method*.
        """
        handler = self.methods.get(_method_name(method))
        return handler.create(key_alias, options)

    def resolve(self, did: str | DidUrl) -> DIDDocument:
        """Re-derive or re-fetch the authoritative document for *did*.

        Raises
        ------
        InvalidDidError
            If *did* is malformed.
        UnsupportedMethodError
            If the method has no handler.
        ResolutionError
            If a registry could not be reached.
        DecodeError
            If a fetched document is malformed.
        """
        did_url = _parse(did)
        return self._handler(did_url).resolve(did_url)

    async def resolve_async(self, did: str | DidUrl) -> DIDDocument:
        """Cooperative variant of :meth:`resolve`."""
        did_url = _parse(did)
        return await self._handler(did_url).resolve_async(did_url)

    def resolve_raw(self, did: str | DidUrl) -> str:
        """Return the authoritative document for *did* as JSON text."""
        did_url = _parse(did)
        return self._handler(did_url).resolve_raw(did_url)

    def load(self, did: str | DidUrl) -> DIDDocument:
        """Return the method's local view of *did* (see module docs)."""
        did_url = _parse(did)
        return self._handler(did_url).load(did_url)

    def update(self, document: DIDDocument) -> None:
        """Replace the cached document for ``document.id``.

        Raises
        ------
        UnsupportedMethodError
            If the document's method has no handler.
        """
        self._handler(document.did_url)
        self.cache.put(document.id, document)

    # ------------------------------------------------------------------
    # Cache-first lookup
    # ------------------------------------------------------------------

    def lookup(self, did: str | DidUrl) -> LookupResult:
        """Return the cached document, resolving on a miss where possible.

        Only handlers declaring ``best_effort_resolution`` are asked to
        resolve. A resolved document is written to the cache. Registry
        failures are reported as ``TRANSIENT_FAILURE`` rather than raised.
        """
        did_url = _parse(did)
        cached = self.cache.get(did_url.did)
        if cached is not None:
            logger.debug("Loaded %s from cache", did_url.did)
            return LookupResult(LookupStatus.FOUND, cached)

        if did_url.method not in self.methods:
            return LookupResult(LookupStatus.NOT_FOUND)
        handler = self.methods.get(did_url.method)
        if not handler.best_effort_resolution:
            return LookupResult(LookupStatus.NOT_FOUND)

        try:
            document = handler.resolve(did_url)
        except (ResolutionError, DecodeError) as exc:
            return LookupResult(LookupStatus.TRANSIENT_FAILURE, error=exc)

        self.cache.put(did_url.did, document)
        return LookupResult(LookupStatus.FOUND, document)

    def load_or_resolve_any(self, did: str | DidUrl) -> DIDDocument | None:
        """Like :meth:`lookup`, treating transient failures as not found."""
        result = self.lookup(did)
        if result.status is LookupStatus.TRANSIENT_FAILURE:
            logger.warning("Could not resolve %s, treating as not found: %s", did, result.error)
        return result.document

    def list_created(self) -> list[str]:
        """Return the DIDs cached in the active context."""
        return self.cache.list_dids()

    def get_authentication_methods(self, did: str | DidUrl) -> list[str]:
        """Return the authentication references of *did*'s loaded document."""
        return list(self.load(did).authentication)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def import_key(self, did: str) -> list[str]:
        """Import the public keys of *did*'s document into the key store.

        See :meth:`KeyImporter.import_key_material`.
        """
        return self.importer.import_key_material(did)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _handler(self, did_url: DidUrl) -> MethodHandler:
        return self.methods.get(did_url.method)


def _method_name(method: DidMethod | str) -> str:
    if isinstance(method, DidMethod):
        return method.value
    return method


def _parse(did: str | DidUrl) -> DidUrl:
    if isinstance(did, DidUrl):
        return did
    return DidUrl.parse(did)


__all__ = ["DidService", "LookupResult", "LookupStatus"]
