"""Registry resolution with bounded retry, used by ``did:ebsi``.

Protocol
--------
Each attempt issues ``GET <registry_url>/<did>``. A transport failure or a
non-2xx status (any :class:`httpx.HTTPError`) is retryable: it is recorded
as the last error and, if attempts remain, the resolver waits
:attr:`RetryPolicy.delay` seconds before trying again. After
:attr:`RetryPolicy.max_attempts` failures a
:class:`~did_engine.errors.ResolutionError` is raised, chained from the
last error.

A body that arrives but does not decode into a ``did:ebsi`` document is not
retried: :class:`~did_engine.errors.DecodeError` is raised at once.

:meth:`EbsiRegistryResolver.resolve_async` follows the same protocol with
:func:`asyncio.sleep` between attempts, so cancelling the surrounding task
interrupts a wait or a request but never a decode.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from did_engine.did.document import DIDDocument, EbsiDIDDocument, decode_document
from did_engine.did.url import DidUrl
from did_engine.errors import DecodeError, ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_EBSI_REGISTRY_URL = "https://api.preprod.ebsi.eu/did-registry/v2/identifiers"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry parameters.

    Parameters
    ----------
    max_attempts:
        Total number of attempts, including the first one.
    delay:
        Seconds to wait between two attempts. No wait follows the last one.
    """

    max_attempts: int = 5
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("RetryPolicy.max_attempts must be at least 1.")
        if self.delay < 0:
            raise ValueError("RetryPolicy.delay must not be negative.")


@dataclass
class EbsiRegistryResolver:
    """Fetch and decode ``did:ebsi`` documents from the EBSI DID registry.

    Parameters
    ----------
    registry_url:
        Identifiers collection URL; the DID is appended as a path segment.
    retry:
        Retry policy for transport failures.
    timeout:
        Per-request timeout in seconds.
    transport, async_transport:
        Optional httpx transports, e.g. :class:`httpx.MockTransport` in tests.
    sleep, async_sleep:
        Wait primitives used between attempts.
    """

    registry_url: str = DEFAULT_EBSI_REGISTRY_URL
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None
    async_transport: httpx.AsyncBaseTransport | None = None
    sleep: Callable[[float], None] = time.sleep
    async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def url_for(self, did: str) -> str:
        """Return the registry URL of *did* (fragment stripped)."""
        return f"{self.registry_url.rstrip('/')}/{DidUrl.parse(did).did}"

    # ------------------------------------------------------------------
    # Synchronous
    # ------------------------------------------------------------------

    def fetch_raw(self, did: str) -> str:
        """Perform a single GET for *did* and return the body.

        Raises
        ------
        httpx.HTTPError
            On transport failure or non-2xx status.
        """
        url = self.url_for(did)
        logger.debug("Resolving did:ebsi at %s", url)
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.text

    def resolve_raw(self, did: str) -> str:
        """Fetch the raw document body for *did*, retrying transport failures.

        Raises
        ------
        ResolutionError
            When every attempt failed.
        """
        last_error: httpx.HTTPError | None = None
        for attempt in range(1, self.retry.max_attempts + 1):
            try:
                return self.fetch_raw(did)
            except httpx.HTTPError as exc:
                last_error = exc
                logger.debug(
                    "Resolving %s failed (attempt %d/%d): %s",
                    did, attempt, self.retry.max_attempts, exc,
                )
            if attempt < self.retry.max_attempts:
                self.sleep(self.retry.delay)
        logger.debug("Could not resolve %s", did)
        raise ResolutionError(did, self.retry.max_attempts, last_error) from last_error

    def resolve(self, did: str) -> EbsiDIDDocument:
        """Fetch and decode the ``did:ebsi`` document for *did*.

        Raises
        ------
        ResolutionError
            When every attempt failed.
        DecodeError
            When a fetched body is not a valid ``did:ebsi`` document.
        """
        return decode_ebsi_document(did, self.resolve_raw(did))

    # ------------------------------------------------------------------
    # Asynchronous
    # ------------------------------------------------------------------

    async def fetch_raw_async(self, did: str) -> str:
        """Async variant of :meth:`fetch_raw`."""
        url = self.url_for(did)
        logger.debug("Resolving did:ebsi at %s", url)
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.async_transport
        ) as client:
            response = await client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.text

    async def resolve_raw_async(self, did: str) -> str:
        """Async variant of :meth:`resolve_raw`."""
        last_error: httpx.HTTPError | None = None
        for attempt in range(1, self.retry.max_attempts + 1):
            try:
                return await self.fetch_raw_async(did)
            except httpx.HTTPError as exc:
                last_error = exc
                logger.debug(
                    "Resolving %s failed (attempt %d/%d): %s",
                    did, attempt, self.retry.max_attempts, exc,
                )
            if attempt < self.retry.max_attempts:
                await self.async_sleep(self.retry.delay)
        raise ResolutionError(did, self.retry.max_attempts, last_error) from last_error

    async def resolve_async(self, did: str) -> EbsiDIDDocument:
        """Async variant of :meth:`resolve`."""
        return decode_ebsi_document(did, await self.resolve_raw_async(did))


def decode_ebsi_document(did: str, body: str) -> EbsiDIDDocument:
    """Decode a registry body and check it describes *did*.

    Raises
    ------
    DecodeError
        If *body* is not a ``did:ebsi`` document for *did*.
    """
    document: DIDDocument = decode_document(body)
    if not isinstance(document, EbsiDIDDocument):
        raise DecodeError(f"Registry returned a non-ebsi document {document.id!r} for {did!r}.")
    expected = DidUrl.parse(did).did
    if document.id != expected:
        raise DecodeError(f"Registry returned document {document.id!r} for {expected!r}.")
    return document


__all__ = [
    "DEFAULT_EBSI_REGISTRY_URL",
    "EbsiRegistryResolver",
    "RetryPolicy",
    "decode_ebsi_document",
]
