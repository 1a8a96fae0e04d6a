"""MethodRegistry — the table mapping DID method names to handlers.

The dispatch engine looks handlers up here instead of branching on the
method name, so new methods are added by registering a handler::

    registry = MethodRegistry.with_defaults()
    registry.register(MyMethodHandler())
"""
from __future__ import annotations

import threading

from did_engine.config import EngineSettings
from did_engine.did.cache import DidCache
from did_engine.did.methods.base import MethodHandler
from did_engine.did.methods.ebsi import EbsiMethodHandler
from did_engine.did.methods.key import KeyMethodHandler
from did_engine.did.methods.web import WebMethodHandler
from did_engine.did.resolution import EbsiRegistryResolver, RetryPolicy
from did_engine.errors import UnsupportedMethodError


class MethodRegistry:
    """Thread-safe mapping from method name to :class:`MethodHandler`."""

    def __init__(self) -> None:
        self._handlers: dict[str, MethodHandler] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_defaults(
        cls,
        settings: EngineSettings | None = None,
        cache: DidCache | None = None,
        resolver: EbsiRegistryResolver | None = None,
    ) -> "MethodRegistry":
        """Build a registry holding the ``key``, ``web`` and ``ebsi`` handlers.

        Parameters
        ----------
        settings:
            Source of the web default domain and the registry client
            parameters. Defaults to :class:`EngineSettings` defaults.
        cache:
            Shared cache instance for all handlers.
        resolver:
            Registry client for ``did:ebsi``; built from *settings* if omitted.
        """
        settings = settings or EngineSettings()
        cache = cache or DidCache()
        if resolver is None:
            resolver = EbsiRegistryResolver(
                registry_url=settings.ebsi_registry_url,
                retry=RetryPolicy(
                    max_attempts=settings.resolution_max_attempts,
                    delay=settings.resolution_retry_delay,
                ),
                timeout=settings.http_timeout,
            )
        registry = cls()
        registry.register(KeyMethodHandler(cache))
        registry.register(WebMethodHandler(cache))
        registry.register(EbsiMethodHandler(cache, resolver=resolver))
        return registry

    def register(self, handler: MethodHandler, replace: bool = False) -> None:
        """Register *handler* under ``handler.name``.

        Raises
        ------
        ValueError
            If the handler has no name, or the name is taken and *replace*
            is ``False``.
        """
        if not handler.name:
            raise ValueError(f"{type(handler).__name__} does not declare a method name.")
        with self._lock:
            if handler.name in self._handlers and not replace:
                raise ValueError(
                    f"A handler for did:{handler.name} is already registered. "
                    "Pass replace=True to override it."
                )
            self._handlers[handler.name] = handler

    def get(self, method: str) -> MethodHandler:
        """Return the handler for *method*.

        Raises
        ------
        UnsupportedMethodError
            If no handler is registered for *method*.
        """
        with self._lock:
            handler = self._handlers.get(method)
            if handler is None:
                raise UnsupportedMethodError(method, list(self._handlers))
        return handler

    def methods(self) -> list[str]:
        """Return the registered method names, sorted."""
        with self._lock:
            return sorted(self._handlers)

    def __contains__(self, method: object) -> bool:
        with self._lock:
            return method in self._handlers


__all__ = ["MethodRegistry"]
