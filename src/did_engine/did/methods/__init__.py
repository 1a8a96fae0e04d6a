"""DID method handlers and the registration table."""
from __future__ import annotations

from did_engine.did.methods.base import DidOptions, MethodHandler
from did_engine.did.methods.ebsi import DidEbsiOptions, EbsiMethodHandler
from did_engine.did.methods.key import KeyMethodHandler
from did_engine.did.methods.registry import MethodRegistry
from did_engine.did.methods.web import DidWebOptions, WebMethodHandler

__all__ = [
    "DidEbsiOptions",
    "DidOptions",
    "DidWebOptions",
    "EbsiMethodHandler",
    "KeyMethodHandler",
    "MethodHandler",
    "MethodRegistry",
    "WebMethodHandler",
]
