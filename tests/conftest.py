"""Shared fixtures: every test runs against its own in-memory context."""
from __future__ import annotations

from collections.abc import Iterator

import pytest

from did_engine.context import ContextManager, ServiceContext


@pytest.fixture(autouse=True)
def service_context() -> Iterator[ServiceContext]:
    context = ServiceContext.in_memory("test")
    with ContextManager.run_with(context):
        yield context
