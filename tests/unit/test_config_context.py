"""Tests for did_engine.config and did_engine.context."""
from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from pydantic import ValidationError

from did_engine.config import EngineSettings
from did_engine.context import ContextManager, ServiceContext
from did_engine.keys.store import FilesystemKeyStore, InMemoryKeyStore
from did_engine.storage.hkv import FilesystemHKVStore, InMemoryHKVStore


# ---------------------------------------------------------------------------
# EngineSettings
# ---------------------------------------------------------------------------


class TestEngineSettings:
    def test_defaults(self) -> None:
        settings = EngineSettings()
        assert settings.ebsi_registry_url == (
            "https://api.preprod.ebsi.eu/did-registry/v2/identifiers"
        )
        assert settings.resolution_max_attempts == 5
        assert settings.resolution_retry_delay == 1.0
        assert settings.data_dir is None

    def test_trailing_slash_is_stripped(self) -> None:
        settings = EngineSettings(ebsi_registry_url="https://registry.test/identifiers/")
        assert settings.ebsi_registry_url == "https://registry.test/identifiers"

    def test_max_attempts_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EngineSettings(resolution_max_attempts=0)

    def test_from_env_applies_prefixed_variables(self) -> None:
        settings = EngineSettings.from_env(
            {
                "DID_ENGINE_RESOLUTION_MAX_ATTEMPTS": "3",
                "DID_ENGINE_RESOLUTION_RETRY_DELAY": "0.5",
                "UNRELATED": "ignored",
            }
        )
        assert settings.resolution_max_attempts == 3
        assert settings.resolution_retry_delay == 0.5
        assert settings.http_timeout == 10.0

    def test_from_env_expands_data_dir(self) -> None:
        settings = EngineSettings.from_env({"DID_ENGINE_DATA_DIR": "~/did-data"})
        assert settings.data_dir == Path("~/did-data").expanduser()

    def test_from_env_rejects_invalid_values(self) -> None:
        with pytest.raises(ValidationError):
            EngineSettings.from_env({"DID_ENGINE_HTTP_TIMEOUT": "soon"})

    def test_settings_are_frozen(self) -> None:
        with pytest.raises(ValidationError):
            EngineSettings().http_timeout = 1.0  # type: ignore[misc]


# ---------------------------------------------------------------------------
# ContextManager
# ---------------------------------------------------------------------------


class TestContextManager:
    def test_run_with_activates_and_restores(self, service_context: ServiceContext) -> None:
        other = ServiceContext.in_memory("other")
        assert ContextManager.current() is service_context
        with ContextManager.run_with(other) as active:
            assert active is other
            assert ContextManager.key_store() is other.key_store
            assert ContextManager.hkv_store() is other.hkv_store
        assert ContextManager.current() is service_context

    def test_context_is_restored_after_error(self, service_context: ServiceContext) -> None:
        with pytest.raises(RuntimeError):
            with ContextManager.run_with(ServiceContext.in_memory("other")):
                raise RuntimeError("boom")
        assert ContextManager.current() is service_context

    def test_asyncio_tasks_inherit_the_active_context(self) -> None:
        other = ServiceContext.in_memory("other")

        async def active_name() -> str:
            return ContextManager.current().name

        with ContextManager.run_with(other):
            assert asyncio.run(active_name()) == "other"

    def test_in_memory_context(self) -> None:
        context = ServiceContext.in_memory("tenant")
        assert context.name == "tenant"
        assert isinstance(context.key_store, InMemoryKeyStore)
        assert isinstance(context.hkv_store, InMemoryHKVStore)

    def test_filesystem_context(self, tmp_path: Path) -> None:
        context = ServiceContext.filesystem(tmp_path)
        assert isinstance(context.key_store, FilesystemKeyStore)
        assert isinstance(context.hkv_store, FilesystemHKVStore)
        assert (tmp_path / "keys").is_dir()
        assert (tmp_path / "data").is_dir()
