"""EngineSettings — tunables for resolution, networking, and storage.

Settings have sensible defaults and can be overridden from the environment
with ``DID_ENGINE_``-prefixed variables::

    DID_ENGINE_EBSI_REGISTRY_URL=https://api.conformance.intebsi.xyz/did-registry/v2/identifiers
    DID_ENGINE_RESOLUTION_MAX_ATTEMPTS=3
    DID_ENGINE_DATA_DIR=~/.did-engine
"""
from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

_ENV_PREFIX = "DID_ENGINE_"


class EngineSettings(BaseModel):
    """Configuration for a :class:`~did_engine.did.service.DidService`.

    Parameters
    ----------
    ebsi_registry_url:
        Base URL of the EBSI DID registry identifiers collection. The DID is
        appended as the final path segment.
    resolution_max_attempts:
        Maximum number of registry fetch attempts before giving up.
    resolution_retry_delay:
        Seconds to wait between two consecutive fetch attempts.
    http_timeout:
        Per-request timeout in seconds.
    data_dir:
        Root directory for filesystem-backed stores. ``None`` selects
        in-memory stores.
    """

    ebsi_registry_url: str = "https://api.preprod.ebsi.eu/did-registry/v2/identifiers"
    resolution_max_attempts: int = Field(default=5, ge=1)
    resolution_retry_delay: float = Field(default=1.0, ge=0.0)
    http_timeout: float = Field(default=10.0, gt=0.0)
    data_dir: Path | None = None

    model_config = {"frozen": True}

    @field_validator("ebsi_registry_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalise the registry URL so the DID can be appended with one slash."""
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "EngineSettings":
        """Build settings from ``DID_ENGINE_*`` environment variables.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to :data:`os.environ`.

        Returns
        -------
        EngineSettings
            Settings with every variable present in *environ* applied on top
            of the defaults.
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for name in cls.model_fields:
            raw = source.get(_ENV_PREFIX + name.upper())
            if raw is not None:
                overrides[name] = raw
        if "data_dir" in overrides:
            overrides["data_dir"] = Path(str(overrides["data_dir"])).expanduser()
        return cls.model_validate(overrides)


__all__ = ["EngineSettings"]
