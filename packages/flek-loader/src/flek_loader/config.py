"""Pydantic configuration models for flek-loader.

This module provides:
- RetryConfig: Retry policy for the default HTTP retriever
- LoaderConfig: Loader-wide configuration (server, timeouts, allowed modules)
- OpenOptions: Per-call options for ArtifactLoader.open
- ArtifactSource: Key descriptor for remote artifacts
- RetrievalRequest / RetrievalResponse: Retrieval collaborator contract
- load_config: Load LoaderConfig from YAML and environment
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Environment variables consulted by load_config()
CONFIG_PATH_ENV_VAR = "FLEK_CONFIG"
SERVER_URI_ENV_VAR = "FLEK_SERVER_URI"

DEFAULT_SERVER_URI = "http://localhost:3000"
DEFAULT_PATH = "currentWidget"

DEFAULT_ALLOWED_MODULES: tuple[str, ...] = (
    "math",
    "json",
    "datetime",
    "functools",
    "itertools",
)


class RetryConfig(BaseModel):
    """Retry policy for artifact retrieval.

    Only transport failures are retried. A key whose content fails
    verification or compilation is cached as failed and never re-fetched.

    Attributes:
        max_attempts: Maximum retry attempts (1-10, default 3).
        initial_wait_seconds: Initial backoff wait (0.01-30s, default 0.5).
        max_wait_seconds: Maximum backoff cap (0.1-300s, default 10.0).
        jitter_seconds: Random jitter range (0-10s, default 0.5).
        circuit_breaker_threshold: Failures before circuit opens (default 5, 0=disabled).
        circuit_breaker_reset_seconds: Seconds an open circuit waits before
            admitting a trial request (default 30).

    Example:
        >>> config = RetryConfig(max_attempts=5, initial_wait_seconds=0.1)
        >>> config.max_attempts
        5
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of retry attempts",
    )
    initial_wait_seconds: float = Field(
        default=0.5,
        ge=0.01,
        le=30.0,
        description="Initial backoff wait time in seconds",
    )
    max_wait_seconds: float = Field(
        default=10.0,
        ge=0.1,
        le=300.0,
        description="Maximum backoff wait time in seconds",
    )
    jitter_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Random jitter range in seconds",
    )
    circuit_breaker_threshold: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Consecutive failures before circuit opens (0=disabled)",
    )
    circuit_breaker_reset_seconds: float = Field(
        default=30.0,
        ge=0.0,
        le=3600.0,
        description="Seconds an open circuit waits before admitting a trial request",
    )

    @field_validator("max_wait_seconds")
    @classmethod
    def max_wait_must_exceed_initial(cls, v: float, info: object) -> float:
        """Validate that max_wait_seconds >= initial_wait_seconds."""
        data = getattr(info, "data", {})
        initial = data.get("initial_wait_seconds", 0.5)
        if v < initial:
            msg = f"max_wait_seconds ({v}) must be >= initial_wait_seconds ({initial})"
            raise ValueError(msg)
        return v


class LoaderConfig(BaseModel):
    """Artifact loader configuration.

    Attributes:
        server_uri: Base URI of the artifact server (http:// or https://).
        default_path: Path appended to server_uri when a source has no key.
        request_timeout_seconds: Timeout for each retrieval request.
        headers: Extra HTTP headers sent with every retrieval.
        allowed_modules: Modules compiled source may import or require().
        retry: Retry policy for the default HTTP retriever.

    Example:
        >>> config = LoaderConfig(server_uri="http://localhost:3000/")
        >>> config.default_key
        'http://localhost:3000/currentWidget'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    server_uri: str = Field(
        default=DEFAULT_SERVER_URI,
        min_length=1,
        description="Base URI of the artifact server",
    )
    default_path: str = Field(
        default=DEFAULT_PATH,
        min_length=1,
        description="Path of the artifact loaded when a source carries no key",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Timeout for each retrieval request in seconds",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra HTTP headers sent with every retrieval",
    )
    allowed_modules: tuple[str, ...] = Field(
        default=DEFAULT_ALLOWED_MODULES,
        description="Top-level modules that compiled source may import",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Retry policy configuration",
    )

    @field_validator("server_uri")
    @classmethod
    def validate_uri_format(cls, v: str) -> str:
        """Validate URI format (must be http:// or https://)."""
        if not v.startswith(("http://", "https://")):
            msg = f"URI must start with http:// or https://, got: {v}"
            raise ValueError(msg)
        return v.rstrip("/")

    @field_validator("default_path")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        """Normalize default_path so it joins cleanly onto server_uri."""
        return v.lstrip("/")

    @property
    def default_key(self) -> str:
        """Key used when a source descriptor does not name one."""
        return f"{self.server_uri}/{self.default_path}"


class OpenOptions(BaseModel):
    """Options for a single ArtifactLoader.open call.

    Attributes:
        allow_inline_execution: Explicit opt-in to compile literal source text.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_inline_execution: bool = Field(
        default=False,
        description="Allow compiling a literal source string",
    )


class ArtifactSource(BaseModel):
    """Descriptor for a remotely stored artifact.

    Attributes:
        uri: Artifact key. None selects LoaderConfig.default_key.

    Example:
        >>> ArtifactSource(uri="http://localhost:3000/__mocks__/Hello.py").uri
        'http://localhost:3000/__mocks__/Hello.py'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    uri: str | None = Field(
        default=None,
        description="Artifact key, usually a URI",
    )


class RetrievalRequest(BaseModel):
    """Request handed to the retrieval collaborator."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., min_length=1, description="Location to retrieve")
    method: str = Field(default="GET", description="HTTP method")


class RetrievalResponse(BaseModel):
    """Response returned by the default retriever.

    ``data`` is left untyped on purpose: the fetcher, not the model, decides
    whether a body is acceptable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., description="Location that was retrieved")
    status_code: int = Field(default=200, description="HTTP status code")
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")
    data: Any = Field(default=None, description="Response body")


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> LoaderConfig:
    """Load LoaderConfig from a YAML file and the environment.

    Resolution order:
    1. Explicit ``path``, else the file named by FLEK_CONFIG, else defaults.
    2. FLEK_SERVER_URI overrides ``server_uri`` from the file.

    Args:
        path: Optional YAML file path.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Validated LoaderConfig.

    Raises:
        FileNotFoundError: If an explicit or FLEK_CONFIG path does not exist.
        ValueError: If the YAML document is not a mapping.
        pydantic.ValidationError: If the values are invalid.

    Example:
        >>> config = load_config("flek.yaml")
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    config_path = path or env.get(CONFIG_PATH_ENV_VAR)
    if config_path:
        content = Path(config_path).read_text(encoding="utf-8")
        loaded = yaml.safe_load(content) or {}
        if not isinstance(loaded, dict):
            msg = f"Expected a mapping in {config_path}, got {type(loaded).__name__}"
            raise ValueError(msg)
        data.update(loaded)

    server_uri = env.get(SERVER_URI_ENV_VAR)
    if server_uri:
        data["server_uri"] = server_uri

    return LoaderConfig(**data)
