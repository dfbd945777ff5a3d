"""Loader factory.

This module provides the create_loader() factory function for creating
configured ArtifactLoader instances from configuration objects.

Supports:
- LoaderConfig: Native configuration
- Mapping: Raw configuration values (e.g. parsed from another document)
- str / Path: Path to a YAML configuration file
- None: Environment (FLEK_CONFIG, FLEK_SERVER_URI) and defaults
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from flek_loader.config import LoaderConfig, load_config
from flek_loader.context import ExecutionContext
from flek_loader.fetcher import VerifyFn
from flek_loader.loader import ArtifactLoader
from flek_loader.observability import get_logger
from flek_loader.retrieval import RequestFn


def create_loader(
    config: LoaderConfig | Mapping[str, Any] | str | Path | None = None,
    *,
    verify: VerifyFn,
    request: RequestFn | None = None,
    context: ExecutionContext | None = None,
) -> ArtifactLoader:
    """Create an artifact loader from configuration.

    Args:
        config: Loader configuration. Can be:
            - LoaderConfig: Native configuration
            - Mapping: Field values for LoaderConfig
            - str / Path: YAML file to load
            - None: Environment variables and defaults
        verify: Predicate deciding whether retrieved source may be compiled.
        request: Optional retrieval collaborator (defaults to HTTP GET).
        context: Optional execution context override.

    Returns:
        ArtifactLoader: Configured loader.

    Raises:
        LoaderConfigurationError: If verify or request is not callable.
        pydantic.ValidationError: If configuration values are invalid.
        ValueError: If config type is not supported.

    Example:
        >>> from flek_loader import create_loader
        >>> loader = create_loader(
        ...     {"server_uri": "http://localhost:3000"},
        ...     verify=lambda response: response.status_code == 200,
        ... )
    """
    logger = get_logger()
    loader_config = _coerce_config(config)

    logger.info(
        "creating_loader",
        server_uri=loader_config.server_uri,
        default_key=loader_config.default_key,
        custom_request=request is not None,
        custom_context=context is not None,
    )
    return ArtifactLoader(
        loader_config,
        verify=verify,
        request=request,
        context=context,
        logger=logger,
    )


def _coerce_config(config: Any) -> LoaderConfig:
    """Convert supported configuration inputs to LoaderConfig.

    Args:
        config: LoaderConfig, mapping, YAML path, or None.

    Returns:
        LoaderConfig: Converted configuration.

    Raises:
        ValueError: If the config type is not supported.
    """
    if isinstance(config, LoaderConfig):
        return config
    if config is None:
        return load_config()
    if isinstance(config, (str, Path)):
        return load_config(config)
    if isinstance(config, Mapping):
        return LoaderConfig(**config)

    msg = (
        f"Unsupported config type: {type(config).__name__}. "
        "Expected LoaderConfig, mapping, or path to a YAML file."
    )
    raise ValueError(msg)
