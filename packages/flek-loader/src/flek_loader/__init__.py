"""flek-loader: deduplicating loader for remotely stored widget artifacts.

This package fetches widget source by key, verifies it, compiles it inside a
restricted execution context, and caches the result:
- One fetch per key no matter how many concurrent callers ask
- Cached failures fail fast instead of re-fetching
- Structured logging via structlog
- OpenTelemetry span tracing

Example:
    >>> from flek_loader import create_loader
    >>> loader = create_loader(
    ...     {"server_uri": "http://localhost:3000"},
    ...     verify=lambda response: response.status_code == 200,
    ... )
    >>> widget = await loader.open({"uri": "http://localhost:3000/__mocks__/Hello.py"})
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    # Factory function
    "create_loader",
    # Loader and collaborators
    "ArtifactLoader",
    "ArtifactCompiler",
    "HttpRetriever",
    "Widget",
    "WidgetStatus",
    "build_execution_context",
    # Cache state
    "FAILED",
    "KeyState",
    # Configuration models
    "LoaderConfig",
    "RetryConfig",
    "OpenOptions",
    "ArtifactSource",
    "RetrievalRequest",
    "RetrievalResponse",
    "load_config",
    # Exceptions
    "FlekLoaderError",
    "LoaderConfigurationError",
    "InvalidSourceError",
    "InlineExecutionNotAllowedError",
    "RetrievalError",
    "InvalidResponseShapeError",
    "VerificationFailedError",
    "ArtifactCompileError",
    "InvalidArtifactError",
    "PreviouslyFailedError",
    "ArtifactFetchError",
    "RenderError",
]

_CONFIG_NAMES = (
    "LoaderConfig",
    "RetryConfig",
    "OpenOptions",
    "ArtifactSource",
    "RetrievalRequest",
    "RetrievalResponse",
    "load_config",
)

_ERROR_NAMES = (
    "FlekLoaderError",
    "LoaderConfigurationError",
    "InvalidSourceError",
    "InlineExecutionNotAllowedError",
    "RetrievalError",
    "InvalidResponseShapeError",
    "VerificationFailedError",
    "ArtifactCompileError",
    "InvalidArtifactError",
    "PreviouslyFailedError",
    "ArtifactFetchError",
    "RenderError",
)


def __getattr__(name: str) -> object:
    """Lazy import of public API members."""
    if name == "create_loader":
        from flek_loader.factory import create_loader

        return create_loader
    if name == "ArtifactLoader":
        from flek_loader.loader import ArtifactLoader

        return ArtifactLoader
    if name == "ArtifactCompiler":
        from flek_loader.compiler import ArtifactCompiler

        return ArtifactCompiler
    if name == "HttpRetriever":
        from flek_loader.retrieval import HttpRetriever

        return HttpRetriever
    if name in ("Widget", "WidgetStatus"):
        from flek_loader import widget as widget_module

        return getattr(widget_module, name)
    if name == "build_execution_context":
        from flek_loader.context import build_execution_context

        return build_execution_context
    if name in ("FAILED", "KeyState"):
        from flek_loader import cache as cache_module

        return getattr(cache_module, name)
    if name in _CONFIG_NAMES:
        from flek_loader import config as config_module

        return getattr(config_module, name)
    if name in _ERROR_NAMES:
        from flek_loader import errors as errors_module

        return getattr(errors_module, name)
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
