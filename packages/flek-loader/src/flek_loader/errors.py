"""Custom exceptions for flek-loader.

This module defines the exception hierarchy:
- FlekLoaderError (base)
- LoaderConfigurationError
- InvalidSourceError
- InlineExecutionNotAllowedError
- RetrievalError
- InvalidResponseShapeError
- VerificationFailedError
- ArtifactCompileError
- InvalidArtifactError
- PreviouslyFailedError
- ArtifactFetchError
- RenderError
"""

from __future__ import annotations


class FlekLoaderError(Exception):
    """Base exception for all flek-loader operations.

    Every failure delivered to a waiter is an instance of this class, so hosts
    can catch a single type around ``ArtifactLoader.open``.

    Attributes:
        message: Human-readable error description.
        details: Optional additional context about the error.

    Example:
        >>> try:
        ...     await loader.open({"uri": "http://localhost:3000/widget.py"})
        ... except FlekLoaderError as e:
        ...     print(f"Load error: {e}")
    """

    def __init__(self, message: str, *, details: dict[str, str] | None = None) -> None:
        """Initialize FlekLoaderError.

        Args:
            message: Human-readable error description.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class LoaderConfigurationError(FlekLoaderError):
    """The loader was constructed with invalid collaborators.

    Raised when:
    - No verify() predicate was supplied
    - The verify() predicate or request function is not callable
    """


class InvalidSourceError(FlekLoaderError):
    """The requested source is neither inline text nor a key descriptor."""

    def __init__(self, encountered: str, message: str | None = None) -> None:
        """Initialize InvalidSourceError.

        Args:
            encountered: Type name of the rejected source.
            message: Optional custom error message.
        """
        msg = message or f"Expected valid source, encountered {encountered}."
        super().__init__(msg, details={"encountered": encountered})
        self.encountered = encountered


class InlineExecutionNotAllowedError(FlekLoaderError):
    """Literal source text was passed without opting in to inline execution.

    Example:
        >>> await loader.open("exports.default = lambda **props: None")
        Traceback (most recent call last):
        InlineExecutionNotAllowedError: ...
    """

    def __init__(self, message: str | None = None) -> None:
        """Initialize InlineExecutionNotAllowedError.

        Args:
            message: Optional custom error message.
        """
        msg = message or (
            "Attempted to open an artifact from a string, "
            "but allow_inline_execution was not true."
        )
        super().__init__(msg)


class RetrievalError(FlekLoaderError):
    """The retrieval collaborator failed to produce a response.

    Raised when:
    - The HTTP request failed at the transport level
    - The server answered with an error status
    - The retriever's circuit breaker is open
    """

    def __init__(self, key: str, *, cause: str | None = None) -> None:
        """Initialize RetrievalError.

        Args:
            key: The artifact key that was being retrieved.
            cause: The underlying cause of the failure.
        """
        details = {"key": key}
        if cause:
            details["cause"] = cause
        super().__init__(f'Failed to retrieve "{key}".', details=details)
        self.key = key
        self.cause = cause


class InvalidResponseShapeError(FlekLoaderError):
    """Retrieval succeeded but the response body was not text."""

    def __init__(self, key: str, encountered: str) -> None:
        """Initialize InvalidResponseShapeError.

        Args:
            key: The artifact key that was retrieved.
            encountered: Type name of the body that was received.
        """
        super().__init__(
            f"Expected string data, encountered {encountered}.",
            details={"key": key},
        )
        self.key = key
        self.encountered = encountered


class VerificationFailedError(FlekLoaderError):
    """The host's verify() predicate rejected the retrieved content."""

    def __init__(self, key: str, *, cause: str | None = None) -> None:
        """Initialize VerificationFailedError.

        Args:
            key: The artifact key whose content failed verification.
            cause: Error raised by the predicate, if it raised.
        """
        details = {"key": key}
        if cause:
            details["cause"] = cause
        super().__init__(f'Failed to verify "{key}".', details=details)
        self.key = key
        self.cause = cause


class ArtifactCompileError(FlekLoaderError):
    """Source text could not be compiled or its module body raised."""

    def __init__(self, name: str, *, cause: str) -> None:
        """Initialize ArtifactCompileError.

        Args:
            name: Name the source was compiled under (key or ``<inline>``).
            cause: The underlying syntax or runtime error.
        """
        super().__init__(
            f'Failed to compile "{name}".',
            details={"name": name, "cause": cause},
        )
        self.name = name
        self.cause = cause


class InvalidArtifactError(FlekLoaderError):
    """The compiled source did not export a callable default."""

    def __init__(self, encountered: str) -> None:
        """Initialize InvalidArtifactError.

        Args:
            encountered: Type name of the value found at ``exports.default``.
        """
        super().__init__(
            f"Expected callable, encountered {encountered}. "
            "Did you forget to assign your widget to exports.default?"
        )
        self.encountered = encountered


class PreviouslyFailedError(FlekLoaderError):
    """The key is cached as a known failure; no retry is attempted."""

    def __init__(self, key: str) -> None:
        """Initialize PreviouslyFailedError.

        Args:
            key: The artifact key cached as failed.
        """
        super().__init__(
            f'Artifact at "{key}" could not be instantiated.',
            details={"key": key},
        )
        self.key = key


class ArtifactFetchError(FlekLoaderError):
    """Catch-all for unexpected failures while fetching an artifact."""

    def __init__(self, key: str, *, cause: str) -> None:
        """Initialize ArtifactFetchError.

        Args:
            key: The artifact key being fetched.
            cause: Description of the unexpected error.
        """
        super().__init__(
            f'Failed to allocate for "{key}".',
            details={"key": key, "cause": cause},
        )
        self.key = key
        self.cause = cause


class RenderError(FlekLoaderError):
    """An artifact raised while rendering inside a Widget boundary."""

    def __init__(self, message: str = "Failed to render.") -> None:
        super().__init__(message)
