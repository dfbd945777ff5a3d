"""Default retrieval collaborator backed by httpx.

Any coroutine function accepting a RetrievalRequest and returning an object
with a ``data`` attribute (or a mapping with a ``"data"`` key) can stand in for
HttpRetriever.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx
from opentelemetry.trace import SpanKind

from flek_loader.config import LoaderConfig, RetrievalRequest, RetrievalResponse
from flek_loader.errors import RetrievalError
from flek_loader.observability import get_logger, loader_operation
from flek_loader.retry import CircuitBreaker, CircuitOpenError, create_async_retry

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

RequestFn = Callable[[RetrievalRequest], Awaitable[Any]]


class HttpRetriever:
    """Retrieve artifact source over HTTP.

    Adds to a plain httpx GET:
    - Configured headers and timeout
    - Retry with exponential backoff on transport errors
    - A circuit breaker shared by every key this retriever serves
    - Error statuses mapped to RetrievalError

    Example:
        >>> retriever = HttpRetriever(LoaderConfig())
        >>> response = await retriever(RetrievalRequest(url="http://localhost:3000/a.py"))
        >>> response.data
        'exports.default = ...'
        >>> await retriever.aclose()
    """

    def __init__(
        self,
        config: LoaderConfig,
        *,
        client: httpx.AsyncClient | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        """Initialize HttpRetriever.

        Args:
            config: Loader configuration with timeout, headers and retry policy.
            client: Optional preconfigured client. The retriever only closes
                clients it created itself.
            logger: Optional structlog logger. Uses default if not provided.
        """
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=config.request_timeout_seconds,
            headers=config.headers,
        )
        self._logger = logger or get_logger()
        self._circuit_breaker = CircuitBreaker(
            config.retry.circuit_breaker_threshold,
            config.retry.circuit_breaker_reset_seconds,
        )
        self._send = create_async_retry(
            config.retry,
            operation_name="retrieve",
            circuit_breaker=self._circuit_breaker,
        )(self._send_once)

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def __call__(self, request: RetrievalRequest) -> RetrievalResponse:
        """Perform the request and return its text body.

        Raises:
            RetrievalError: On transport failure, error status, or open circuit.
        """
        with loader_operation("retrieve", key=request.url, kind=SpanKind.CLIENT):
            try:
                response = await self._send(request)
                response.raise_for_status()
            except CircuitOpenError as exc:
                raise RetrievalError(request.url, cause=str(exc)) from exc
            except httpx.HTTPStatusError as exc:
                cause = f"HTTP {exc.response.status_code}"
                raise RetrievalError(request.url, cause=cause) from exc
            except httpx.HTTPError as exc:
                cause = f"{type(exc).__name__}: {exc}"
                raise RetrievalError(request.url, cause=cause) from exc

            self._logger.debug(
                "artifact_retrieved",
                key=request.url,
                status_code=response.status_code,
                size=len(response.content),
            )
            return RetrievalResponse(
                url=str(response.url),
                status_code=response.status_code,
                headers=dict(response.headers),
                data=response.text,
            )

    async def _send_once(self, request: RetrievalRequest) -> httpx.Response:
        return await self._client.request(request.method, request.url)

    async def aclose(self) -> None:
        """Close the underlying client if this retriever created it."""
        if self._owns_client:
            await self._client.aclose()
