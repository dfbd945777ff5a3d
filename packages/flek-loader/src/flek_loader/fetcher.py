"""Fetch, verify, compile, and fan the outcome out to every waiter.

ArtifactFetcher.fetch_and_complete never raises. Whatever happens, the key
ends with a terminal cache entry and an empty task queue, and each waiter
registered before completion receives the same result or the same error.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Union

from flek_loader.cache import FAILED, Artifact, ArtifactCache
from flek_loader.compiler import ArtifactCompiler
from flek_loader.config import RetrievalRequest
from flek_loader.context import ExecutionContext
from flek_loader.errors import (
    ArtifactFetchError,
    FlekLoaderError,
    InvalidResponseShapeError,
    RetrievalError,
    VerificationFailedError,
)
from flek_loader.observability import get_logger, loader_operation
from flek_loader.tasks import TaskQueue

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from flek_loader.retrieval import RequestFn

VerifyFn = Callable[[Any], Union[bool, Awaitable[bool]]]


class ArtifactFetcher:
    """Runs the fetch pipeline for a key and completes its waiters.

    Steps, in order:
    1. Retrieve the source through the request collaborator
    2. Require a text body
    3. Require verify(response) to be exactly True
    4. Compile the body inside the execution context
    5. Record the outcome in the cache, then drain and notify the queue
    """

    def __init__(
        self,
        *,
        cache: ArtifactCache,
        tasks: TaskQueue,
        request: RequestFn,
        verify: VerifyFn,
        compiler: ArtifactCompiler,
        context: ExecutionContext,
        logger: BoundLogger | None = None,
    ) -> None:
        self._cache = cache
        self._tasks = tasks
        self._request = request
        self._verify = verify
        self._compiler = compiler
        self._context = context
        self._logger = logger or get_logger()

    async def fetch_and_complete(self, key: str) -> None:
        """Fetch and compile the artifact for key, then notify its waiters.

        Args:
            key: Artifact key whose queue was just started.
        """
        try:
            with loader_operation("fetch", key=key):
                artifact = await self._load(key)
        except asyncio.CancelledError:
            self.abandon(key)
            raise
        except Exception as exc:
            error = _normalize_error(key, exc)
            self._cache.set(key, FAILED)
            self._logger.warning(
                "artifact_failed",
                key=key,
                error=str(error),
                error_type=type(error).__name__,
            )
            self._complete(key, error=error)
        else:
            self._cache.set(key, artifact)
            self._logger.info("artifact_ready", key=key)
            self._complete(key, artifact=artifact)

    def abandon(self, key: str) -> None:
        """Fail a key whose fetch was cancelled, releasing any waiters still queued.

        Safe to call more than once and for keys that already completed.
        """
        if key not in self._cache:
            self._cache.set(key, FAILED)
        if key in self._tasks:
            self._logger.warning("artifact_fetch_cancelled", key=key)
            self._complete(key, error=ArtifactFetchError(key, cause="fetch cancelled"))

    async def _load(self, key: str) -> Artifact:
        try:
            response = await self._request(RetrievalRequest(url=key, method="GET"))
        except FlekLoaderError:
            raise
        except Exception as exc:
            raise RetrievalError(key, cause=f"{type(exc).__name__}: {exc}") from exc

        body = _response_body(response)
        if not isinstance(body, str):
            raise InvalidResponseShapeError(key, type(body).__name__)

        try:
            verified = self._verify(response)
            if inspect.isawaitable(verified):
                verified = await verified
        except Exception as exc:
            raise VerificationFailedError(key, cause=f"{type(exc).__name__}: {exc}") from exc
        if verified is not True:
            raise VerificationFailedError(key)

        return self._compiler.compile(body, self._context, name=key)

    def _complete(
        self,
        key: str,
        *,
        artifact: Artifact | None = None,
        error: FlekLoaderError | None = None,
    ) -> None:
        waiters = self._tasks.drain(key)
        for waiter in waiters:
            # Cancelled waiters have nobody left to notify.
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(artifact)
        self._logger.debug("artifact_waiters_notified", key=key, waiters=len(waiters))


def _response_body(response: Any) -> Any:
    if isinstance(response, Mapping):
        return response.get("data")
    return getattr(response, "data", None)


def _normalize_error(key: str, exc: Exception) -> FlekLoaderError:
    if isinstance(exc, FlekLoaderError):
        return exc
    return ArtifactFetchError(key, cause=f"{type(exc).__name__}: {exc}")
