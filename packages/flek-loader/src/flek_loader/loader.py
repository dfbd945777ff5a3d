"""Artifact loader: the public entry point of flek-loader.

ArtifactLoader owns one cache, one task queue and one execution context. It
decides, per open() call, whether to compile inline source, return a cached
artifact, fail fast on a cached failure, join an in-flight fetch, or start a
new one.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Mapping
from types import TracebackType
from typing import TYPE_CHECKING, Any

from flek_loader.cache import FAILED, Artifact, ArtifactCache, KeyState
from flek_loader.compiler import ArtifactCompiler
from flek_loader.config import ArtifactSource, LoaderConfig, OpenOptions
from flek_loader.context import ExecutionContext, build_execution_context
from flek_loader.errors import (
    InlineExecutionNotAllowedError,
    InvalidSourceError,
    LoaderConfigurationError,
    PreviouslyFailedError,
)
from flek_loader.fetcher import ArtifactFetcher, VerifyFn
from flek_loader.observability import get_logger, loader_operation
from flek_loader.retrieval import HttpRetriever, RequestFn
from flek_loader.tasks import EnqueueResult, TaskQueue

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

SourceLike = Any
OptionsLike = OpenOptions | Mapping[str, Any] | None


class ArtifactLoader:
    """Deduplicating loader for remotely stored widget artifacts.

    Every key is fetched and compiled at most once per loader. Concurrent
    callers for a key share a single fetch and all receive the same outcome.
    Failures are cached too: later callers fail fast with
    PreviouslyFailedError instead of fetching again.

    Attributes:
        config: Loader configuration.

    Example:
        >>> async def verify(response) -> bool:
        ...     return response.status_code == 200
        >>> async with ArtifactLoader(LoaderConfig(), verify=verify) as loader:
        ...     widget = await loader.open({"uri": "http://localhost:3000/__mocks__/Hello.py"})
        ...     widget(name="flek")
        'Hello, flek!'
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        *,
        verify: VerifyFn | None = None,
        request: RequestFn | None = None,
        context: ExecutionContext | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        """Initialize ArtifactLoader.

        Args:
            config: Loader configuration. Uses defaults if not provided.
            verify: Mandatory predicate deciding whether a retrieved response
                may be compiled. May be sync or async.
            request: Retrieval collaborator. Defaults to an HttpRetriever.
            context: Symbols visible to compiled source. Defaults to the
                restricted context built from config.allowed_modules.
            logger: Optional structlog logger. Uses default if not provided.

        Raises:
            LoaderConfigurationError: If verify is missing or not callable,
                or request is not callable.
        """
        if not callable(verify):
            raise LoaderConfigurationError(
                "To create an ArtifactLoader, you must pass a verify() function."
            )
        if request is not None and not callable(request):
            raise LoaderConfigurationError(
                f"Expected callable request, encountered {type(request).__name__}."
            )

        self.config = config or LoaderConfig()
        self._logger = logger or get_logger()
        self._owned_retriever: HttpRetriever | None = None
        if request is None:
            self._owned_retriever = HttpRetriever(self.config, logger=self._logger)
            request = self._owned_retriever

        self._context = (
            context
            if context is not None
            else build_execution_context(self.config.allowed_modules)
        )
        self._cache = ArtifactCache()
        self._tasks = TaskQueue()
        self._compiler = ArtifactCompiler(self._context)
        self._fetcher = ArtifactFetcher(
            cache=self._cache,
            tasks=self._tasks,
            request=request,
            verify=verify,
            compiler=self._compiler,
            context=self._context,
            logger=self._logger,
        )
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    @property
    def tasks(self) -> TaskQueue:
        return self._tasks

    async def open(self, source: SourceLike, options: OptionsLike = None) -> Artifact:
        """Resolve a source to a ready-to-call artifact.

        Args:
            source: Literal source text, an ArtifactSource, a mapping with a
                ``uri`` (or ``key``) entry, or an object with a ``uri``
                attribute. A descriptor without a key loads
                ``config.default_key``.
            options: OpenOptions or an equivalent mapping.

        Returns:
            The compiled artifact.

        Raises:
            InlineExecutionNotAllowedError: Literal text without opt-in.
            InvalidSourceError: Source is neither text nor a key descriptor.
            PreviouslyFailedError: The key is cached as a failure.
            FlekLoaderError: Any failure of the fetch this call waited on.
        """
        opts = _coerce_options(options)

        if isinstance(source, str):
            if opts.allow_inline_execution is not True:
                raise InlineExecutionNotAllowedError()
            artifact = self._compiler.compile(source, self._context)
            self._logger.debug("inline_artifact_compiled")
            return artifact

        key = self._resolve_key(source)

        # Nothing between the cache lookup and enqueue may await.
        cached = self._cache.get(key)
        if cached is FAILED:
            self._logger.debug("artifact_previously_failed", key=key)
            raise PreviouslyFailedError(key)
        if cached is not None:
            self._logger.debug("artifact_cache_hit", key=key)
            return cached

        waiter: asyncio.Future[Artifact] = asyncio.get_running_loop().create_future()
        if self._tasks.enqueue(key, waiter) is EnqueueResult.STARTED:
            self._logger.debug("artifact_fetch_started", key=key)
            self._start_fetch(key)
        else:
            self._logger.debug(
                "artifact_fetch_joined",
                key=key,
                waiters=self._tasks.pending(key),
            )

        # Shielded so a caller-side timeout leaves the waiter queued.
        return await asyncio.shield(waiter)

    async def preload(self, uri: str | None = None) -> None:
        """Fetch and cache an artifact ahead of time.

        Args:
            uri: Artifact key. None preloads config.default_key.

        Raises:
            FlekLoaderError: If the artifact cannot be loaded.
        """
        with loader_operation("preload", key=uri):
            await self.open(ArtifactSource(uri=uri), OpenOptions(allow_inline_execution=False))

    def state(self, key: str) -> KeyState:
        """Report where a key is in its Unrequested -> Fetching -> Ready|Failed lifecycle."""
        if key in self._tasks:
            return KeyState.FETCHING
        cached = self._cache.get(key)
        if cached is None:
            return KeyState.UNREQUESTED
        if cached is FAILED:
            return KeyState.FAILED
        return KeyState.READY

    async def aclose(self) -> None:
        """Wait for in-flight fetches, then release the default retriever."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        if self._owned_retriever is not None:
            await self._owned_retriever.aclose()

    async def __aenter__(self) -> ArtifactLoader:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _start_fetch(self, key: str) -> None:
        task = asyncio.create_task(
            self._fetcher.fetch_and_complete(key),
            name=f"flek-fetch:{key}",
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        task.add_done_callback(functools.partial(self._on_fetch_done, key))

    def _on_fetch_done(self, key: str, task: asyncio.Task[None]) -> None:
        # A task cancelled before its first step never reached its own cleanup.
        if task.cancelled():
            self._fetcher.abandon(key)

    def _resolve_key(self, source: SourceLike) -> str:
        if isinstance(source, ArtifactSource):
            key: Any = source.uri
        elif isinstance(source, Mapping):
            key = source.get("uri", source.get("key"))
        elif source is not None and hasattr(source, "uri"):
            key = source.uri
        else:
            raise InvalidSourceError(type(source).__name__)

        if key is None or key == "":
            return self.config.default_key
        if not isinstance(key, str):
            raise InvalidSourceError(
                type(key).__name__,
                message=f"Expected string uri, encountered {type(key).__name__}.",
            )
        return key


def _coerce_options(options: OptionsLike) -> OpenOptions:
    if options is None:
        return OpenOptions()
    if isinstance(options, OpenOptions):
        return options
    if isinstance(options, Mapping):
        return OpenOptions(allow_inline_execution=options.get("allow_inline_execution") is True)
    raise InvalidSourceError(
        type(options).__name__,
        message=f"Expected OpenOptions, encountered {type(options).__name__}.",
    )
