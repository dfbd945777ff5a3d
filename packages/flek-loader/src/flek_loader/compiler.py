"""Compile artifact source text into a callable.

Source is ordinary Python that assigns its widget to ``exports.default``:

    def Hello(*, name="world"):
        return f"Hello, {name}!"

    exports.default = Hello

The compiler has no knowledge of keys or caching. Given the same source and
context it produces an equivalent artifact every time.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any

from flek_loader.cache import Artifact
from flek_loader.context import ExecutionContext, safe_builtins
from flek_loader.errors import ArtifactCompileError, InvalidArtifactError, InvalidSourceError
from flek_loader.observability import get_logger, loader_operation

INLINE_NAME = "<inline>"
EXPORTS_NAME = "exports"


class ArtifactCompiler:
    """Turns source text into a callable artifact inside an execution context.

    Attributes:
        context: Default execution context used when compile() receives none.

    Example:
        >>> compiler = ArtifactCompiler(build_execution_context())
        >>> widget = compiler.compile("exports.default = lambda **props: props")
        >>> widget(title="hi")
        {'title': 'hi'}
    """

    def __init__(self, context: ExecutionContext | None = None) -> None:
        self.context: ExecutionContext = context if context is not None else {}
        self._logger = get_logger()

    def compile(
        self,
        source_text: str,
        context: ExecutionContext | None = None,
        *,
        name: str = INLINE_NAME,
    ) -> Artifact:
        """Compile and execute source text, returning its default export.

        Args:
            source_text: Python source assigning ``exports.default``.
            context: Symbols visible to the source. Defaults to self.context.
            name: Name reported in tracebacks and errors (the key, usually).

        Returns:
            The callable found at ``exports.default``.

        Raises:
            InvalidSourceError: If source_text is not a string.
            ArtifactCompileError: If the source has a syntax error or raises.
            InvalidArtifactError: If the default export is missing or not callable.
        """
        if not isinstance(source_text, str):
            raise InvalidSourceError(type(source_text).__name__)

        with loader_operation("compile", key=name):
            try:
                code = compile(source_text, f"<artifact {name}>", "exec")
            except SyntaxError as exc:
                cause = f"SyntaxError: {exc.msg} (line {exc.lineno})"
                raise ArtifactCompileError(name, cause=cause) from exc

            exports = SimpleNamespace()
            symbols = context if context is not None else self.context
            namespace = self._build_namespace(symbols, name)
            namespace[EXPORTS_NAME] = exports

            try:
                exec(code, namespace)  # noqa: S102
            except Exception as exc:
                raise ArtifactCompileError(name, cause=f"{type(exc).__name__}: {exc}") from exc

            artifact = getattr(exports, "default", None)
            if not callable(artifact):
                raise InvalidArtifactError(type(artifact).__name__)

            self._logger.debug("artifact_compiled", name=name)
            return artifact

    @staticmethod
    def _build_namespace(context: Mapping[str, Any], name: str) -> dict[str, Any]:
        namespace: dict[str, Any] = {"__name__": name}
        namespace.update(context)
        # exec() inserts the real builtins when this key is absent.
        namespace["__builtins__"] = dict(context.get("__builtins__") or safe_builtins())
        return namespace
