"""Host-side binding that renders a loaded artifact behind an error boundary.

Widget drives the loader for one source and exposes three render states:
loading, ready, and error. Rendering never raises. Failures turn into the
host's error view and are reported through on_error.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from flek_loader.cache import Artifact
from flek_loader.config import OpenOptions
from flek_loader.errors import RenderError
from flek_loader.loader import ArtifactLoader, SourceLike
from flek_loader.observability import get_logger

RenderLoading = Callable[[], Any]
RenderErrorFn = Callable[[Exception], Any]
OnError = Callable[[Exception], None]


class WidgetStatus(str, Enum):
    """Render state of a Widget."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _render_nothing(*_: Any) -> None:
    return None


def _log_error(error: Exception) -> None:
    get_logger().error("widget_error", error=str(error), error_type=type(error).__name__)


class Widget:
    """A loaded artifact plus its loading and error views.

    Attributes:
        source: Source passed to ArtifactLoader.open.
        status: Current WidgetStatus.
        error: The failure that moved the widget to ERROR, if any.

    Example:
        >>> widget = Widget(loader, {"uri": "http://localhost:3000/__mocks__/Hello.py"})
        >>> widget.render()  # loading view
        >>> await widget.load()
        >>> widget.render(name="flek")
        'Hello, flek!'
    """

    def __init__(
        self,
        loader: ArtifactLoader,
        source: SourceLike,
        *,
        allow_inline_execution: bool = False,
        render_loading: RenderLoading | None = None,
        render_error: RenderErrorFn | None = None,
        on_error: OnError | None = None,
    ) -> None:
        self._loader = loader
        self.source = source
        self._options = OpenOptions(allow_inline_execution=allow_inline_execution)
        self._render_loading = render_loading or _render_nothing
        self._render_error = render_error or _render_nothing
        self._on_error = on_error or _log_error
        self._artifact: Artifact | None = None
        self.error: Exception | None = None

    @property
    def status(self) -> WidgetStatus:
        if self._artifact is not None:
            return WidgetStatus.READY
        if self.error is not None:
            return WidgetStatus.ERROR
        return WidgetStatus.LOADING

    async def load(self) -> WidgetStatus:
        """Open the artifact for this widget's source.

        Returns:
            The resulting status (READY or ERROR).
        """
        try:
            self._artifact = await self._loader.open(self.source, self._options)
        except Exception as exc:
            self._artifact = None
            self._fail(exc)
        return self.status

    def render(self, **props: Any) -> Any:
        """Render the current state.

        Args:
            **props: Props passed to the artifact when it is ready.

        Returns:
            The artifact's output, or the loading or error view.
        """
        if self._artifact is None:
            if self.error is not None:
                return self._render_error(self.error)
            return self._render_loading()

        try:
            return self._artifact(**props)
        except Exception as exc:
            self._on_error(exc)
            return self._render_error(RenderError())

    def _fail(self, error: Exception) -> None:
        self.error = error
        self._on_error(error)
