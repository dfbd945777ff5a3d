"""FastAPI development server for widget sources.

Serves:
- GET /__mocks__/{name}: source text of a widget file in the mocks directory
- GET /health: liveness probe

When a transform command is configured, each request runs it inside the
mocks directory with the file name appended and serves its stdout instead of
the raw file. Files are re-read (or re-transformed) on every request.
"""

from __future__ import annotations

import shlex
import subprocess
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from flek_cli import __version__

_logger = structlog.get_logger("flek.cli.server")

TRANSFORM_TIMEOUT_SECONDS = 60.0


class SourceNotFoundError(LookupError):
    """Requested source file does not exist inside the mocks directory."""


def resolve_source(root: Path, name: str) -> Path:
    """Resolve a requested name to a file inside root.

    Raises:
        SourceNotFoundError: If the file is missing or escapes root.
    """
    candidate = (root / name).resolve()
    if root not in candidate.parents or not candidate.is_file():
        raise SourceNotFoundError(f"Unable to find {candidate}")
    return candidate


def read_source(root: Path, name: str, transform: str | None = None) -> str:
    """Return the served text for a source file.

    Args:
        root: Resolved mocks directory.
        name: File name relative to root.
        transform: Optional command run as ``<transform> <name>`` in root.

    Returns:
        File contents, or the transform's stdout.

    Raises:
        SourceNotFoundError: If the file does not exist.
        subprocess.CalledProcessError: If the transform exits non-zero.
        subprocess.TimeoutExpired: If the transform hangs.
    """
    path = resolve_source(root, name)
    if transform is None:
        return path.read_text(encoding="utf-8")

    completed = subprocess.run(  # noqa: S603
        [*shlex.split(transform), name],
        cwd=root,
        capture_output=True,
        text=True,
        check=True,
        timeout=TRANSFORM_TIMEOUT_SECONDS,
    )
    return completed.stdout


def create_app(mocks_dir: Path, *, transform: str | None = None) -> FastAPI:
    """Create the development server app.

    Args:
        mocks_dir: Directory holding widget source files.
        transform: Optional per-request transform command.

    Returns:
        FastAPI application instance.
    """
    root = mocks_dir.resolve()
    app = FastAPI(
        title="flek dev server",
        description="Serves widget sources for local development",
        version=__version__,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/__mocks__/{name}", response_class=PlainTextResponse)
    def serve_source(name: str) -> PlainTextResponse:
        try:
            text = read_source(root, name, transform)
        except (OSError, SourceNotFoundError, subprocess.SubprocessError) as exc:
            _logger.warning("source_serve_failed", name=name, error=str(exc))
            return PlainTextResponse("Internal Server Error", status_code=500)
        _logger.debug("source_served", name=name, size=len(text))
        return PlainTextResponse(text)

    return app
