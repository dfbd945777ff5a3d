"""flek serve command - Serve widget sources for local development."""

from __future__ import annotations

from pathlib import Path

import click

from flek_cli.errors import EXIT_SYSTEM_ERROR
from flek_cli.output import error, info, success


@click.command()
@click.option(
    "-d",
    "--mocks-dir",
    "mocks_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default="./__mocks__",
    help="Directory of widget sources [default: ./__mocks__]",
)
@click.option(
    "--host",
    default="127.0.0.1",
    help="Interface to bind [default: 127.0.0.1]",
)
@click.option(
    "-p",
    "--port",
    type=int,
    default=3000,
    envvar="PORT",
    help="Port for the development server [default: 3000, env: PORT]",
)
@click.option(
    "-t",
    "--transform",
    default=None,
    help="Command run per request as '<transform> <file>' inside the mocks directory.",
)
def serve(mocks_dir: Path, host: str, port: int, transform: str | None) -> None:
    """Serve widget sources over HTTP.

    Each file in the mocks directory is available at `/__mocks__/<file>`.

    Examples:

        flek serve

        flek serve --mocks-dir widgets --port 3001

        flek serve --transform "python -m my_bundler"
    """
    if not mocks_dir.is_dir():
        error(f"Mocks directory not found: {mocks_dir}")
        raise SystemExit(EXIT_SYSTEM_ERROR)

    # Import here to keep `flek --help` fast
    import uvicorn

    from flek_cli.server import create_app

    app = create_app(mocks_dir, transform=transform)

    success("Widget sources are being served!")
    info(f"Directory: {mocks_dir.resolve()}")
    info(f"URL: http://{host}:{port}/__mocks__/")
    if transform:
        info("Note, request latency will be increased since files are transformed on every request.")

    uvicorn.run(app, host=host, port=port, log_level="info")
