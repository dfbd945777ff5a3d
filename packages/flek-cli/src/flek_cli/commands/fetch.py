"""flek fetch command - Load a widget through the artifact loader."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from flek_cli.errors import EXIT_USER_ERROR, handle_file_not_found, handle_validation_error
from flek_cli.output import error, info, success

if TYPE_CHECKING:
    from flek_loader import LoaderConfig


def _parse_props(values: tuple[str, ...]) -> dict[str, str]:
    props: dict[str, str] = {}
    for value in values:
        name, sep, prop_value = value.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"Expected KEY=VALUE, got {value!r}", param_hint="--prop")
        props[name] = prop_value
    return props


def _load_config(config_path: Path | None) -> LoaderConfig:
    from pydantic import ValidationError

    from flek_loader import load_config

    try:
        return load_config(config_path)
    except FileNotFoundError:
        handle_file_not_found(str(config_path))
    except ValidationError as e:
        handle_validation_error(e, str(config_path or "environment"))


async def _open(config: LoaderConfig, uri: str | None, expect_status: int) -> Any:
    from flek_loader import ArtifactSource, create_loader

    def verify(response: Any) -> bool:
        return getattr(response, "status_code", None) == expect_status

    async with create_loader(config, verify=verify) as loader:
        return await loader.open(ArtifactSource(uri=uri))


@click.command()
@click.argument("uri", required=False)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a flek YAML config [default: $FLEK_CONFIG]",
)
@click.option(
    "--expect-status",
    type=int,
    default=200,
    help="HTTP status the response must have to pass verification [default: 200]",
)
@click.option(
    "--render",
    is_flag=True,
    default=False,
    help="Call the loaded widget and print its output.",
)
@click.option(
    "--prop",
    "props",
    multiple=True,
    help="Prop passed to the widget when rendering, as KEY=VALUE. Repeatable.",
)
def fetch(
    uri: str | None,
    config_path: Path | None,
    expect_status: int,
    render: bool,
    props: tuple[str, ...],
) -> None:
    """Fetch, verify and compile a widget.

    Without a URI the configured default widget is loaded.

    Examples:

        flek fetch http://localhost:3000/__mocks__/Hello.py

        flek fetch --render --prop name=flek http://localhost:3000/__mocks__/Hello.py

        flek fetch --config flek.yaml
    """
    from flek_loader import FlekLoaderError

    widget_props = _parse_props(props)
    config = _load_config(config_path)
    key = uri or config.default_key

    try:
        widget = asyncio.run(_open(config, uri, expect_status))
    except FlekLoaderError as e:
        error(str(e))
        raise SystemExit(EXIT_USER_ERROR) from None

    success(f"Loaded {key}")
    if render:
        try:
            output = widget(**widget_props)
        except Exception as e:
            error(f"Render failed: {type(e).__name__}: {e}")
            raise SystemExit(EXIT_USER_ERROR) from None
        info(str(output), markup=False)
