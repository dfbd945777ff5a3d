"""Unit tests for create_loader factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

import flek_loader
from flek_loader.config import LoaderConfig
from flek_loader.errors import LoaderConfigurationError
from flek_loader.factory import create_loader
from flek_loader.loader import ArtifactLoader


class TestCreateLoader:
    """Tests for create_loader()."""

    def test_from_loader_config(self, retriever: Any, accept_all: Any) -> None:
        config = LoaderConfig(server_uri="http://widgets.test")

        loader = create_loader(config, verify=accept_all, request=retriever)

        assert isinstance(loader, ArtifactLoader)
        assert loader.config is config

    def test_from_mapping(self, retriever: Any, accept_all: Any) -> None:
        loader = create_loader(
            {"server_uri": "http://widgets.test", "default_path": "home"},
            verify=accept_all,
            request=retriever,
        )

        assert loader.config.default_key == "http://widgets.test/home"

    def test_from_yaml_path(self, tmp_path: Path, retriever: Any, accept_all: Any) -> None:
        path = tmp_path / "flek.yaml"
        path.write_text("server_uri: http://widgets.test\n")

        loader = create_loader(str(path), verify=accept_all, request=retriever)

        assert loader.config.server_uri == "http://widgets.test"

    def test_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, retriever: Any, accept_all: Any
    ) -> None:
        """Test None falls back to the environment."""
        monkeypatch.delenv("FLEK_CONFIG", raising=False)
        monkeypatch.setenv("FLEK_SERVER_URI", "https://env.test")

        loader = create_loader(verify=accept_all, request=retriever)

        assert loader.config.server_uri == "https://env.test"

    def test_unsupported_config_type(self, accept_all: Any) -> None:
        with pytest.raises(ValueError, match="Unsupported config type: int"):
            create_loader(3, verify=accept_all)  # type: ignore[arg-type]

    def test_verify_is_required(self, retriever: Any) -> None:
        with pytest.raises(LoaderConfigurationError):
            create_loader(LoaderConfig(), verify=None, request=retriever)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_created_loader_opens(
        self, retriever: Any, accept_all: Any, server_uri: str
    ) -> None:
        loader = create_loader(LoaderConfig(server_uri=server_uri), verify=accept_all, request=retriever)

        widget = await loader.open({"uri": f"{server_uri}/A.py"})

        assert widget(name="factory") == "Hello, factory!"


class TestPublicApi:
    """Tests for the package's lazily imported names."""

    def test_exports_resolve(self) -> None:
        for name in flek_loader.__all__:
            assert getattr(flek_loader, name) is not None

    def test_unknown_name(self) -> None:
        with pytest.raises(AttributeError):
            flek_loader.does_not_exist  # noqa: B018
