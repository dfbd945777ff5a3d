"""Unit tests for configuration models and load_config()."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from flek_loader.config import (
    ArtifactSource,
    LoaderConfig,
    OpenOptions,
    RetrievalRequest,
    RetrievalResponse,
    RetryConfig,
    load_config,
)


class TestRetryConfig:
    """Tests for RetryConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Test RetryConfig uses correct defaults."""
        config = RetryConfig()

        assert config.max_attempts == 3
        assert config.initial_wait_seconds == pytest.approx(0.5)
        assert config.max_wait_seconds == pytest.approx(10.0)
        assert config.jitter_seconds == pytest.approx(0.5)
        assert config.circuit_breaker_threshold == 5
        assert config.circuit_breaker_reset_seconds == pytest.approx(30.0)

    def test_max_attempts_boundaries(self) -> None:
        """Test max_attempts is limited to 1-10."""
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValidationError, match="max_attempts"):
            RetryConfig(max_attempts=11)

    def test_circuit_breaker_reset_boundaries(self) -> None:
        assert RetryConfig(circuit_breaker_reset_seconds=0).circuit_breaker_reset_seconds == 0
        with pytest.raises(ValidationError, match="circuit_breaker_reset_seconds"):
            RetryConfig(circuit_breaker_reset_seconds=-1)
        with pytest.raises(ValidationError, match="circuit_breaker_reset_seconds"):
            RetryConfig(circuit_breaker_reset_seconds=3601)

    def test_max_wait_must_cover_initial(self) -> None:
        """Test max_wait_seconds cannot be below initial_wait_seconds."""
        with pytest.raises(ValidationError, match="must be >= initial_wait_seconds"):
            RetryConfig(initial_wait_seconds=5.0, max_wait_seconds=1.0)

    def test_frozen(self) -> None:
        """Test RetryConfig is immutable."""
        config = RetryConfig()

        with pytest.raises(ValidationError):
            config.max_attempts = 5  # type: ignore[misc]


class TestLoaderConfig:
    """Tests for LoaderConfig Pydantic model."""

    def test_default_values(self) -> None:
        """Test LoaderConfig defaults target a local dev server."""
        config = LoaderConfig()

        assert config.server_uri == "http://localhost:3000"
        assert config.default_key == "http://localhost:3000/currentWidget"
        assert config.request_timeout_seconds == pytest.approx(10.0)
        assert config.headers == {}
        assert "math" in config.allowed_modules
        assert config.retry == RetryConfig()

    def test_normalizes_slashes(self) -> None:
        """Test trailing and leading slashes join cleanly."""
        config = LoaderConfig(server_uri="https://widgets.example.com/", default_path="/home")

        assert config.default_key == "https://widgets.example.com/home"

    def test_rejects_non_http_uri(self) -> None:
        """Test server_uri must use http or https."""
        with pytest.raises(ValidationError, match="http:// or https://"):
            LoaderConfig(server_uri="ftp://widgets.example.com")

    def test_rejects_unknown_fields(self) -> None:
        """Test extra fields are forbidden."""
        with pytest.raises(ValidationError):
            LoaderConfig(server="http://localhost:3000")  # type: ignore[call-arg]

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError, match="request_timeout_seconds"):
            LoaderConfig(request_timeout_seconds=0)

    def test_nested_retry_from_dict(self) -> None:
        """Test retry policy can be given as a mapping."""
        config = LoaderConfig(retry={"max_attempts": 1})  # type: ignore[arg-type]

        assert config.retry.max_attempts == 1


class TestCallModels:
    """Tests for per-call and retrieval models."""

    def test_open_options_default_closed(self) -> None:
        assert OpenOptions().allow_inline_execution is False

    def test_artifact_source_default_uri(self) -> None:
        assert ArtifactSource().uri is None

    def test_retrieval_request_defaults_to_get(self) -> None:
        assert RetrievalRequest(url="http://widgets.test/A.py").method == "GET"

    def test_retrieval_request_requires_url(self) -> None:
        with pytest.raises(ValidationError):
            RetrievalRequest(url="")

    def test_retrieval_response_accepts_any_body(self) -> None:
        """Test the response model leaves body validation to the fetcher."""
        response = RetrievalResponse(url="http://widgets.test/A.py", data={"not": "text"})

        assert response.data == {"not": "text"}
        assert response.status_code == 200


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults_without_sources(self) -> None:
        """Test an empty environment yields defaults."""
        assert load_config(environ={}) == LoaderConfig()

    def test_reads_yaml_file(self, tmp_path: Path) -> None:
        """Test values are read from a YAML file."""
        path = tmp_path / "flek.yaml"
        path.write_text(
            "server_uri: http://widgets.test\n"
            "default_path: home\n"
            "allowed_modules: [math]\n"
            "retry:\n"
            "  max_attempts: 2\n"
        )

        config = load_config(path, environ={})

        assert config.default_key == "http://widgets.test/home"
        assert config.allowed_modules == ("math",)
        assert config.retry.max_attempts == 2

    def test_reads_path_from_environment(self, tmp_path: Path) -> None:
        """Test FLEK_CONFIG names the config file."""
        path = tmp_path / "flek.yaml"
        path.write_text("server_uri: http://widgets.test\n")

        config = load_config(environ={"FLEK_CONFIG": str(path)})

        assert config.server_uri == "http://widgets.test"

    def test_server_uri_override(self, tmp_path: Path) -> None:
        """Test FLEK_SERVER_URI wins over the file."""
        path = tmp_path / "flek.yaml"
        path.write_text("server_uri: http://widgets.test\n")

        config = load_config(path, environ={"FLEK_SERVER_URI": "https://override.test"})

        assert config.server_uri == "https://override.test"

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty YAML document yields defaults."""
        path = tmp_path / "flek.yaml"
        path.write_text("")

        assert load_config(path, environ={}) == LoaderConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml", environ={})

    def test_non_mapping_document(self, tmp_path: Path) -> None:
        """Test a YAML list is rejected."""
        path = tmp_path / "flek.yaml"
        path.write_text("- server_uri\n")

        with pytest.raises(ValueError, match="Expected a mapping"):
            load_config(path, environ={})

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "flek.yaml"
        path.write_text("server_uri: localhost\n")

        with pytest.raises(ValidationError):
            load_config(path, environ={})
