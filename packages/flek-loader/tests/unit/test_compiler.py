"""Unit tests for ArtifactCompiler."""

from __future__ import annotations

import pytest

from flek_loader.compiler import ArtifactCompiler
from flek_loader.context import build_execution_context
from flek_loader.errors import ArtifactCompileError, InvalidArtifactError, InvalidSourceError


@pytest.fixture
def compiler() -> ArtifactCompiler:
    return ArtifactCompiler(build_execution_context(["math"]))


class TestCompile:
    """Tests for ArtifactCompiler.compile()."""

    def test_returns_default_export(self, compiler: ArtifactCompiler, hello_source: str) -> None:
        """Test the callable at exports.default is returned."""
        widget = compiler.compile(hello_source)

        assert widget(name="flek") == "Hello, flek!"

    def test_compiles_fresh_artifact_each_time(
        self, compiler: ArtifactCompiler, hello_source: str
    ) -> None:
        """Test equal source yields equivalent but distinct artifacts."""
        first = compiler.compile(hello_source)
        second = compiler.compile(hello_source)

        assert first is not second
        assert first() == second()

    def test_classes_are_allowed(self, compiler: ArtifactCompiler) -> None:
        """Test class-based widgets compile in the restricted context."""
        source = (
            "class Counter:\n"
            "    def __init__(self, start=0):\n"
            "        self.value = start\n"
            "\n"
            "exports.default = Counter\n"
        )

        assert compiler.compile(source)(start=3).value == 3

    def test_allowlisted_import(self, compiler: ArtifactCompiler) -> None:
        """Test source may import allowlisted modules."""
        source = "import math\nexports.default = lambda **props: math.floor(props['x'])\n"

        assert compiler.compile(source)(x=2.7) == 2

    def test_require(self, compiler: ArtifactCompiler) -> None:
        """Test source may load allowlisted modules through require()."""
        source = "math = require('math')\nexports.default = lambda **props: math.pi\n"

        assert compiler.compile(source)() == pytest.approx(3.14159, rel=1e-5)

    def test_unlisted_import_fails(self, compiler: ArtifactCompiler) -> None:
        """Test importing an unlisted module fails compilation."""
        with pytest.raises(ArtifactCompileError, match="ImportError"):
            compiler.compile("import os\nexports.default = os.getcwd\n")

    def test_host_builtins_hidden(self, compiler: ArtifactCompiler) -> None:
        """Test builtins outside the safe set are not reachable."""
        with pytest.raises(ArtifactCompileError, match="NameError"):
            compiler.compile("exports.default = open\n")

    def test_context_without_builtins_gets_safe_builtins(self) -> None:
        """Test a host context lacking __builtins__ still runs restricted."""
        compiler = ArtifactCompiler({"greeting": "hi"})

        widget = compiler.compile("exports.default = lambda **props: greeting\n")

        assert widget() == "hi"
        with pytest.raises(ArtifactCompileError, match="NameError"):
            compiler.compile("exports.default = eval\n")

    def test_explicit_context_overrides_default(self, compiler: ArtifactCompiler) -> None:
        """Test the context argument replaces the compiler's default."""
        context = build_execution_context(extra_symbols={"answer": 42})

        widget = compiler.compile("exports.default = lambda **props: answer\n", context)

        assert widget() == 42

    def test_syntax_error(self, compiler: ArtifactCompiler) -> None:
        """Test syntax errors raise ArtifactCompileError with the line number."""
        with pytest.raises(ArtifactCompileError) as exc_info:
            compiler.compile("x = 1\ndef broken(:\n", name="http://widgets.test/broken.py")

        assert exc_info.value.name == "http://widgets.test/broken.py"
        assert exc_info.value.cause.startswith("SyntaxError")
        assert "line 2" in exc_info.value.cause

    def test_module_body_raises(self, compiler: ArtifactCompiler) -> None:
        """Test errors raised while executing the module body."""
        with pytest.raises(ArtifactCompileError, match="ZeroDivisionError"):
            compiler.compile("exports.default = 1 / 0\n")

    def test_missing_default_export(self, compiler: ArtifactCompiler) -> None:
        """Test source that never assigns exports.default."""
        with pytest.raises(InvalidArtifactError, match="encountered NoneType"):
            compiler.compile("def Hello():\n    return 'hi'\n")

    def test_non_callable_default_export(
        self, compiler: ArtifactCompiler, string_export_source: str
    ) -> None:
        """Test a default export that cannot be called."""
        with pytest.raises(InvalidArtifactError, match="encountered str"):
            compiler.compile(string_export_source)

    def test_rejects_non_string_source(self, compiler: ArtifactCompiler) -> None:
        """Test source text must be a string."""
        with pytest.raises(InvalidSourceError, match="bytes"):
            compiler.compile(b"exports.default = print")  # type: ignore[arg-type]

    def test_does_not_leak_between_compilations(self, compiler: ArtifactCompiler) -> None:
        """Test globals defined by one artifact are invisible to the next."""
        compiler.compile("secret = 1\nexports.default = lambda **props: secret\n")

        widget = compiler.compile("exports.default = lambda **props: secret\n")

        with pytest.raises(NameError):
            widget()
