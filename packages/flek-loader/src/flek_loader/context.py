"""Execution context for compiled artifact source.

Compiled source never sees the interpreter's ambient globals. It runs against
an explicit, read-only symbol table built once per loader:

- ``__builtins__``: a reduced builtin set whose ``__import__`` only admits
  allowlisted top-level modules
- ``require(name)``: returns an allowlisted module, or None

Hosts may pass their own mapping instead. The compiler always installs the
reduced builtins when a host mapping omits ``__builtins__``.

Note:
    This limits what well-behaved widget code can reach. It is not a defence
    against hostile code; the host's verify() predicate is the trust gate.
"""

from __future__ import annotations

import builtins
import importlib
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType, ModuleType
from typing import Any

ExecutionContext = Mapping[str, Any]

SAFE_BUILTIN_NAMES: tuple[str, ...] = (
    "__build_class__",
    "abs",
    "all",
    "any",
    "bool",
    "callable",
    "chr",
    "classmethod",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "format",
    "frozenset",
    "getattr",
    "hasattr",
    "hash",
    "int",
    "isinstance",
    "issubclass",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "object",
    "ord",
    "pow",
    "print",
    "property",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "staticmethod",
    "str",
    "sum",
    "super",
    "tuple",
    "type",
    "zip",
    # Exceptions widget code commonly raises or catches
    "ArithmeticError",
    "AttributeError",
    "Exception",
    "IndexError",
    "KeyError",
    "LookupError",
    "NotImplementedError",
    "RuntimeError",
    "StopIteration",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)


def safe_builtins(allowed_modules: Iterable[str] = ()) -> dict[str, Any]:
    """Build the reduced builtin namespace for compiled source.

    Args:
        allowed_modules: Top-level module names ``import`` may load.
            Empty means every import statement fails.

    Returns:
        A fresh dict of builtin name to object.
    """
    namespace = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
    namespace["__import__"] = _restricted_import(frozenset(allowed_modules))
    return namespace


def _restricted_import(allowed: frozenset[str]) -> Callable[..., ModuleType]:
    def restricted_import(
        name: str,
        globals: Mapping[str, Any] | None = None,  # noqa: A002
        locals: Mapping[str, Any] | None = None,  # noqa: A002
        fromlist: tuple[str, ...] = (),
        level: int = 0,
    ) -> ModuleType:
        if level != 0:
            msg = "relative imports are not available to compiled artifacts"
            raise ImportError(msg)
        if name.partition(".")[0] not in allowed:
            msg = f"import of {name!r} is not allowed"
            raise ImportError(msg)
        return builtins.__import__(name, globals, locals, fromlist, level)

    return restricted_import


def _build_require(allowed: frozenset[str]) -> Callable[[str], ModuleType | None]:
    def require(module_id: str) -> ModuleType | None:
        """Return an allowlisted module by name, or None."""
        if module_id.partition(".")[0] not in allowed:
            return None
        return importlib.import_module(module_id)

    return require


def build_execution_context(
    allowed_modules: Iterable[str] = (),
    *,
    extra_symbols: Mapping[str, Any] | None = None,
) -> ExecutionContext:
    """Build the default read-only execution context.

    Args:
        allowed_modules: Top-level module names compiled source may load
            through ``import`` or ``require()``.
        extra_symbols: Additional host symbols exposed to compiled source.

    Returns:
        Read-only mapping of symbol name to value.

    Example:
        >>> context = build_execution_context(["math"])
        >>> context["require"]("math").pi
        3.141592653589793
        >>> context["require"]("os") is None
        True
    """
    allowed = frozenset(allowed_modules)
    symbols: dict[str, Any] = {
        "__builtins__": safe_builtins(allowed),
        "require": _build_require(allowed),
    }
    if extra_symbols:
        symbols.update(extra_symbols)
    return MappingProxyType(symbols)
