"""flek-cli: command line tools for flek widget development."""

from __future__ import annotations

__version__ = "0.1.0"
