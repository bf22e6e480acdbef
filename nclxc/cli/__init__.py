"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import NCLXCModalCLI, main

__all__ = ['NCLXCModalCLI', 'main']
