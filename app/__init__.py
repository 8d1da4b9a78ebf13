"""StreamHub FastAPI application package.

``app`` and ``create_app`` resolve lazily so that importing a submodule such
as :mod:`app.config` does not build the ASGI application.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    if name in __all__:
        return getattr(import_module("app.main"), name)
    raise AttributeError(f"module 'app' has no attribute {name!r}")
