"""Console entry package for the StreamHub API."""

from __future__ import annotations

from app import app, create_app

__version__ = "1.0.0"

__all__ = ["app", "create_app", "__version__"]
