"""HTTP API package."""

from src.api.assistant_api import create_app

__all__ = ["create_app"]
