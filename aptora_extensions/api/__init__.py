"""HTTP layer for aptora-extensions."""

from aptora_extensions.api.app import create_app

__all__ = ["create_app"]
