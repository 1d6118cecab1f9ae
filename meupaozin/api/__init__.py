"""FastAPI adapter over the domain services."""

from meupaozin.api.app import create_app

__all__ = ["create_app"]
