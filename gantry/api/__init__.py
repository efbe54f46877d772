"""Gantry API Module - FastAPI endpoints."""

from .routes import router, get_compiler

__all__ = [
    "router",
    "get_compiler",
]
