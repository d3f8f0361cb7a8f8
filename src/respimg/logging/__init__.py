"""Logging helpers for Respimg."""

from .setup import configure_logging

__all__ = ["configure_logging"]
