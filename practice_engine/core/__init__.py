"""Shared infrastructure for the practice engine entry points."""

from .logging import configure_logging

__all__ = ["configure_logging"]
