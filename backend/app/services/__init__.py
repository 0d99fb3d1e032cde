"""Application service helpers."""

from . import notifications

__all__ = ["notifications"]
