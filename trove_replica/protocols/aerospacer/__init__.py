"""Aerospacer protocol support."""
from .adapter import AerospacerAdapter

__all__ = ["AerospacerAdapter"]
