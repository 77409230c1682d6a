"""Service modules"""
from .monitor import Monitor
from .refresh import RefreshTask

__all__ = ["Monitor", "RefreshTask"]
