"""
CLI module for the CRUD generator.

Provides the ``crudgen`` console script entry point.
"""

from .commands import main

__all__ = ["main"]
