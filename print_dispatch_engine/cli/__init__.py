"""
CLI package for the Print Dispatch Engine

Provides the operator command-line interface for previewing and running dispatch.
"""

from .main import main, cli

__all__ = ["main", "cli"]
