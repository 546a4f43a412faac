"""Command line entry points for rundev."""

from .main import app, main

__all__ = ["app", "main"]
