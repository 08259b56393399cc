"""
Command line interface for the Authorization Model Engine.
"""

from .authzctl import cli, main

__all__ = ["cli", "main"]
