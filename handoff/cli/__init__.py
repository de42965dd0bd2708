"""
handoff command-line interface.
"""

from handoff.cli.main import cli, main

__all__ = ["cli", "main"]
