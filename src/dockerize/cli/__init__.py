"""
cargo-dockerize CLI (Typer).

Entry point: ``cargo-dockerize`` (also reachable as ``cargo dockerize``).
"""

from dockerize.cli.app import app, main

__all__ = ["app", "main"]
