"""Command-line helpers for the tzindex package."""

from .tzindex import main as run_tzindex

__all__ = ["run_tzindex"]
