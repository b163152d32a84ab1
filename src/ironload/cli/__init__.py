"""Command-line interface for the training load engine."""

from .coach import cli

__all__ = ['cli']
