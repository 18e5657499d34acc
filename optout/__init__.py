"""Opt-out and suppression workflow for republished obituary listings."""

__version__ = "0.1.0"
