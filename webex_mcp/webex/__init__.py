"""Webex REST API access."""

from .client import WebexClient

__all__ = ["WebexClient"]
