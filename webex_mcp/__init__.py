"""Webex MCP server with an OAuth 2.1 authorization proxy in front of Webex."""

__version__ = "0.1.0"
