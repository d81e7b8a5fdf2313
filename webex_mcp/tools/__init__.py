"""MCP tools exposed by the Webex MCP server."""

from .people import register_people_tools

__all__ = ["register_people_tools"]
