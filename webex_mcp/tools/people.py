"""
People tools for MCP server.

- get_my_profile: profile of the authenticated Webex user
"""

import json
import logging
from typing import TYPE_CHECKING

from fastmcp.exceptions import ToolError

from webex_mcp.core.context import get_app_context
from webex_mcp.core.decorators import track_request

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)


def register_people_tools(mcp: "FastMCP") -> None:
    """
    Register people-related MCP tools.

    Args:
        mcp: FastMCP instance to register tools with
    """

    @mcp.tool()
    @track_request("get_my_profile")
    async def get_my_profile() -> str:
        """
        Get the profile of the authenticated Webex user.

        Returns:
            JSON string with the user's id, display name, emails and org id.
        """
        app_context = get_app_context()
        if app_context is None:
            msg = "Server context is not initialized"
            raise ToolError(msg)

        client = await app_context.resolver()
        person = await client.get_my_details()
        return json.dumps(
            {
                "id": person.get("id"),
                "displayName": person.get("displayName"),
                "emails": person.get("emails", []),
                "orgId": person.get("orgId"),
            },
            indent=2,
        )
