"""
Main entry point for the Webex MCP server.

In HTTP mode the server is also an OAuth 2.1 authorization server that
proxies authorization to Webex; in stdio mode it uses a single configured
Webex access token.
"""

import asyncio
import sys
import traceback

from fastmcp import FastMCP
from starlette.responses import JSONResponse

from webex_mcp.auth.setup import setup_oauth2_routes
from webex_mcp.config import get_settings
from webex_mcp.core import logger
from webex_mcp.core.context import cleanup_global_context, initialize_global_context
from webex_mcp.middleware import setup_middleware
from webex_mcp.tools import register_people_tools

# Get settings instance
settings = get_settings()

mcp = FastMCP("Webex MCP Server")

# Register all MCP tools
register_people_tools(mcp)


@mcp.custom_route("/health", methods=["GET"])
async def health(request):
    """Liveness probe."""
    return JSONResponse({"status": "ok"})


async def main() -> None:
    """
    Main async function to run the MCP server.
    """
    try:
        logger.info("Main function started")

        # Initialize global context ONCE at startup (not per-request)
        context = await initialize_global_context(settings)

        transport = settings.transport
        logger.info("Transport mode: %s", transport)

        # Normalize transport names to FastMCP Transport literals
        transport_map = {
            "http": "streamable-http",
            "streamable-http": "streamable-http",
            "stdio": "stdio",
        }
        fastmcp_transport = transport_map.get(transport, "stdio")

        if fastmcp_transport == "streamable-http":
            setup_oauth2_routes(mcp, context.oauth_server, context.discovery)
            middleware = setup_middleware(
                settings,
                oauth_server=context.oauth_server,
                store=context.store,
                client_cache=context.client_cache,
                discovery=context.discovery,
            )
            logger.info(
                "Setting up %s server on %s:%s...", fastmcp_transport, settings.host, settings.port
            )
            await mcp.run_async(
                transport=fastmcp_transport,
                host=settings.host,
                port=settings.port,
                middleware=middleware,
            )
        else:
            logger.info("Setting up stdio server...")
            await mcp.run_async(transport="stdio")

    except Exception as e:
        logger.error("Error in main function: %s", e)
        logger.error("Traceback: %s", traceback.format_exc())
        raise
    finally:
        # Cleanup global context on shutdown
        logger.info("Shutting down - cleaning up global context...")
        await cleanup_global_context()


def run() -> None:
    """Console script entry point."""
    try:
        logger.info("Starting main function...")
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    run()
