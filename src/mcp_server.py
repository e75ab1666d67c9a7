"""
MongoDB MCP Server
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

import click
from mcp.server.fastmcp import FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import (
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolResult,
    ErrorData,
    ServerResult,
    TextContent,
)
from mcp.types import Tool as MCPTool

# Import dispatch and schema registry
from dispatch import DocumentExecutor
from schemas import SchemaRegistry

# Import tools
from tools import ALL_TOOL_NAMES, ToolRegistry, build_tool_registry

# Import utilities
from utils import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_READ_ONLY_MODE,
    DEFAULT_TRANSPORT,
    MCP_SERVER_NAME,
    AppContext,
    Settings,
    connect_to_mongodb,
    get_app_context,
    get_database,
    parse_disabled_tools,
    redact_connection_string,
    resolve_schema_path,
    validate_connection_string,
)
from utils.constants import (
    ALLOWED_TRANSPORTS,
    DEFAULT_CONNECTION_STRING,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    NETWORK_TRANSPORTS,
    NETWORK_TRANSPORTS_SDK_MAPPING,
)
from utils.errors import UNKNOWN_TOOL, ToolError

# Configure logging
logging.basicConfig(
    level=getattr(logging, DEFAULT_LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(MCP_SERVER_NAME)


class MongoMCPServer(FastMCP):
    """FastMCP server whose tool catalog and calls are served by a ToolRegistry."""

    def __init__(self, name: str, tool_registry: ToolRegistry, **kwargs):
        super().__init__(name, **kwargs)
        self.tool_registry = tool_registry
        # Replace the decorator-based call handler so unknown tools surface as
        # protocol errors instead of tool results.
        self._mcp_server.request_handlers[CallToolRequest] = self._handle_call_tool

    async def list_tools(self) -> list[MCPTool]:
        """List the registered tools in catalog order."""
        return [
            MCPTool(
                name=entry["name"],
                description=entry["description"],
                inputSchema=entry["inputSchema"],
            )
            for entry in self.tool_registry.list_catalog()
        ]

    async def run_tool(self, name: str, arguments: dict) -> dict:
        """Run a tool against the lifespan context and return its envelope."""
        app = get_app_context(self.get_context())
        try:
            return await self.tool_registry.call(name, arguments, app)
        except ToolError as e:
            if e.kind == UNKNOWN_TOOL:
                raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=e.message)) from e
            raise

    async def call_tool(self, name: str, arguments: dict) -> list[TextContent]:
        envelope = await self.run_tool(name, arguments)
        return [TextContent(type="text", text=json.dumps(envelope, indent=2))]

    async def _handle_call_tool(self, request: CallToolRequest) -> ServerResult:
        envelope = await self.run_tool(request.params.name, request.params.arguments or {})
        return ServerResult(
            CallToolResult(
                content=[TextContent(type="text", text=json.dumps(envelope, indent=2))],
                isError="error" in envelope,
            )
        )


@asynccontextmanager
async def app_lifespan(
    server: FastMCP, *, settings: Settings, tools: ToolRegistry
) -> AsyncIterator[AppContext]:
    """Discover schemas, open the MongoDB client and build the per-process context."""
    # Schemas are loaded before any call is accepted and never reloaded
    registry = SchemaRegistry.discover(settings.schema_path)

    client = connect_to_mongodb(settings.connection_string, settings.server_selection_timeout_ms)
    try:
        database = get_database(client, settings.connection_string, settings.database_name)
        app_context = AppContext(
            settings=settings,
            client=client,
            database=database,
            registry=registry,
            executor=DocumentExecutor(database, registry, read_only=settings.read_only_mode),
            tools=tools,
        )
        yield app_context
    except Exception as e:
        logger.error(f"Error in app lifespan: {e}")
        raise
    finally:
        logger.info("Closing MCP server")
        await client.close()


@click.command()
@click.option(
    "--connection-string",
    envvar="MONGODB_URI",
    default=DEFAULT_CONNECTION_STRING,
    callback=validate_connection_string,
    help="MongoDB connection string (mongodb:// or mongodb+srv://)",
)
@click.option(
    "--database",
    envvar="MONGODB_DATABASE",
    default=None,
    help="Database to use. Defaults to the database in the connection string, else mcp-database",
)
@click.option(
    "--schema-path",
    envvar="SCHEMA_PATH",
    default=None,
    help="Directory of JSON/YAML schema files. Collections without a schema use the generic path.",
)
@click.option(
    "--read-only-mode",
    envvar="MONGO_MCP_READ_ONLY_MODE",
    type=bool,
    default=DEFAULT_READ_ONLY_MODE,
    help="Enable read-only mode. When True, tools that modify data or indexes are not registered.",
)
@click.option(
    "--disabled-tools",
    envvar="MONGO_MCP_DISABLED_TOOLS",
    default=None,
    help="Tools to disable: a comma-separated list, or a file with one tool name per line",
)
@click.option(
    "--server-selection-timeout-ms",
    envvar="MONGO_MCP_SERVER_SELECTION_TIMEOUT_MS",
    type=click.IntRange(min=1),
    default=DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    help="How long to wait for a MongoDB server to become available (default: 5000)",
)
@click.option(
    "--transport",
    envvar="MONGO_MCP_TRANSPORT",
    type=click.Choice(ALLOWED_TRANSPORTS),
    default=DEFAULT_TRANSPORT,
    help="Transport mode for the server (stdio, http or sse). Default is stdio",
)
@click.option(
    "--host",
    envvar="MONGO_MCP_HOST",
    default=DEFAULT_HOST,
    help="Host to run the server on (default: 127.0.0.1)",
)
@click.option(
    "--port",
    envvar="MONGO_MCP_PORT",
    type=int,
    default=DEFAULT_PORT,
    help="Port to run the server on (default: 8000)",
)
@click.option(
    "--log-level",
    envvar="MONGO_MCP_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=DEFAULT_LOG_LEVEL,
    help="Logging level (default: INFO)",
)
@click.version_option(package_name="mongodb-mcp-server")
def main(
    connection_string,
    database,
    schema_path,
    read_only_mode,
    disabled_tools,
    server_selection_timeout_ms,
    transport,
    host,
    port,
    log_level,
):
    """MongoDB MCP Server"""
    logging.getLogger().setLevel(log_level.upper())

    settings = Settings(
        connection_string=connection_string,
        database_name=database,
        schema_path=resolve_schema_path(schema_path),
        read_only_mode=read_only_mode,
        disabled_tools=frozenset(parse_disabled_tools(disabled_tools, ALL_TOOL_NAMES)),
        server_selection_timeout_ms=server_selection_timeout_ms,
        transport=transport,
        host=host,
        port=port,
        log_level=log_level.upper(),
    )

    tools = build_tool_registry(settings.read_only_mode, settings.disabled_tools)

    logger.info(f"Starting {MCP_SERVER_NAME}")
    logger.info(f"MongoDB: {redact_connection_string(settings.connection_string)}")
    logger.info(f"Schemas: {settings.schema_path or 'none (schemaless)'}")
    if settings.read_only_mode:
        logger.info("Read-only mode enabled, write tools are not registered")
    logger.info(f"Registered tools: {', '.join(tools.names())}")

    # Map user-friendly transport names to SDK transport names
    sdk_transport = NETWORK_TRANSPORTS_SDK_MAPPING.get(transport, transport)

    # If the transport is network based, we need to pass the host and port to the MCP server
    config = (
        {
            "host": host,
            "port": port,
        }
        if transport in NETWORK_TRANSPORTS
        else {}
    )

    mcp = MongoMCPServer(
        MCP_SERVER_NAME,
        tool_registry=tools,
        lifespan=partial(app_lifespan, settings=settings, tools=tools),
        **config,
    )

    # Run the server
    mcp.run(transport=sdk_transport)  # type: ignore


if __name__ == "__main__":
    main()
