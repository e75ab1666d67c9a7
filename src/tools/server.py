"""
Tools for server operations.

This module contains tools for getting the server configuration status and testing the connection to MongoDB.
"""

import logging
from typing import Any

from dispatch.envelope import failure, success
from utils.connection import redact_connection_string
from utils.constants import MCP_SERVER_NAME
from utils.context import AppContext

from .registry import Operation

logger = logging.getLogger(f"{MCP_SERVER_NAME}.tools.server")


async def get_server_configuration_status(app: AppContext) -> dict[str, Any]:
    """Get the server status and configuration without touching the database.
    This tool can be used to verify the server is running and check configuration.
    """
    settings = app.settings

    # Don't expose credentials embedded in the connection string
    configuration = {
        "connection_string": redact_connection_string(settings.connection_string),
        "database_name": app.database.name,
        "schema_path": str(settings.schema_path) if settings.schema_path else None,
        "read_only_mode": settings.read_only_mode,
        "disabled_tools": sorted(settings.disabled_tools),
    }

    schemas = {
        "loaded": {
            descriptor.model_name: descriptor.collection_name
            for descriptor in app.registry.descriptors()
        },
        "diagnostics": [diagnostic.to_dict() for diagnostic in app.registry.diagnostics],
    }

    return success(
        None,
        {
            "server_name": MCP_SERVER_NAME,
            "status": "running",
            "configuration": configuration,
            "schemas": schemas,
            "tools": app.tools.names() if app.tools is not None else [],
        },
    )


async def test_connection(app: AppContext) -> dict[str, Any]:
    """Ping the MongoDB deployment and report whether it answered."""
    try:
        await app.client.admin.command("ping")
    except Exception as e:
        logger.error(f"MongoDB ping failed: {e}")
        return failure(e, context={"database": app.database.name})

    return success(
        None,
        {
            "status": "success",
            "database": app.database.name,
            "message": "Successfully connected to MongoDB",
        },
    )


GET_SERVER_CONFIGURATION_STATUS = Operation(
    name="getServerConfigurationStatus",
    description="Get the server status and configuration, including loaded schemas, without querying the database",
    input_schema={
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    },
    handler=get_server_configuration_status,
    read_only=True,
)

TEST_CONNECTION = Operation(
    name="testConnection",
    description="Test the connection to the MongoDB deployment",
    input_schema={
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    },
    handler=test_connection,
    read_only=True,
)
