"""
MongoDB MCP Utilities

This module contains utility functions for configuration, connection, context management and errors.
"""

# Configuration utilities
from .config import (
    Settings,
    parse_disabled_tools,
    resolve_schema_path,
    validate_connection_string,
)

# Connection utilities
from .connection import (
    connect_to_mongodb,
    database_name_from_uri,
    get_database,
    redact_connection_string,
)

# Context utilities
from .context import (
    AppContext,
    get_app_context,
)

# Constants
from .constants import (
    MCP_SERVER_NAME,
    DEFAULT_READ_ONLY_MODE,
    DEFAULT_TRANSPORT,
    DEFAULT_LOG_LEVEL,
)

# Errors
from .errors import ToolError, error_payload

# Note: Individual modules create their own hierarchical loggers using:
# logger = logging.getLogger(f"{MCP_SERVER_NAME}.module.name")

__all__ = [
    # Config
    "Settings",
    "parse_disabled_tools",
    "resolve_schema_path",
    "validate_connection_string",
    # Connection
    "connect_to_mongodb",
    "database_name_from_uri",
    "get_database",
    "redact_connection_string",
    # Context
    "AppContext",
    "get_app_context",
    # Constants
    "MCP_SERVER_NAME",
    "DEFAULT_READ_ONLY_MODE",
    "DEFAULT_TRANSPORT",
    "DEFAULT_LOG_LEVEL",
    # Errors
    "ToolError",
    "error_payload",
]
