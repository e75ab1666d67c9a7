"""
MongoDB MCP Tools

This module contains all the MCP tools for MongoDB operations.
"""

from collections.abc import Iterable

# Collection tools
from .collection import LIST_COLLECTIONS, list_collections

# Document tools
from .documents import (
    AGGREGATE,
    COUNT,
    DELETE_ONE,
    FIND,
    INSERT_ONE,
    UPDATE_ONE,
    aggregate,
    count,
    delete_one,
    find,
    insert_one,
    update_one,
)

# Index tools
from .indexes import (
    CREATE_INDEX,
    DROP_INDEX,
    LIST_INDEXES,
    create_index,
    drop_index,
    list_indexes,
)

# Registry
from .registry import Operation, ToolRegistry

# Server tools
from .server import (
    GET_SERVER_CONFIGURATION_STATUS,
    TEST_CONNECTION,
    get_server_configuration_status,
    test_connection,
)

# All tools in catalog order
ALL_TOOLS = [
    LIST_COLLECTIONS,
    FIND,
    INSERT_ONE,
    UPDATE_ONE,
    DELETE_ONE,
    COUNT,
    AGGREGATE,
    CREATE_INDEX,
    DROP_INDEX,
    LIST_INDEXES,
    GET_SERVER_CONFIGURATION_STATUS,
    TEST_CONNECTION,
]

READ_ONLY_TOOLS = [tool for tool in ALL_TOOLS if tool.read_only]
WRITE_TOOLS = [tool for tool in ALL_TOOLS if not tool.read_only]

ALL_TOOL_NAMES = {tool.name for tool in ALL_TOOLS}


def get_tools(read_only_mode: bool = False, disabled_tools: Iterable[str] = ()) -> list[Operation]:
    """Return the tools to register, in catalog order.

    Write tools are left out in read-only mode, and disabled tools are always left out.
    """
    disabled = set(disabled_tools)
    candidates = READ_ONLY_TOOLS if read_only_mode else ALL_TOOLS
    return [tool for tool in candidates if tool.name not in disabled]


def build_tool_registry(read_only_mode: bool = False, disabled_tools: Iterable[str] = ()) -> ToolRegistry:
    return ToolRegistry(get_tools(read_only_mode, disabled_tools))


__all__ = [
    # Individual tools
    "list_collections",
    "find",
    "insert_one",
    "update_one",
    "delete_one",
    "count",
    "aggregate",
    "create_index",
    "drop_index",
    "list_indexes",
    "get_server_configuration_status",
    "test_connection",
    # Registry
    "Operation",
    "ToolRegistry",
    # Convenience
    "ALL_TOOLS",
    "ALL_TOOL_NAMES",
    "READ_ONLY_TOOLS",
    "WRITE_TOOLS",
    "get_tools",
    "build_tool_registry",
]
