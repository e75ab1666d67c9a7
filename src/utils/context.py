from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from .config import Settings
from .constants import MCP_SERVER_NAME

if TYPE_CHECKING:
    from dispatch import DocumentExecutor
    from schemas import SchemaRegistry
    from tools.registry import ToolRegistry

logger = logging.getLogger(f"{MCP_SERVER_NAME}.utils.context")


@dataclass
class AppContext:
    """State built once in the server lifespan and threaded into every tool call."""

    settings: Settings
    client: AsyncMongoClient
    database: AsyncDatabase
    registry: SchemaRegistry
    executor: DocumentExecutor
    tools: ToolRegistry | None = None


def get_app_context(ctx: Context) -> AppContext:
    """Return the lifespan context of the current request."""
    return ctx.request_context.lifespan_context
