import logging
from dataclasses import dataclass, field
from pathlib import Path

import click

from .constants import (
    ALLOWED_URI_SCHEMES,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    DEFAULT_READ_ONLY_MODE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    DEFAULT_TRANSPORT,
    MCP_SERVER_NAME,
)

logger = logging.getLogger(f"{MCP_SERVER_NAME}.utils.config")


@dataclass(frozen=True)
class Settings:
    """Startup configuration handed to the server lifespan."""

    connection_string: str
    database_name: str | None = None
    schema_path: Path | None = None
    read_only_mode: bool = DEFAULT_READ_ONLY_MODE
    disabled_tools: frozenset[str] = field(default_factory=frozenset)
    server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL


def validate_connection_string(ctx, param, value: str | None) -> str | None:
    """Click callback rejecting URIs that are not MongoDB connection strings."""
    if value is None:
        return value
    value = value.strip()
    if not value.startswith(ALLOWED_URI_SCHEMES):
        raise click.BadParameter(
            f"must start with one of: {', '.join(ALLOWED_URI_SCHEMES)}"
        )
    return value


def resolve_schema_path(value: str | None) -> Path | None:
    """Return the schema directory as an absolute path, or None when unset."""
    if value is None or not value.strip():
        return None
    path = Path(value.strip()).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


def parse_disabled_tools(value: str | None, valid_tool_names: set[str]) -> set[str]:
    """Parse the disabled tools option.

    The value is either a path to a file listing one tool name per line
    (blank lines and ``#`` comments ignored) or a comma-separated list.
    Names that are not registered tools are dropped, so file contents are
    never echoed back beyond known tool names.
    """
    if value is None or not value.strip():
        return set()

    candidate = Path(value.strip())
    try:
        is_file = candidate.is_file()
    except OSError:
        is_file = False

    if is_file:
        names = []
        for line in candidate.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            names.append(line)
        source = "file"
    else:
        names = [name.strip() for name in value.split(",")]
        source = "list"

    disabled = {name for name in names if name in valid_tool_names}
    ignored = {name for name in names if name and name not in valid_tool_names}
    if ignored and source == "list":
        logger.warning(f"Ignoring unknown tools in disabled tools list: {sorted(ignored)}")
    elif ignored:
        logger.warning(f"Ignoring {len(ignored)} unknown entries in disabled tools file")
    return disabled
