import logging
from urllib.parse import unquote, urlsplit, urlunsplit

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from .constants import DEFAULT_DATABASE_NAME, DEFAULT_SERVER_SELECTION_TIMEOUT_MS, MCP_SERVER_NAME

logger = logging.getLogger(f"{MCP_SERVER_NAME}.utils.connection")


def redact_connection_string(connection_string: str) -> str:
    """Return the connection string with any password replaced by ``****``."""
    parts = urlsplit(connection_string)
    if "@" not in parts.netloc:
        return connection_string
    credentials, hosts = parts.netloc.rsplit("@", 1)
    if ":" not in credentials:
        return connection_string
    username = credentials.split(":", 1)[0]
    return urlunsplit(parts._replace(netloc=f"{username}:****@{hosts}"))


def database_name_from_uri(connection_string: str) -> str | None:
    """Return the default database named in the connection string path, if any."""
    name = unquote(urlsplit(connection_string).path.lstrip("/"))
    return name or None


def connect_to_mongodb(
    connection_string: str,
    server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
) -> AsyncMongoClient:
    """Create the asyncio MongoDB client.

    The client connects lazily; the first operation (or ``ping``) surfaces
    connectivity problems.
    """
    try:
        logger.info(f"Connecting to MongoDB: {redact_connection_string(connection_string)}")
        client = AsyncMongoClient(
            connection_string,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            tz_aware=True,
        )
        return client
    except Exception as e:
        logger.error(f"Failed to create MongoDB client: {e}")
        raise


def get_database(
    client: AsyncMongoClient, connection_string: str, database_name: str | None = None
) -> AsyncDatabase:
    """Select the database named explicitly, else the one in the URI, else the default."""
    name = database_name or database_name_from_uri(connection_string) or DEFAULT_DATABASE_NAME
    logger.info(f"Using database: {name}")
    return client[name]
