MCP_SERVER_NAME = "mongodb-mcp-server"

DEFAULT_CONNECTION_STRING = "mongodb://localhost:27017/mcp-database"
DEFAULT_DATABASE_NAME = "mcp-database"
ALLOWED_URI_SCHEMES = ("mongodb://", "mongodb+srv://")
DEFAULT_SERVER_SELECTION_TIMEOUT_MS = 5000

DEFAULT_READ_ONLY_MODE = False
DEFAULT_LOG_LEVEL = "INFO"

DEFAULT_TRANSPORT = "stdio"
ALLOWED_TRANSPORTS = ["stdio", "http", "sse"]
NETWORK_TRANSPORTS = ["http", "sse"]
NETWORK_TRANSPORTS_SDK_MAPPING = {
    "http": "streamable-http",
    "sse": "sse",
}
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

SCHEMA_FILE_SUFFIXES = (".json", ".yaml", ".yml")

SOFT_DELETE_FIELD = "isDeleted"
DELETED_AT_FIELD = "deletedAt"
