"""Configuration constants for homefs.

This module provides a single source of truth for default configuration values
and tool limits. Separated from schema.py to avoid circular imports.
"""

# Config file name, stored directly in the home directory
CONFIG_FILE_NAME = ".homefs.json"
CONFIG_PATH_ENV = "HOMEFS_CONFIG"

# Default server settings
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8765
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_REQUEST_BYTES = 2 * 1024 * 1024
DEFAULT_RATE_LIMIT_REQUESTS = 120
DEFAULT_RATE_LIMIT_WINDOW = 60

# Default sandbox settings
DEFAULT_BASE_DIR = "~"

# MCP protocol
DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "homefs"

# fs_list
LIST_DEFAULT_ITEMS = 200
LIST_MAX_ITEMS = 5000
LIST_FALLBACK_ITEMS = 50

# fs_read
READ_DEFAULT_BYTES = 65536
READ_MAX_BYTES = 1048576
BINARY_PLACEHOLDER = "[Binary file - content omitted]"

# fs_tail
TAIL_DEFAULT_LINES = 200
TAIL_MAX_LINES = 2000
TAIL_CHUNK_SIZE = 4096

# fs_search
SEARCH_DEFAULT_RESULTS = 50
SEARCH_MAX_RESULTS = 500
SEARCH_FALLBACK_RESULTS = 10
SEARCH_SNIPPET_CHARS = 200
BINARY_SNIFF_BYTES = 8192

# fs_read_lines
READ_LINES_DEFAULT_SPAN = 100
READ_LINES_MAX_CONTEXT = 50

# fs_diff
DIFF_DEFAULT_CONTEXT = 3
DIFF_MAX_CONTEXT = 20
DIFF_LOOKAHEAD = 50
