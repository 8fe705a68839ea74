"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
These are protocol constraints and implementation details.

For configurable values, see models.py (CacheConfig, LoggingConfig).
"""

# =============================================================================
# Protocol
# =============================================================================

PROTOCOL_VERSION = "2024-11-05"
"""MCP protocol version announced to the wrapped server during the handshake."""

PROXY_NAME = "mcp-cache"
"""Name announced as clientInfo to the wrapped server and as serverInfo to the client."""

MCP_SDK_LIMIT_BYTES = 900_000
"""Absolute ceiling for inline responses. Stays under the 1 MB SDK message limit."""

BYTES_PER_TOKEN = 4
"""Rough token to byte conversion used by the size gate."""

# =============================================================================
# Transport
# =============================================================================

REQUEST_TIMEOUT_SEC = 30.0
"""Default deadline for a correlated response from the wrapped server."""

STOP_GRACE_SEC = 2.0
"""Time the wrapped server gets to exit after terminate() before it is killed."""

READ_CHUNK_BYTES = 64 * 1024
"""Bytes read from the child's stdout per read call."""

# =============================================================================
# Store
# =============================================================================

RESPONSE_ID_PREFIX = "resp_"
"""Prefix of every cached response id."""

RESPONSE_ID_RANDOM_BYTES = 6
"""Random bytes per id (48 bits, rendered as 12 hex chars)."""

PAYLOAD_SUFFIX = ".json"
METADATA_SUFFIX = ".meta.json"

CLEANUP_INTERVAL_SEC = 300.0
"""Default interval of the proactive expiry sweep (5 minutes)."""

# =============================================================================
# Query
# =============================================================================

QUERY_LIMIT_DEFAULT = 100
"""Default page size for query_response."""

QUERY_CONTEXT_LINES_DEFAULT = 2
"""Default lines of context before/after each text or regex match."""

QUERY_RESULT_MAX_CHARS = 800_000
"""Serialized query results longer than this are truncated before delivery."""
