# =============================================================================
# Netcall -- Constants
# =============================================================================
#
# Transport defaults and wire-level values shared by HTTP and WebSocket code.
# =============================================================================

# -- Timing (seconds) --------------------------------------------------------

CONNECT_TIMEOUT = 10.0
READ_TIMEOUT = 10.0
WRITE_TIMEOUT = 10.0
WS_OPEN_TIMEOUT = 10.0
WS_CLOSE_TIMEOUT = 10.0
WS_PING_INTERVAL = 20.0
WS_ABORT_TIMEOUT = 2.0  # close handshake budget when the transport shuts down
SHUTDOWN_TIMEOUT = 5.0

# -- Content types -------------------------------------------------------------

CONTENT_TYPE_JSON = "application/json; charset=utf-8"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"
CONTENT_TYPE_MULTIPART = "multipart/form-data"
CONTENT_TYPE_TEXT = "text/plain; charset=utf-8"

# -- Compression ---------------------------------------------------------------

CONTENT_ENCODING_GZIP = "gzip"
GZIP_LEVEL = 6
GZIP_WBITS = 31  # 16 + MAX_WBITS -> gzip header and trailer

# -- Streaming -----------------------------------------------------------------

CHUNK_SIZE = 64 * 1024

# -- Messages ------------------------------------------------------------------

MAX_MESSAGE_SIZE = 1_048_576  # 1 MB

# -- WebSocket close codes -----------------------------------------------------

WS_CLOSE_NORMAL = 1000
WS_CLOSE_GOING_AWAY = 1001
WS_CLOSE_ABNORMAL = 1006
DEFAULT_CLOSE_REASON = "Normal closure"

# -- Failure messages ----------------------------------------------------------

MSG_INVALID_URL = "Invalid URL"
MSG_EMPTY_BODY = "Response body is null"
MSG_UNKNOWN_ERROR = "Unknown Error"
MSG_PARSE_FAILED = "Failed to parse response"
MSG_CALL_ABORTED = "Call aborted: transport closed"
MSG_TRANSPORT_CLOSED = "Transport closed"
