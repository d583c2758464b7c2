from __future__ import annotations

REGISTRATION_FORMAT = "!IH"  # address, port
COUNTER_FORMAT = "!I"  # round number

REGISTRATION_SIZE = 6
COUNTER_SIZE = 4
RECV_BUFSIZE = 65535

U32_MAX = 0xFFFFFFFF
MIN_PORT = 1
MAX_PORT = 65535

ANY_HOST = "0.0.0.0"
LOOPBACK_HOST = "127.0.0.1"

DEFAULT_LISTENER_EXTRA = 0
DEFAULT_INITIATOR_EXTRA = 1
DEFAULT_DEMO_PASSES = 3
DEFAULT_LOG_LEVEL = "WARNING"

# process exit codes
EXIT_OK = 0
EXIT_USAGE = 1
EXIT_RESOLUTION = 2
EXIT_SOCKET = 3
EXIT_BIND = 4
EXIT_SEND = 5
EXIT_RECV = 6
EXIT_PROTOCOL_SIZE = 7
EXIT_TIMEOUT = 8
