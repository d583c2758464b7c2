from __future__ import annotations

from .constants import (
    EXIT_BIND,
    EXIT_PROTOCOL_SIZE,
    EXIT_RECV,
    EXIT_RESOLUTION,
    EXIT_SEND,
    EXIT_SOCKET,
    EXIT_TIMEOUT,
    EXIT_USAGE,
)


class HolePunchError(Exception):
    """Base for every fatal condition; carries the process exit status."""

    exit_code = 1


class UsageError(HolePunchError):
    exit_code = EXIT_USAGE


class ResolutionError(HolePunchError):
    exit_code = EXIT_RESOLUTION

    def __init__(self, host: str, reason: str):
        super().__init__(f"unable to resolve host '{host}': {reason}")
        self.host = host


class SocketError(HolePunchError):
    """An OS-level socket failure. `operation` picks the exit status."""

    EXIT_CODES = {
        "socket": EXIT_SOCKET,
        "bind": EXIT_BIND,
        "sendto": EXIT_SEND,
        "recvfrom": EXIT_RECV,
    }

    def __init__(self, operation: str, cause: OSError):
        super().__init__(f"error on {operation}. errno {cause.errno}")
        self.operation = operation
        self.errno = cause.errno
        self.exit_code = self.EXIT_CODES.get(operation, EXIT_SOCKET)


class ProtocolSizeError(HolePunchError, ValueError):
    exit_code = EXIT_PROTOCOL_SIZE

    def __init__(self, what: str, expected: int, actual: int):
        super().__init__(f"unexpected {what} size: expected {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class LoopbackTimeout(HolePunchError):
    """A loopback run did not finish in time."""

    exit_code = EXIT_TIMEOUT
