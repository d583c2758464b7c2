from __future__ import annotations

import logging
import socket
from typing import Tuple

from .constants import RECV_BUFSIZE
from .errors import ResolutionError, SocketError


def resolve_ipv4(host: str) -> str:
    """Resolve `host` to a dotted-quad IPv4 address (first getaddrinfo result)."""
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_DGRAM)
    except socket.gaierror as exc:
        raise ResolutionError(host, exc.strerror or str(exc)) from exc
    except UnicodeError as exc:
        # idna encoding rejects empty or over-long labels before any lookup
        raise ResolutionError(host, str(exc)) from exc
    if not infos:
        raise ResolutionError(host, "no IPv4 address")
    return infos[0][4][0]


class UdpEndpoint:
    """Blocking IPv4 UDP socket whose OS errors surface as `SocketError`."""

    def __init__(self, sock: socket.socket):
        self.sock = sock

    @staticmethod
    def _open() -> socket.socket:
        try:
            return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise SocketError("socket", exc) from exc

    @classmethod
    def listening(cls, host: str, port: int) -> "UdpEndpoint":
        sock = cls._open()
        try:
            sock.bind((host, port))
        except OSError as exc:
            sock.close()
            raise SocketError("bind", exc) from exc
        return cls(sock)

    @classmethod
    def ephemeral(cls) -> "UdpEndpoint":
        return cls(cls._open())

    @property
    def local_address(self) -> Tuple[str, int]:
        return self.sock.getsockname()

    def sendto(self, data: bytes, addr: Tuple[str, int]) -> None:
        try:
            self.sock.sendto(data, addr)
        except OSError as exc:
            raise SocketError("sendto", exc) from exc
        logging.debug("sent %d bytes to %s:%d", len(data), addr[0], addr[1])

    def recvfrom(self, bufsize: int = RECV_BUFSIZE) -> Tuple[bytes, Tuple[str, int]]:
        try:
            data, addr = self.sock.recvfrom(bufsize)
        except OSError as exc:
            raise SocketError("recvfrom", exc) from exc
        logging.debug("received %d bytes from %s:%d", len(data), addr[0], addr[1])
        return data, addr

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
