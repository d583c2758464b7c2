from __future__ import annotations

import socket
import threading

from holepunch.server import AwaitingFirst, AwaitingSecond, RendezvousServer, pair
from holepunch.wire import SENTINEL, Registration

A = Registration("10.0.0.1", 1111)
B = Registration("10.0.0.2", 2222)
C = Registration("10.0.0.3", 3333)
D = Registration("10.0.0.4", 4444)


def test_first_gets_sentinel_second_gets_first():
    reply_a, state = pair(AwaitingFirst(), A)
    assert reply_a == SENTINEL
    assert state == AwaitingSecond(A)

    reply_b, state = pair(state, B)
    assert reply_b == A
    assert state == AwaitingFirst()


def test_pairs_in_arrival_order():
    state = AwaitingFirst()
    replies = []
    for sender in (A, B, C, D):
        reply, state = pair(state, sender)
        replies.append(reply)
    assert replies == [SENTINEL, A, SENTINEL, C]


def test_even_number_of_registrations_leaves_slot_empty():
    state = AwaitingFirst()
    for k in range(1, 6):
        for i in range(2):
            _, state = pair(state, Registration(f"10.0.{k}.{i}", 1000 + i))
        assert state == AwaitingFirst()


def test_at_most_one_pending():
    _, state = pair(AwaitingFirst(), A)
    reply, state = pair(state, B)
    # a third arrival is matched against nothing, never queued behind A
    reply_c, state = pair(state, C)
    assert reply_c == SENTINEL
    assert state == AwaitingSecond(C)


def test_server_replies_byte_exact_over_loopback():
    server = RendezvousServer.bind(0, host="127.0.0.1")
    port = server.address[1]
    t = threading.Thread(target=server.serve_forever, kwargs={"max_datagrams": 2}, daemon=True)
    t.start()

    first = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    second = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    first.bind(("127.0.0.1", 0))
    first.settimeout(5.0)
    second.settimeout(5.0)
    try:
        first.sendto(b"anything", ("127.0.0.1", port))
        reply_first, _ = first.recvfrom(64)

        second.sendto(b"", ("127.0.0.1", port))
        reply_second, _ = second.recvfrom(64)
    finally:
        t.join(timeout=5.0)
        first_addr = first.getsockname()
        first.close()
        second.close()
        server.close()

    assert not t.is_alive()
    assert reply_first == b"\x00" * 6
    assert reply_second == Registration(*first_addr).to_bytes()
    assert server.registrations == 2
    assert server.pairs == 1
    assert server.state == AwaitingFirst()
