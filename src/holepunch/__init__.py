"""UDP NAT hole punching.

A rendezvous server pairs clients two at a time in arrival order and tells the
second of each pair where the first one is; the two clients then ping-pong a
round counter directly over the punched path.
- `wire`: the two fixed-size datagram formats
- `server`: explicit pairing state machine + blocking server loop
- `client`: role selection and the alternating exchange
"""

__all__ = []
