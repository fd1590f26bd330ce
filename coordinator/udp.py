import asyncio
from typing import Any, Callable, Optional

from shared.protocol import ProtocolError

# Returns the parsed reply, or None to keep waiting for another datagram.
ReplyMatcher = Callable[[bytes], Optional[Any]]


class _ReplyProtocol(asyncio.DatagramProtocol):
    def __init__(self, matcher: ReplyMatcher):
        self.matcher = matcher
        self.reply: asyncio.Future = asyncio.get_running_loop().create_future()

    def datagram_received(self, data, addr):
        if self.reply.done():
            return
        try:
            value = self.matcher(data)
        except ProtocolError as e:
            self.reply.set_exception(e)
            return
        if value is not None:
            self.reply.set_result(value)

    def error_received(self, exc):
        if not self.reply.done():
            self.reply.set_exception(exc)

    def connection_lost(self, exc):
        if not self.reply.done():
            self.reply.set_exception(exc or ConnectionError("Socket closed before reply"))


async def _exchange(ip: str, port: int, payload: bytes, matcher: ReplyMatcher):
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: _ReplyProtocol(matcher),
        remote_addr=(ip, port),
    )
    try:
        transport.sendto(payload)
        return await protocol.reply
    finally:
        transport.close()


async def request_reply(ip: str, port: int, payload: bytes,
                        matcher: ReplyMatcher, timeout: float):
    """Send one datagram to (ip, port) and wait for the first matching reply.

    Each call owns an ephemeral socket connected to the peer, so only datagrams
    from that exact address reach ``matcher``. Raises ``asyncio.TimeoutError``,
    ``OSError`` or ``ProtocolError``; the socket is closed in every case.
    """
    return await asyncio.wait_for(_exchange(ip, port, payload, matcher), timeout)
