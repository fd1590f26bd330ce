import asyncio
import logging
from typing import Optional, Tuple

from shared.config import Settings
from shared.geometry import evaluate_tasks
from shared.logging_config import setup_logging
from shared.protocol import PING, PONG, ProtocolError, encode_response, parse_request

logger = logging.getLogger(__name__)


class TaskProcessorProtocol(asyncio.DatagramProtocol):
    """Answers pings and evaluates task batches; malformed datagrams get no reply."""

    def __init__(self):
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.requests_served = 0
        self.requests_rejected = 0

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        logger.debug(f"Received message from {addr[0]}:{addr[1]}")
        reply = self.handle(data, addr)
        if reply is not None:
            self.transport.sendto(reply, addr)

    def handle(self, data: bytes, addr: Tuple[str, int]) -> Optional[bytes]:
        try:
            request = parse_request(data)
        except ProtocolError as e:
            self.requests_rejected += 1
            logger.warning(f"Dropping message from {addr[0]}:{addr[1]}: {e}")
            return None

        self.requests_served += 1
        if request == PING:
            logger.debug(f"Ping response sent to {addr[0]}:{addr[1]}")
            return PONG.encode("utf-8")

        results = evaluate_tasks(request.tasks)
        logger.info(
            f"Processed {len(request.tasks)} task(s) from {addr[0]}:{addr[1]}, "
            f"{len(results)} obtuse"
        )
        return encode_response(results, request.request_id)

    def error_received(self, exc):
        logger.warning(f"Socket error: {exc}")


class WorkerNode:
    def __init__(self, host: str = "0.0.0.0", port: int = 41234):
        self.host = host
        self.port = port
        self.transport: Optional[asyncio.DatagramTransport] = None
        self.protocol: Optional[TaskProcessorProtocol] = None
        self.running = False

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); differs from the configured port when it was 0."""
        if self.transport is None:
            return self.host, self.port
        return self.transport.get_extra_info("sockname")[:2]

    async def start(self):
        loop = asyncio.get_running_loop()
        self.transport, self.protocol = await loop.create_datagram_endpoint(
            TaskProcessorProtocol,
            local_addr=(self.host, self.port),
        )
        self.running = True
        host, port = self.address
        logger.info(f"Worker listening on {host}:{port}")

    async def stop(self):
        self.running = False
        if self.transport:
            self.transport.close()
            self.transport = None

    async def serve_forever(self):
        await self.start()
        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            await self.stop()


async def main():
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    node = WorkerNode(settings.worker_host, settings.worker_port)
    try:
        await node.serve_forever()
    except asyncio.CancelledError:
        logger.info("Shutting down worker...")


if __name__ == "__main__":
    asyncio.run(main())
