import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from coordinator.udp import request_reply
from shared.models import ScanRange, WorkerAddress
from shared.protocol import PING, ProtocolError, is_pong

logger = logging.getLogger(__name__)


def candidates(ranges: Iterable[ScanRange], ports: Sequence[int]) -> List[Tuple[str, int]]:
    return [
        (ip, port)
        for scan_range in ranges
        for ip in scan_range.addresses()
        for port in ports
    ]


def _match_pong(data: bytes):
    return True if is_pong(data) else None


class DiscoveryEngine:
    """Finds live workers by sending ``ping`` to every candidate address.

    A probe that errors or times out just means "not present"; a scan never
    fails because one address is unreachable.
    """

    def __init__(self, timeout: float = 2.0, concurrency: int = 512):
        self.timeout = timeout
        self.concurrency = concurrency

    async def probe(self, ip: str, port: int) -> Optional[WorkerAddress]:
        try:
            await request_reply(ip, port, PING.encode("utf-8"), _match_pong, self.timeout)
        except asyncio.TimeoutError:
            return None
        except (OSError, ProtocolError) as e:
            logger.debug(f"Probe {ip}:{port} failed: {e}")
            return None
        return WorkerAddress(ip=ip, port=port)

    async def scan_candidates(self, pairs: Iterable[Tuple[str, int]]) -> List[WorkerAddress]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded_probe(ip, port):
            async with semaphore:
                return await self.probe(ip, port)

        results = await asyncio.gather(*(bounded_probe(ip, port) for ip, port in pairs))
        return [worker for worker in results if worker is not None]

    async def scan(self, ranges: Iterable[ScanRange], ports: Sequence[int]) -> List[WorkerAddress]:
        pairs = candidates(ranges, ports)
        workers = await self.scan_candidates(pairs)
        logger.info(f"Scanned {len(pairs)} candidate(s), found {len(workers)} worker(s)")
        return workers
