import asyncio
import math

import pytest
import pytest_asyncio

from shared.models import WorkerAddress
from tests.helpers import P
from worker.node import WorkerNode


@pytest.fixture
def four_points():
    # A, B, C collinear; only B-C-D is obtuse (about 99.5 degrees at B)
    return [P(0, 0), P(1, 0), P(2, 0), P(0.5, 3)]


@pytest.fixture
def isosceles_obtuse():
    # Sides AB = BC = 1, CA = 1.9
    h = math.sqrt(1 - 0.95 ** 2)
    return P(-0.95, 0), P(0, h), P(0.95, 0)


@pytest_asyncio.fixture
async def worker_node():
    node = WorkerNode("127.0.0.1", 0)
    await node.start()
    yield node
    await node.stop()


@pytest_asyncio.fixture
async def worker_address(worker_node):
    host, port = worker_node.address
    return WorkerAddress(ip=host, port=port)


@pytest_asyncio.fixture
async def black_hole():
    """A bound UDP endpoint that swallows every datagram."""
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        asyncio.DatagramProtocol, local_addr=("127.0.0.1", 0)
    )
    host, port = transport.get_extra_info("sockname")[:2]
    yield WorkerAddress(ip=host, port=port)
    transport.close()
