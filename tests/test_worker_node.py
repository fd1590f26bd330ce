import asyncio
import json

import pytest

from coordinator.udp import request_reply
from shared.protocol import encode_request, parse_response
from tests.helpers import P
from worker.node import TaskProcessorProtocol

ADDR = ("10.0.0.2", 50000)
OBTUSE = (P(1, 0), P(2, 0), P(0.5, 3))
ACUTE = (P(0, 0), P(1, 0), P(0.5, 3))
FLAT = (P(0, 0), P(1, 0), P(2, 0))


def wide_obtuse(scale):
    return P(-0.95 * scale, 0), P(0, 0.3 * scale), P(0.95 * scale, 0)


class TestTaskProcessorProtocol:

    @pytest.fixture
    def protocol(self):
        return TaskProcessorProtocol()

    def test_ping_gets_pong(self, protocol):
        assert protocol.handle(b"ping", ADDR) == b"pong"

    def test_batch_returns_only_obtuse(self, protocol):
        reply = protocol.handle(encode_request([OBTUSE, ACUTE, FLAT]), ADDR)
        results = json.loads(reply)

        assert isinstance(results, list)
        assert len(results) == 1
        assert results[0]["vertices"][2] == {"x": 0.5, "y": 3.0, "z": 0.0}

    def test_envelope_is_answered_in_kind(self, protocol):
        reply = parse_response(protocol.handle(encode_request([OBTUSE], "req-1"), ADDR))

        assert reply.request_id == "req-1"
        assert len(reply.results) == 1

    @pytest.mark.parametrize("payload", [b"hello", b"[[1, 2, 3]]", b'{"tasks": []}', b"\x00\xff"])
    def test_malformed_payload_gets_no_reply(self, protocol, payload):
        assert protocol.handle(payload, ADDR) is None
        assert protocol.requests_rejected == 1

    def test_keeps_serving_after_bad_payload(self, protocol):
        protocol.handle(b"garbage", ADDR)
        assert protocol.handle(b"ping", ADDR) == b"pong"
        assert protocol.requests_served == 1

    def test_huge_coordinates_are_answered(self, protocol):
        reply = parse_response(protocol.handle(encode_request([wide_obtuse(1e100)], "big"), ADDR))

        assert reply.request_id == "big"
        assert len(reply.results) == 1
        assert reply.results[0].area == pytest.approx(0.5 * 1.9e100 * 0.3e100)

    def test_area_out_of_range_gets_empty_reply(self, protocol):
        reply = protocol.handle(encode_request([wide_obtuse(1e200)]), ADDR)

        assert json.loads(reply) == []
        assert protocol.requests_rejected == 0


@pytest.mark.asyncio
async def test_node_answers_over_udp(worker_address):
    reply = await request_reply(
        worker_address.ip, worker_address.port, b"ping",
        lambda data: data, timeout=2.0,
    )
    assert reply == b"pong"


@pytest.mark.asyncio
async def test_node_ignores_garbage_then_serves(worker_node, worker_address):
    with pytest.raises(asyncio.TimeoutError):
        await request_reply(
            worker_address.ip, worker_address.port, b"not json",
            lambda data: data, timeout=0.3,
        )

    reply = await request_reply(
        worker_address.ip, worker_address.port, encode_request([OBTUSE], "abc"),
        parse_response, timeout=2.0,
    )
    assert reply.request_id == "abc"
    assert len(reply.results) == 1
    assert worker_node.protocol.requests_rejected == 1
