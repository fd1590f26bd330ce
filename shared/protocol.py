"""
UDP wire protocol between the coordinator and worker nodes.

Text payloads:

* ``ping`` -> ``pong``
* a JSON array of tasks (each a 3-array of ``{x, y, z}``) -> a JSON array of
  obtuse triangle properties
* ``{"id": token, "tasks": [...]}`` -> ``{"id": token, "results": [...]}``

The enveloped form carries a correlation token so a reply can be matched to the
request that produced it. Anything else is a ``ProtocolError``.
"""

import json
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from shared.models import Point3D, Triangle, TriangleProperties

PING = "ping"
PONG = "pong"

_tasks_adapter = TypeAdapter(List[Tuple[Point3D, Point3D, Point3D]])
_results_adapter = TypeAdapter(List[TriangleProperties])


class ProtocolError(ValueError):
    pass


class TaskBatch(BaseModel):
    request_id: Optional[str] = None
    tasks: List[Triangle]


class TaskReply(BaseModel):
    request_id: Optional[str] = None
    results: List[TriangleProperties]


def _decode_json(data: bytes):
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON payload: {e}") from e


def _unwrap(payload, body_key: str):
    """Split an enveloped payload into (token, body); bare arrays have no token."""
    if isinstance(payload, list):
        return None, payload
    if isinstance(payload, dict):
        request_id = payload.get("id")
        if not isinstance(request_id, str) or body_key not in payload:
            raise ProtocolError(f"Envelope needs a string 'id' and '{body_key}'")
        return request_id, payload[body_key]
    raise ProtocolError(f"Unexpected payload type: {type(payload).__name__}")


def parse_request(data: bytes) -> Union[str, TaskBatch]:
    """Parse an inbound worker datagram into ``PING`` or a ``TaskBatch``."""
    try:
        if data.decode("utf-8").strip() == PING:
            return PING
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Payload is not UTF-8: {e}") from e

    request_id, body = _unwrap(_decode_json(data), "tasks")
    try:
        tasks = _tasks_adapter.validate_python(body)
    except ValidationError as e:
        raise ProtocolError(f"Invalid task format: {e.error_count()} error(s)") from e

    return TaskBatch(request_id=request_id, tasks=tasks)


def parse_response(data: bytes) -> TaskReply:
    request_id, body = _unwrap(_decode_json(data), "results")
    try:
        results = _results_adapter.validate_python(body)
    except ValidationError as e:
        raise ProtocolError(f"Invalid result format: {e.error_count()} error(s)") from e

    return TaskReply(request_id=request_id, results=results)


def is_pong(data: bytes) -> bool:
    return data.decode("utf-8", errors="replace").strip() == PONG


def encode_request(tasks: Sequence[Triangle], request_id: Optional[str] = None) -> bytes:
    body = [[point.model_dump() for point in task] for task in tasks]
    payload = body if request_id is None else {"id": request_id, "tasks": body}
    return json.dumps(payload).encode("utf-8")


def encode_response(
    results: Sequence[TriangleProperties], request_id: Optional[str] = None
) -> bytes:
    body = _results_adapter.dump_python(list(results), mode="json")
    payload = body if request_id is None else {"id": request_id, "results": body}
    return json.dumps(payload).encode("utf-8")
