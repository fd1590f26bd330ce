from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from contextlib import asynccontextmanager
import contextlib
from pydantic import ValidationError
import asyncio
import json
import logging
import uvicorn
from typing import List, Optional

from coordinator.service import ClusterService
from shared.config import Settings
from shared.logging_config import setup_logging
from shared.models import ClusterOverride, PointSetSubmission, RunResult, WorkerAddress

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = getattr(app.state, "service", None)
    if service is None:
        service = ClusterService(Settings.from_env())
        app.state.service = service
    await service.start()
    yield
    await service.stop()


app = FastAPI(title="Obtuse Triangle Cluster Coordinator", lifespan=lifespan)


def _service() -> ClusterService:
    return app.state.service


def _upload_response(result: RunResult) -> dict:
    return {
        "message": "JSON file processed successfully",
        "data": [t.model_dump(mode="json") for t in result.triangles],
        "report": result.report.model_dump(mode="json"),
    }


@app.get("/health")
async def health_check():
    service = _service()
    return {
        "status": "healthy",
        "discovery": "running" if service.running else "stopped",
        "workers": len(service.list_workers()),
    }


@app.get("/clusters/available")
async def get_available_clusters(refresh: bool = False) -> List[WorkerAddress]:
    service = _service()
    if refresh and not service.registry.has_override:
        await service.refresh()
    return service.list_workers()


@app.put("/clusters")
async def set_clusters(override: ClusterOverride):
    snapshot = _service().set_clusters(override.clusters)
    return {
        "message": "Clusters updated successfully",
        "source": snapshot.source.value,
        "clusters": list(snapshot.workers),
    }


@app.post("/tasks/submit")
async def submit_points(submission: PointSetSubmission):
    result = await _service().submit_points(submission.points)
    return _upload_response(result)


@app.get("/stats")
async def get_stats():
    service = _service()
    snapshot = service.registry.snapshot
    return {
        "total_workers": len(snapshot.workers),
        "source": snapshot.source.value,
        "last_refreshed": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
        "runs_completed": service.runs_completed,
        "tasks_failed": service.tasks_failed,
    }


async def _push_snapshots(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        snapshot = await queue.get()
        try:
            await websocket.send_json({
                "event": "scanner",
                "data": [w.model_dump() for w in snapshot.workers],
            })
        except (WebSocketDisconnect, RuntimeError):
            # Client went away between snapshots
            return


async def _handle_event(websocket: WebSocket, message: dict):
    event = message.get("event")
    data = message.get("data") or {}

    if event == "uploadJson":
        try:
            submission = PointSetSubmission.model_validate(json.loads(data["jsonContent"]))
        except (KeyError, TypeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid uploadJson payload: {e}")
            await websocket.send_json({"event": "response", "data": {"message": "Invalid JSON content"}})
            return
        result = await _service().submit_points(submission.points)
        await websocket.send_json({"event": "uploadResult", "data": _upload_response(result)})

    elif event == "setClusters":
        try:
            override = ClusterOverride.model_validate(data)
        except ValidationError:
            await websocket.send_json({"event": "response", "data": {"message": "Invalid cluster data"}})
            return
        _service().set_clusters(override.clusters)
        await websocket.send_json({"event": "response", "data": {"message": "Clusters updated successfully"}})

    else:
        await websocket.send_json({"event": "response", "data": {"message": f"Unknown event: {event}"}})


@app.websocket("/ws")
async def cluster_events(websocket: WebSocket):
    await websocket.accept()
    service = _service()
    queue = service.subscribe()
    pusher = asyncio.create_task(_push_snapshots(websocket, queue))
    logger.info("Client connected")

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except json.JSONDecodeError:
                await websocket.send_json({"event": "response", "data": {"message": "Invalid message"}})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "response", "data": {"message": "Invalid message"}})
                continue
            await _handle_event(websocket, message)
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        pusher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pusher
        service.unsubscribe(queue)


def run(settings: Optional[Settings] = None):
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    app.state.service = ClusterService(settings)
    uvicorn.run(app, host="0.0.0.0", port=settings.http_port)


if __name__ == "__main__":
    run()
