import json

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from examples.watch_clusters import ClusterWatcher

WORKERS = [{"ip": "192.168.1.7", "port": 41234}]


@pytest_asyncio.fixture
async def fake_coordinator():
    received = []

    async def handler(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_json({"event": "scanner", "data": []})
        await ws.send_json({"event": "scanner", "data": WORKERS})

        async for msg in ws:
            payload = json.loads(msg.data)
            received.append(payload)
            if payload["event"] == "setClusters":
                await ws.send_json({"event": "response", "data": {"message": "Clusters updated successfully"}})
            elif payload["event"] == "uploadJson":
                await ws.send_json({"event": "uploadResult", "data": {
                    "message": "JSON file processed successfully",
                    "data": [{"vertices": [], "angles": [100, 40, 40], "area": 1.0}],
                    "report": {"mode": "remote"},
                }})
        return ws

    app = web.Application()
    app.router.add_get("/ws", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    yield str(server.make_url("/ws")), received
    await server.close()


@pytest.mark.asyncio
async def test_collects_worker_updates(fake_coordinator):
    url, _ = fake_coordinator
    watcher = ClusterWatcher(url)

    assert await watcher.run(max_updates=2) is None
    assert watcher.updates == [[], WORKERS]


@pytest.mark.asyncio
async def test_uploads_points_and_returns_result(fake_coordinator):
    url, received = fake_coordinator
    watcher = ClusterWatcher(url)
    content = json.dumps({"points": []})

    result = await watcher.run(json_content=content, clusters=WORKERS)

    assert result["message"] == "JSON file processed successfully"
    assert len(result["data"]) == 1
    assert received[0] == {"event": "setClusters", "data": {"clusters": WORKERS}}
    assert received[1] == {"event": "uploadJson", "data": {"jsonContent": content}}
