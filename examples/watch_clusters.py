"""
WebSocket client for the coordinator: prints worker-list updates and,
optionally, uploads a points file and prints the obtuse triangles found.

    python examples/watch_clusters.py [points.json] [ws://localhost:3000/ws]
"""

import asyncio
import json
import sys
from typing import List, Optional

import aiohttp


class ClusterWatcher:
    def __init__(self, ws_url: str = "ws://localhost:3000/ws"):
        self.ws_url = ws_url
        self.updates: List[list] = []

    async def _events(self, ws: aiohttp.ClientWebSocketResponse):
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield json.loads(msg.data)
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

    async def run(self, json_content: Optional[str] = None, clusters: Optional[list] = None,
                  max_updates: Optional[int] = None) -> Optional[dict]:
        """Listen for ``scanner`` events; return the upload result if one was sent."""
        async with aiohttp.ClientSession() as session:
            async with session.ws_connect(self.ws_url) as ws:
                print(f"Connected to {self.ws_url}")

                if clusters is not None:
                    await ws.send_json({"event": "setClusters", "data": {"clusters": clusters}})
                if json_content is not None:
                    await ws.send_json({"event": "uploadJson", "data": {"jsonContent": json_content}})

                async for event in self._events(ws):
                    name, data = event.get("event"), event.get("data")
                    if name == "scanner":
                        self.updates.append(data)
                        workers = [f"{w['ip']}:{w['port']}" for w in data]
                        print(f"Received workers: {workers}")
                        if max_updates is not None and len(self.updates) >= max_updates:
                            return None
                    elif name == "uploadResult":
                        print(f"Received upload result: {len(data['data'])} obtuse triangle(s)")
                        return data
                    else:
                        print(f"Server response: {data}")
        return None


async def main():
    json_content = None
    if len(sys.argv) > 1:
        with open(sys.argv[1], encoding="utf-8") as f:
            json_content = f.read()
    ws_url = sys.argv[2] if len(sys.argv) > 2 else "ws://localhost:3000/ws"

    watcher = ClusterWatcher(ws_url)
    try:
        await watcher.run(json_content)
    except aiohttp.ClientError as e:
        print(f"Connection error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
