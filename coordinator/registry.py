import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Set

from shared.models import ClusterSnapshot, ClusterSource, WorkerAddress

logger = logging.getLogger(__name__)


def _unique(workers: Iterable[WorkerAddress]):
    return tuple(dict.fromkeys(workers))


class ClusterRegistry:
    """Holds the active cluster as an immutable snapshot.

    Writers replace the whole snapshot; readers get whichever snapshot was
    current when they asked. An operator override wins over discovery until
    it is cleared with an empty list.
    """

    def __init__(self):
        self._discovered = ClusterSnapshot()
        self._override = None
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def snapshot(self) -> ClusterSnapshot:
        if self._override is not None:
            return self._override
        return self._discovered

    @property
    def discovered(self) -> ClusterSnapshot:
        return self._discovered

    @property
    def has_override(self) -> bool:
        return self._override is not None

    def active_workers(self) -> List[WorkerAddress]:
        return list(self.snapshot.workers)

    def publish_discovery(self, workers: Iterable[WorkerAddress]) -> ClusterSnapshot:
        self._discovered = ClusterSnapshot(
            workers=_unique(workers),
            source=ClusterSource.DISCOVERY,
            refreshed_at=datetime.now(timezone.utc),
        )
        self._notify()
        return self._discovered

    def set_override(self, workers: Iterable[WorkerAddress]) -> ClusterSnapshot:
        workers = _unique(workers)
        if workers:
            self._override = ClusterSnapshot(
                workers=workers,
                source=ClusterSource.OVERRIDE,
                refreshed_at=datetime.now(timezone.utc),
            )
            logger.info(f"Client-defined clusters set: {[str(w) for w in workers]}")
        else:
            self._override = None
            logger.info("Client-defined clusters cleared, using discovery")
        self._notify()
        return self.snapshot

    def subscribe(self) -> asyncio.Queue:
        queue = asyncio.Queue(maxsize=1)
        queue.put_nowait(self.snapshot)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)

    def _notify(self):
        snapshot = self.snapshot
        for queue in self._subscribers:
            # Slow subscribers only ever see the latest snapshot
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snapshot)
