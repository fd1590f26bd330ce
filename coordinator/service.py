import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from coordinator.discovery import DiscoveryEngine
from coordinator.dispatcher import Dispatcher
from coordinator.ranger import local_scan_ranges
from coordinator.registry import ClusterRegistry
from shared.config import Settings
from shared.models import ClusterSnapshot, Point3D, RunResult, ScanRange, WorkerAddress

logger = logging.getLogger(__name__)


class ClusterService:
    """Keeps the active cluster fresh and runs point sets against it.

    ``start()`` launches a background rescan every ``discovery_interval``
    seconds; ``stop()`` cancels it. Rescans are skipped while an operator
    override is in place.
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[ClusterRegistry] = None,
        discovery: Optional[DiscoveryEngine] = None,
        dispatcher: Optional[Dispatcher] = None,
        range_provider: Optional[Callable[[], List[ScanRange]]] = None,
    ):
        self.settings = settings
        self.registry = registry or ClusterRegistry()
        self.discovery = discovery or DiscoveryEngine(
            timeout=settings.discovery_timeout,
            concurrency=settings.discovery_concurrency,
        )
        self.dispatcher = dispatcher or Dispatcher(
            timeout=settings.dispatch_timeout,
            retries=settings.dispatch_retries,
            concurrency=settings.dispatch_concurrency,
        )
        self.range_provider = range_provider or (
            lambda: local_scan_ranges(settings.address_prefix, settings.interface_names)
        )
        self.runs_completed = 0
        self.tasks_failed = 0
        self._refresh_task: Optional[asyncio.Task] = None
        self._scan_lock = asyncio.Lock()

        if settings.clusters:
            self.registry.set_override(settings.clusters)

    @property
    def running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def start(self):
        if self.running:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Cluster discovery started, interval {self.settings.discovery_interval}s")

    async def stop(self):
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None
        logger.info("Cluster discovery stopped")

    async def _refresh_loop(self):
        while True:
            if self.registry.has_override:
                logger.debug("Skipping scan, clusters are set by client")
            else:
                try:
                    await self.refresh()
                except Exception:
                    logger.exception("Network scan failed")
            await asyncio.sleep(self.settings.discovery_interval)

    async def refresh(self) -> ClusterSnapshot:
        """Run one discovery scan now and publish the result."""
        async with self._scan_lock:
            ranges = self.range_provider()
            workers = await self.discovery.scan(ranges, self.settings.udp_ports)
            snapshot = self.registry.publish_discovery(workers)
        logger.debug(f"Found UDP workers: {[str(w) for w in snapshot.workers]}")
        return snapshot

    def list_workers(self) -> List[WorkerAddress]:
        return self.registry.active_workers()

    def subscribe(self) -> asyncio.Queue:
        return self.registry.subscribe()

    def unsubscribe(self, queue: asyncio.Queue):
        self.registry.unsubscribe(queue)

    def set_clusters(self, workers: Sequence[WorkerAddress]) -> ClusterSnapshot:
        return self.registry.set_override(workers)

    async def submit_points(self, points: Sequence[Point3D]) -> RunResult:
        if not self.registry.has_override and self.registry.discovered.refreshed_at is None:
            await self.refresh()

        workers = self.registry.active_workers()
        result = await self.dispatcher.distribute(points, workers)

        self.runs_completed += 1
        self.tasks_failed += result.report.tasks_failed
        logger.info(
            f"Run complete ({result.report.mode.value}): {len(result.triangles)} obtuse "
            f"triangle(s) from {result.report.tasks_total} task(s)"
        )
        return result
