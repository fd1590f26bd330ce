import asyncio
import logging
import random
import uuid
from typing import List, Optional, Sequence

from coordinator.partitioner import create_triangle_tasks
from coordinator.udp import request_reply
from shared.geometry import evaluate_tasks
from shared.models import (
    Point3D, RunMode, RunReport, RunResult, Triangle, TriangleProperties,
    WorkerAddress
)
from shared.protocol import ProtocolError, encode_request, parse_response

logger = logging.getLogger(__name__)


class Dispatcher:
    """Places each triangle task on a random worker and gathers obtuse results.

    A task that times out or fails contributes nothing; with ``retries`` > 0 it
    is re-sent to another randomly chosen worker before being given up.
    """

    def __init__(self, timeout: float = 2.0, retries: int = 0, concurrency: int = 1,
                 rng: Optional[random.Random] = None):
        self.timeout = timeout
        self.retries = retries
        self.concurrency = concurrency
        self.rng = rng or random.Random()

    async def distribute(self, points: Sequence[Point3D],
                         workers: Sequence[WorkerAddress]) -> RunResult:
        tasks = create_triangle_tasks(points)

        if not workers:
            logger.warning("No available workers for task distribution, processing locally.")
            return await self.process_locally(tasks)

        return await self.process_remotely(tasks, list(workers))

    async def process_locally(self, tasks: List[Triangle]) -> RunResult:
        results = await asyncio.to_thread(evaluate_tasks, tasks)
        return RunResult(
            triangles=results,
            report=RunReport(
                mode=RunMode.LOCAL,
                tasks_total=len(tasks),
                tasks_succeeded=len(tasks),
            ),
        )

    async def process_remotely(self, tasks: List[Triangle],
                               workers: List[WorkerAddress]) -> RunResult:
        report = RunReport(mode=RunMode.REMOTE, tasks_total=len(tasks))
        results: List[TriangleProperties] = []
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(task):
            async with semaphore:
                return await self.dispatch_task(task, workers, report)

        # Scheduled in task order so a concurrency of 1 dispatches sequentially
        pending = [asyncio.ensure_future(run(task)) for task in tasks]
        try:
            for finished in asyncio.as_completed(pending):
                task_results = await finished
                if task_results is None:
                    report.tasks_failed += 1
                else:
                    report.tasks_succeeded += 1
                    results.extend(task_results)
        finally:
            for future in pending:
                future.cancel()

        if report.tasks_failed:
            logger.warning(f"{report.tasks_failed} of {report.tasks_total} task(s) failed")
        return RunResult(triangles=results, report=report)

    async def dispatch_task(self, task: Triangle, workers: List[WorkerAddress],
                            report: RunReport) -> Optional[List[TriangleProperties]]:
        """Results for one task, or None once every attempt has failed."""
        worker = self.rng.choice(workers)
        for attempt in range(self.retries + 1):
            if attempt:
                report.retries += 1
                worker = self._pick_other(workers, worker)
                logger.info(f"Retrying task on {worker} (attempt {attempt + 1})")

            task_results = await self.send_task(worker, task)
            if task_results is not None:
                return task_results
        return None

    def _pick_other(self, workers: List[WorkerAddress], previous: WorkerAddress) -> WorkerAddress:
        others = [worker for worker in workers if worker != previous]
        return self.rng.choice(others or workers)

    async def send_task(self, worker: WorkerAddress,
                        task: Triangle) -> Optional[List[TriangleProperties]]:
        request_id = uuid.uuid4().hex
        payload = encode_request([task], request_id)

        def match(data: bytes):
            reply = parse_response(data)
            if reply.request_id is not None and reply.request_id != request_id:
                logger.debug(f"Ignoring stale reply {reply.request_id} from {worker}")
                return None
            return reply.results

        logger.debug(f"Sending task {request_id} to {worker}")
        try:
            return await request_reply(worker.ip, worker.port, payload, match, self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout waiting for response from {worker}")
        except ProtocolError as e:
            logger.warning(f"Invalid response from {worker}: {e}")
        except OSError as e:
            logger.error(f"Error processing task for {worker}: {e}")
        return None
