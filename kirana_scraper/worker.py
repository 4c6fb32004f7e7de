"""Worker for executing scrape jobs from the queue."""

from __future__ import annotations

import asyncio
import logging
import signal
import uuid
from time import perf_counter

from .config import ScrapeOptions, Settings, load_settings
from .fetchers.browser_pool import BrowserPool
from .job_queue import JobQueue
from .orchestrator import Fetcher, scrape_all_sites
from .storage import ResultStore

logger = logging.getLogger(__name__)


class Worker:
    """Worker that polls the job queue and executes scrape jobs in parallel."""

    def __init__(
        self,
        queue: JobQueue,
        store: ResultStore,
        poll_interval: float = 1.0,
        stale_check_interval: float = 60.0,
        max_concurrent_jobs: int = 2,
        fetcher: Fetcher | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: Job queue to poll
            store: Where reports (and HTML snapshots) are saved
            poll_interval: Seconds between queue polls when idle
            stale_check_interval: Seconds between stale job checks
            max_concurrent_jobs: Maximum number of jobs to run in parallel
            fetcher: Page renderer; the Playwright renderer when omitted
        """
        self.queue = queue
        self.store = store
        self.poll_interval = poll_interval
        self.stale_check_interval = stale_check_interval
        self.max_concurrent_jobs = max(1, max_concurrent_jobs)
        self.fetcher = fetcher
        self.worker_id = f"worker-{uuid.uuid4().hex[:8]}"
        self._running = False
        self._running_jobs: dict[str, asyncio.Task] = {}

    async def start(self, install_signal_handlers: bool = True) -> None:
        """Start the worker loop."""
        self._running = True
        logger.info("Worker %s starting...", self.worker_id)

        if install_signal_handlers:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, self._handle_shutdown)

        stale_task = asyncio.create_task(self._stale_job_checker())

        try:
            await self._run_loop()
        finally:
            stale_task.cancel()
            try:
                await stale_task
            except asyncio.CancelledError:
                pass
            for task in self._running_jobs.values():
                task.cancel()
            await BrowserPool.shutdown()
            logger.info("Worker %s stopped", self.worker_id)

    def stop(self) -> None:
        self._running = False

    async def _run_loop(self) -> None:
        """Main worker loop - poll queue and execute jobs in parallel."""
        while self._running:
            try:
                self._cleanup_finished_tasks()

                if len(self._running_jobs) < self.max_concurrent_jobs:
                    job = self.queue.claim_next(
                        self.worker_id,
                        max_running_jobs=self.max_concurrent_jobs,
                    )
                    if job:
                        task = asyncio.create_task(self._execute_job(job))
                        self._running_jobs[job["id"]] = task
                        # Don't sleep - immediately try to claim another job
                        continue

                await asyncio.sleep(self.poll_interval)

            except Exception as e:
                logger.error("Worker loop error: %s", e)
                await asyncio.sleep(self.poll_interval)

    def _cleanup_finished_tasks(self) -> None:
        finished = [job_id for job_id, task in self._running_jobs.items() if task.done()]
        for job_id in finished:
            task = self._running_jobs.pop(job_id)
            if not task.cancelled() and task.exception():
                logger.error("Job %s task raised exception: %s", job_id, task.exception())

    async def _execute_job(self, job: dict) -> None:
        """Execute a single scrape job and attach the saved report to it."""
        job_id = job["id"]
        logger.info("Executing job %s: %r near %r", job_id, job["product"], job["location"])
        start_time = perf_counter()

        try:
            options = ScrapeOptions.from_dict(job["options"])
            report = await scrape_all_sites(
                job["product"],
                job["location"],
                options,
                fetcher=self.fetcher,
                store=self.store,
            )
            report_file = self.store.save_report(report)
            duration = perf_counter() - start_time

            # Partial results (even zero products) are a valid outcome.
            self.queue.complete(
                job_id,
                success=True,
                products_found=report.total_products,
                duration_seconds=duration,
                report=report.to_dict(),
                report_file=str(report_file),
            )
            logger.info(
                "Job %s completed: %d products in %.2fs", job_id, report.total_products, duration
            )

        except Exception as e:
            duration = perf_counter() - start_time
            self.queue.complete(
                job_id,
                success=False,
                error_message=str(e),
                duration_seconds=duration,
            )
            logger.error("Job %s failed: %s", job_id, e)

    async def _stale_job_checker(self) -> None:
        """Periodically check for and reclaim stale jobs."""
        while self._running:
            await asyncio.sleep(self.stale_check_interval)
            try:
                reclaimed = self.queue.reclaim_stale_jobs()
                if reclaimed > 0:
                    logger.warning("Reclaimed %d stale jobs", reclaimed)
            except Exception as e:
                logger.error("Stale job check error: %s", e)

    def _handle_shutdown(self) -> None:
        logger.info("Worker %s received shutdown signal", self.worker_id)
        self._running = False
        if self._running_jobs:
            logger.warning("Interrupted %d running jobs", len(self._running_jobs))

    def get_status(self) -> dict:
        """Get current worker status."""
        return {
            "worker_id": self.worker_id,
            "running": self._running,
            "running_jobs": list(self._running_jobs.keys()),
            "running_job_count": len(self._running_jobs),
            "max_concurrent_jobs": self.max_concurrent_jobs,
            "queue_status": self.queue.get_queue_status(),
        }


def create_worker(settings: Settings | None = None, queue: JobQueue | None = None) -> Worker:
    settings = settings or load_settings()
    return Worker(
        queue or JobQueue(),
        ResultStore(settings.output_dir),
        max_concurrent_jobs=settings.max_concurrent_jobs,
    )
