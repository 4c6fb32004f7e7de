"""In-memory job queue for scrape jobs."""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timedelta, UTC
from itertools import count

from .config import ScrapeOptions

# Stale job timeout - jobs running longer than this are considered abandoned
STALE_JOB_TIMEOUT_MINUTES = 30
DEFAULT_MAX_RETRIES = 2
# Finished jobs kept for status polling; the oldest are dropped first.
MAX_FINISHED_JOBS = 200

ACTIVE_STATUSES = ("pending", "running")


class JobQueue:
    """Thread-safe in-memory job queue with atomic claim operations.

    Jobs are plain dicts. Every public method returns copies, so callers can
    never mutate queue state behind the lock.
    """

    def __init__(self, max_retries: int = DEFAULT_MAX_RETRIES):
        self.max_retries = max_retries
        self._jobs: dict[str, dict] = {}
        self._lock = threading.Lock()
        self._sequence = count()

    def enqueue(
        self,
        product: str,
        location: str,
        options: ScrapeOptions | None = None,
        priority: int = 0,
        source: str = "api",
    ) -> str:
        """
        Add a job to the queue.

        Args:
            product: Product to search for
            location: Delivery location to select
            options: Scrape options for the job
            priority: Job priority (higher = more urgent)
            source: How the job was triggered (api, cli)

        Returns:
            Job ID
        """
        options = options or ScrapeOptions()
        job_id = uuid.uuid4().hex
        job = {
            "id": job_id,
            "product": product,
            "location": location,
            "sites": [site.value for site in options.sites],
            "options": options.to_dict(),
            "source": source,
            "status": "pending",
            "priority": priority,
            "created_at": datetime.now(UTC).isoformat(),
            "claimed_at": None,
            "completed_at": None,
            "worker_id": None,
            "retry_count": 0,
            "max_retries": self.max_retries,
            "error_message": None,
            "duration_seconds": None,
            "products_found": None,
            "report": None,
            "report_file": None,
            "_seq": next(self._sequence),
        }
        with self._lock:
            self._jobs[job_id] = job
            self._prune_finished()
        return job_id

    def claim_next(self, worker_id: str, max_running_jobs: int | None = None) -> dict | None:
        """
        Atomically claim the next available job.

        Args:
            worker_id: Unique identifier for the worker claiming the job
            max_running_jobs: Claim nothing while this many jobs are running

        Returns:
            Job dict or None if no jobs available
        """
        with self._lock:
            if max_running_jobs is not None:
                running = sum(1 for j in self._jobs.values() if j["status"] == "running")
                if running >= max_running_jobs:
                    return None

            pending = [j for j in self._jobs.values() if j["status"] == "pending"]
            if not pending:
                return None

            job = min(pending, key=lambda j: (-j["priority"], j["_seq"]))
            job["status"] = "running"
            job["claimed_at"] = datetime.now(UTC).isoformat()
            job["worker_id"] = worker_id
            return self._public(job)

    def complete(
        self,
        job_id: str,
        success: bool,
        products_found: int | None = None,
        error_message: str | None = None,
        duration_seconds: float | None = None,
        report: dict | None = None,
        report_file: str | None = None,
    ) -> None:
        """
        Mark a job as completed or failed.

        Args:
            job_id: ID of the job to complete
            success: Whether the job succeeded
            products_found: Number of products extracted (if successful)
            error_message: Error message (if failed)
            duration_seconds: How long the job took
            report: Serialized report to attach
            report_file: Where the report was saved
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.update(
                status="completed" if success else "failed",
                completed_at=datetime.now(UTC).isoformat(),
                products_found=products_found,
                error_message=error_message,
                duration_seconds=duration_seconds,
                report=report,
                report_file=report_file,
            )

    def reclaim_stale_jobs(self, now: datetime | None = None) -> int:
        """
        Find jobs that have been 'running' too long and reset them.

        Jobs that have been running longer than STALE_JOB_TIMEOUT_MINUTES
        are reset to pending for retry, or failed once they exhaust
        ``max_retries``.

        Returns:
            Number of jobs reclaimed
        """
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(minutes=STALE_JOB_TIMEOUT_MINUTES)
        reclaimed = 0

        with self._lock:
            for job in self._jobs.values():
                if job["status"] != "running" or not job["claimed_at"]:
                    continue
                if datetime.fromisoformat(job["claimed_at"]) >= cutoff:
                    continue

                if job["retry_count"] < job["max_retries"]:
                    job.update(status="pending", claimed_at=None, worker_id=None)
                    job["retry_count"] += 1
                    reclaimed += 1
                else:
                    job.update(
                        status="failed",
                        error_message="Max retries exceeded (stale job)",
                        completed_at=now.isoformat(),
                    )
        return reclaimed

    def get_queue_status(self) -> dict:
        """
        Get current queue statistics.

        Returns:
            Dict with counts for each status
        """
        stats = {"pending": 0, "running": 0, "completed": 0, "failed": 0}
        with self._lock:
            for job in self._jobs.values():
                if job["status"] in stats:
                    stats[job["status"]] += 1
        return stats

    def get_active_job(self, product: str, location: str, sites: list[str] | None = None) -> dict | None:
        """
        Get the active (pending or running) job for the same query.

        Args:
            product: Product searched for
            location: Delivery location
            sites: Site ids; ``None`` matches any

        Returns:
            Job dict or None if no active job
        """
        key = (product.strip().lower(), location.strip().lower())
        with self._lock:
            for job in sorted(self._jobs.values(), key=lambda j: j["_seq"], reverse=True):
                if job["status"] not in ACTIVE_STATUSES:
                    continue
                if (job["product"].strip().lower(), job["location"].strip().lower()) != key:
                    continue
                if sites is not None and sorted(job["sites"]) != sorted(sites):
                    continue
                return self._public(job)
        return None

    def get_job(self, job_id: str) -> dict | None:
        """
        Get a specific job by ID.

        Args:
            job_id: ID of the job

        Returns:
            Job dict or None if not found
        """
        with self._lock:
            job = self._jobs.get(job_id)
            return self._public(job) if job else None

    def list_jobs(self, limit: int = 20, include_report: bool = False) -> list[dict]:
        """Most recent jobs first."""
        with self._lock:
            jobs = sorted(self._jobs.values(), key=lambda j: j["_seq"], reverse=True)[:limit]
            result = [self._public(j) for j in jobs]
        if not include_report:
            for job in result:
                job.pop("report", None)
        return result

    def _prune_finished(self) -> None:
        finished = [j for j in self._jobs.values() if j["status"] not in ACTIVE_STATUSES]
        excess = len(finished) - MAX_FINISHED_JOBS
        if excess <= 0:
            return
        finished.sort(key=lambda j: j["_seq"])
        for job in finished[:excess]:
            del self._jobs[job["id"]]

    @staticmethod
    def _public(job: dict) -> dict:
        return {k: copy.deepcopy(v) for k, v in job.items() if not k.startswith("_")}
