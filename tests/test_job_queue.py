import unittest
from datetime import datetime, timedelta, UTC

from kirana_scraper.config import ScrapeOptions
from kirana_scraper.job_queue import STALE_JOB_TIMEOUT_MINUTES, JobQueue
from kirana_scraper.sites import SiteId


class TestJobQueue(unittest.TestCase):
    def setUp(self):
        self.queue = JobQueue(max_retries=1)

    def test_enqueue_and_get_job(self):
        options = ScrapeOptions(sites=(SiteId.DMART, SiteId.ZEPTO), save_html=True)
        job_id = self.queue.enqueue("potato", "Mumbai", options)

        job = self.queue.get_job(job_id)
        self.assertEqual(job["status"], "pending")
        self.assertEqual(job["sites"], ["dmart", "zepto"])
        self.assertTrue(job["options"]["saveHtml"])
        self.assertNotIn("_seq", job)
        self.assertIsNone(self.queue.get_job("missing"))

    def test_claim_order_priority_then_fifo(self):
        first = self.queue.enqueue("a", "x")
        urgent = self.queue.enqueue("b", "x", priority=5)
        self.queue.enqueue("c", "x")

        self.assertEqual(self.queue.claim_next("w")["id"], urgent)
        self.assertEqual(self.queue.claim_next("w")["id"], first)

    def test_claim_next_respects_global_running_cap(self):
        self.queue.enqueue("a", "x")
        self.queue.enqueue("b", "x")

        self.assertIsNotNone(self.queue.claim_next("worker-1", max_running_jobs=1))
        self.assertIsNone(self.queue.claim_next("worker-2", max_running_jobs=1))
        self.assertIsNotNone(self.queue.claim_next("worker-2", max_running_jobs=2))

    def test_complete_attaches_report(self):
        job_id = self.queue.enqueue("a", "x")
        self.queue.claim_next("w")
        self.queue.complete(job_id, success=True, products_found=3, report={"data": []})

        job = self.queue.get_job(job_id)
        self.assertEqual(job["status"], "completed")
        self.assertEqual(job["products_found"], 3)
        self.assertEqual(job["report"], {"data": []})
        self.assertEqual(
            self.queue.get_queue_status(),
            {"pending": 0, "running": 0, "completed": 1, "failed": 0},
        )

    def test_returned_jobs_are_copies(self):
        job_id = self.queue.enqueue("a", "x")
        self.queue.get_job(job_id)["status"] = "hacked"
        self.assertEqual(self.queue.get_job(job_id)["status"], "pending")

    def test_reclaim_stale_jobs_then_fail(self):
        job_id = self.queue.enqueue("a", "x")
        self.queue.claim_next("w")
        later = datetime.now(UTC) + timedelta(minutes=STALE_JOB_TIMEOUT_MINUTES + 1)

        self.assertEqual(self.queue.reclaim_stale_jobs(now=later), 1)
        job = self.queue.get_job(job_id)
        self.assertEqual((job["status"], job["retry_count"]), ("pending", 1))

        self.queue.claim_next("w")
        self.assertEqual(self.queue.reclaim_stale_jobs(now=later + timedelta(minutes=STALE_JOB_TIMEOUT_MINUTES + 1)), 0)
        job = self.queue.get_job(job_id)
        self.assertEqual(job["status"], "failed")
        self.assertEqual(job["error_message"], "Max retries exceeded (stale job)")

    def test_fresh_running_job_is_not_reclaimed(self):
        self.queue.enqueue("a", "x")
        self.queue.claim_next("w")
        self.assertEqual(self.queue.reclaim_stale_jobs(), 0)

    def test_active_job_lookup(self):
        job_id = self.queue.enqueue("Potato", "Mumbai", ScrapeOptions(sites=(SiteId.DMART,)))

        self.assertEqual(self.queue.get_active_job("potato ", "mumbai")["id"], job_id)
        self.assertEqual(self.queue.get_active_job("potato", "mumbai", ["dmart"])["id"], job_id)
        self.assertIsNone(self.queue.get_active_job("potato", "mumbai", ["zepto"]))

        self.queue.complete(job_id, success=False, error_message="boom")
        self.assertIsNone(self.queue.get_active_job("potato", "mumbai"))

    def test_list_jobs_newest_first_without_reports(self):
        old = self.queue.enqueue("a", "x")
        new = self.queue.enqueue("b", "x")
        self.queue.complete(old, success=True, report={"data": []})

        jobs = self.queue.list_jobs()
        self.assertEqual([j["id"] for j in jobs], [new, old])
        self.assertNotIn("report", jobs[1])


if __name__ == "__main__":
    unittest.main()
