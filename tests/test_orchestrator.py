import tempfile
import unittest
from pathlib import Path

from kirana_scraper.config import ScrapeOptions
from kirana_scraper.job_queue import JobQueue
from kirana_scraper.models import FetchResult
from kirana_scraper.orchestrator import scrape_all_sites
from kirana_scraper.sites import SiteId
from kirana_scraper.storage import ResultStore
from kirana_scraper.worker import Worker

DMART_PAGE = (
    "<html><body><div class='card'>"
    "<div class='vertical-card_title__a'>Potato 1kg</div>"
    "<div class='vertical-card_price__b'><span class='vertical-card_amount__c'>40</span></div>"
    "</div></body></html>"
)
ZEPTO_PAGE = (
    "<html><body><a href='/pn/x'><div><img alt='Potato Fresh 1kg' src='p.jpg'/></div>"
    "<div><span>₹38</span></div></a></body></html>"
)


class FakeFetcher:
    """Serves canned pages; raises or fails for the sites it is told to."""

    def __init__(self, pages=None, failures=(), errors=()):
        self.pages = pages or {}
        self.failures = set(failures)
        self.errors = set(errors)
        self.calls = []

    async def __call__(self, site, product, location, options):
        self.calls.append(site)
        if site in self.errors:
            raise RuntimeError("browser crashed")
        if site in self.failures:
            return FetchResult(site=site.value, success=False, error="Timeout")
        return FetchResult(site=site.value, success=True, html=self.pages.get(site, ""))


class TestScrapeAllSites(unittest.IsolatedAsyncioTestCase):
    async def test_failures_are_isolated(self):
        fetcher = FakeFetcher(
            pages={SiteId.DMART: DMART_PAGE, SiteId.ZEPTO: ZEPTO_PAGE},
            failures={SiteId.JIOMART},
            errors={SiteId.SWIGGY},
        )
        options = ScrapeOptions(
            sites=(SiteId.DMART, SiteId.JIOMART, SiteId.ZEPTO, SiteId.SWIGGY),
            max_concurrency=2,
        )
        report = await scrape_all_sites("potato", "Mumbai", options, fetcher=fetcher)

        self.assertEqual(
            [(s.website, s.success, s.error) for s in report.websites],
            [
                ("DMart", True, None),
                ("JioMart", False, "Timeout"),
                ("Zepto", True, None),
                ("Swiggy", False, "browser crashed"),
            ],
        )
        self.assertEqual([r.website for r in report.data], ["DMart", "Zepto"])
        self.assertEqual(report.total_products, 2)
        self.assertEqual(
            report.summary,
            {"totalWebsites": 4, "successful": 2, "failed": 2, "totalProducts": 2},
        )

    async def test_empty_page_counts_as_failure(self):
        fetcher = FakeFetcher()
        report = await scrape_all_sites(
            "potato", "Mumbai", ScrapeOptions(sites=(SiteId.DMART,)), fetcher=fetcher
        )
        self.assertEqual(report.websites[0].error, "No HTML content")
        self.assertEqual(report.data, [])

    async def test_save_html_writes_snapshots(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = ResultStore(tmp)
            fetcher = FakeFetcher(pages={SiteId.DMART: DMART_PAGE})
            options = ScrapeOptions(sites=(SiteId.DMART,), save_html=True)

            report = await scrape_all_sites("potato", "Mumbai", options, fetcher=fetcher, store=store)

            saved = list(Path(tmp).glob("*.html"))
            self.assertEqual(len(saved), 1)
            self.assertTrue(saved[0].name.startswith("dmart-mumbai-potato-"))
            self.assertEqual(report.data[0].filename, saved[0].name)


class TestWorker(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ResultStore(self._tmp.name)
        self.queue = JobQueue()

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def test_execute_job_attaches_report(self):
        fetcher = FakeFetcher(pages={SiteId.DMART: DMART_PAGE}, failures={SiteId.ZEPTO})
        worker = Worker(self.queue, self.store, fetcher=fetcher)
        self.queue.enqueue("potato", "Mumbai", ScrapeOptions(sites=(SiteId.DMART, SiteId.ZEPTO)))

        job = self.queue.claim_next(worker.worker_id)
        await worker._execute_job(job)

        done = self.queue.get_job(job["id"])
        self.assertEqual(done["status"], "completed")
        self.assertEqual(done["products_found"], 1)
        self.assertEqual(done["report"]["summary"]["failed"], 1)
        self.assertTrue(Path(done["report_file"]).exists())
        self.assertEqual(self.store.latest_report()["product"], "potato")

    async def test_job_error_marks_failed(self):
        worker = Worker(self.queue, self.store, fetcher=FakeFetcher())
        job_id = self.queue.enqueue("potato", "Mumbai")

        job = self.queue.claim_next(worker.worker_id)
        job["options"] = {"sites": ["bigbasket"]}
        await worker._execute_job(job)

        done = self.queue.get_job(job_id)
        self.assertEqual(done["status"], "failed")
        self.assertIn("bigbasket", done["error_message"])

    def test_status(self):
        worker = Worker(self.queue, self.store, max_concurrent_jobs=0)
        status = worker.get_status()
        self.assertEqual(status["max_concurrent_jobs"], 1)
        self.assertFalse(status["running"])
        self.assertEqual(status["running_job_count"], 0)


if __name__ == "__main__":
    unittest.main()
