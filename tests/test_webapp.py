import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from kirana_scraper.config import Settings
from kirana_scraper.webapp.app import create_app

DMART_PAGE = (
    "<html><body><div class='card'>"
    "<div class='vertical-card_title__a'>Potato 1kg</div>"
    "<div class='vertical-card_price__b'><span class='vertical-card_amount__c'>40</span></div>"
    "</div></body></html>"
)


class TestWebApp(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name)
        app = create_app(Settings(output_dir=self.output_dir), start_worker=False)
        self.queue = app.state.queue
        self.client = TestClient(app)

    def tearDown(self):
        self._tmp.cleanup()

    def test_health_and_info(self):
        self.assertEqual(self.client.get("/api/health").json()["status"], "ok")

        info = self.client.get("/api/info").json()
        self.assertEqual(info["name"], "Kirana Scraper API")
        self.assertIn({"id": "naturesbasket", "name": "Nature's Basket"}, info["supportedWebsites"])

    def test_scrape_requires_product_and_location(self):
        resp = self.client.post("/api/scrape", json={"product": "lays"})
        self.assertEqual(resp.status_code, 400)
        body = resp.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["example"], {"product": "lays", "location": "RT Nagar"})

    def test_scrape_rejects_unknown_site(self):
        resp = self.client.get("/api/scrape?product=lays&location=RT%20Nagar&sites=bigbasket")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Unknown site", resp.json()["error"])

    def test_scrape_queues_job_once(self):
        resp = self.client.post(
            "/api/scrape",
            json={"product": "lays", "location": "RT Nagar", "sites": ["zepto", "Swiggy"]},
        )
        self.assertEqual(resp.status_code, 202)
        body = resp.json()
        self.assertEqual(body["sites"], ["zepto", "swiggy"])
        self.assertEqual(body["statusUrl"], f"/api/jobs/{body['jobId']}")

        again = self.client.get("/api/scrape?product=Lays&location=rt%20nagar&sites=swiggy,zepto")
        self.assertEqual(again.json()["jobId"], body["jobId"])

        job = self.client.get(body["statusUrl"]).json()["job"]
        self.assertEqual((job["product"], job["status"]), ("lays", "pending"))

        jobs = self.client.get("/api/jobs").json()
        self.assertEqual(jobs["queue"]["pending"], 1)
        self.assertIsNone(jobs["worker"])

    def test_unknown_job(self):
        resp = self.client.get("/api/jobs/missing")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "Job not found")

    def test_extract_missing_directory(self):
        resp = self.client.get("/api/extract", params={"dir": str(self.output_dir / "nope")})
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(resp.json()["success"])

    def test_extract_directory(self):
        (self.output_dir / "dmart-mumbai-potato.html").write_text(DMART_PAGE, encoding="utf-8")
        body = self.client.get("/api/extract").json()
        self.assertEqual(body["summary"], {"totalFiles": 1, "totalProducts": 1})
        self.assertEqual(body["data"][0]["website"], "DMart")

    def test_data_endpoints_after_refresh(self):
        self.assertEqual(self.client.get("/api/data").status_code, 404)
        self.assertEqual(self.client.post("/api/refresh").status_code, 404)

        (self.output_dir / "dmart-mumbai-potato.html").write_text(DMART_PAGE, encoding="utf-8")
        refreshed = self.client.post("/api/refresh").json()
        self.assertTrue(refreshed["success"])
        self.assertEqual(refreshed["count"], 1)

        latest = self.client.get("/api/data/latest").json()
        self.assertEqual(latest["filename"], refreshed["filename"])
        self.assertEqual(latest["data"][0]["products"][0]["price"], 40.0)

        self.assertEqual(self.client.get("/api/data/website/dmart").json()["count"], 1)
        self.assertEqual(self.client.get("/api/data/website/zepto").json()["count"], 0)

        found = self.client.get("/api/data/search", params={"q": "POTATO"}).json()
        self.assertEqual(found["totalProducts"], 1)
        missing = self.client.get("/api/data/search", params={"q": "onion"}).json()
        self.assertEqual(missing["count"], 0)

        websites = self.client.get("/api/websites").json()
        self.assertEqual(websites["websites"][0]["website"], "DMart")

        stats = self.client.get("/api/stats").json()
        self.assertEqual(stats["totalProducts"], 1)
        self.assertEqual(stats["productsWithPrice"], 1)
        self.assertEqual(stats["productsWithMRP"], 0)


if __name__ == "__main__":
    unittest.main()
