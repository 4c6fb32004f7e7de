import json
import tempfile
import unittest
from pathlib import Path

from kirana_scraper.aggregator import extract_data_from_all_files
from kirana_scraper.models import ExtractionReport, Product, SiteResult, SiteStatus
from kirana_scraper.sites import SiteId
from kirana_scraper.storage import ResultStore


def make_report(timestamp: str) -> ExtractionReport:
    result = SiteResult(
        website="DMart",
        location="Mumbai",
        products=(Product("Potato 1kg", 40.0, None, "DMart"),),
        filename="dmart.html",
    )
    return ExtractionReport(
        product="potato",
        location="Mumbai",
        data=[result],
        websites=[SiteStatus("DMart", True)],
        timestamp=timestamp,
    )


class TestResultStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)
        self.store = ResultStore(self.dir / "out")

    def tearDown(self):
        self._tmp.cleanup()

    def test_empty_store(self):
        self.assertEqual(self.store.list_reports(), [])
        self.assertIsNone(self.store.latest_report_path())
        self.assertIsNone(self.store.latest_report())

    def test_save_and_load_latest(self):
        self.store.save_report(make_report("2025-01-01T00-00-00-000Z"))
        path = self.store.save_report(make_report("2025-01-02T00-00-00-000Z"))

        self.assertEqual(path.name, "extracted-data-2025-01-02T00-00-00-000Z.json")
        self.assertEqual(self.store.latest_report_path(), path)

        data = self.store.latest_report()
        self.assertTrue(data["success"])
        self.assertEqual(data["data"][0]["products"][0]["name"], "Potato 1kg")
        self.assertEqual(data["summary"]["totalProducts"], 1)

    def test_unreadable_latest_falls_back(self):
        self.store.save_report(make_report("2025-01-01T00-00-00-000Z"))
        broken = self.store.output_dir / "extracted-data-2025-02-01T00-00-00-000Z.json"
        broken.write_text("{not json", encoding="utf-8")

        with self.assertLogs("kirana_scraper.storage", level="ERROR"):
            data = self.store.latest_report()
        self.assertEqual(data["timestamp"], "2025-01-01T00-00-00-000Z")

    def test_saved_report_is_utf8_json(self):
        path = self.store.save_report(make_report("2025-01-01T00-00-00-000Z"))
        self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["product"], "potato")

    def test_html_snapshot_routes_back_to_its_site(self):
        html = (
            "<html><body><div class='card'>"
            "<div class='vertical-card_title__a'>Potato 1kg</div>"
            "<div class='vertical-card_price__b'><span class='vertical-card_amount__c'>40</span></div>"
            "</div></body></html>"
        )
        path = self.store.save_html(SiteId.DMART, "Potato", "RT Nagar", html, "2025-01-01T00-00-00-000Z")

        self.assertEqual(path.name, "dmart-rt-nagar-potato-2025-01-01T00-00-00-000Z.html")
        results = extract_data_from_all_files(self.store.output_dir)
        self.assertEqual([(r.website, len(r.products)) for r in results], [("DMart", 1)])

    def test_snapshot_location_naming_another_site(self):
        html = (
            "<html><body><a href='/pn/lays'><div><img alt='Lays Classic Salted 52g'/></div>"
            "<div>₹20</div></a></body></html>"
        )
        path = self.store.save_html(SiteId.ZEPTO, "lays", "Near DMart, Andheri", html, "2025-01-01T00-00-00-000Z")

        self.assertEqual(path.name, "zepto-near-dmart-andheri-lays-2025-01-01T00-00-00-000Z.html")
        results = extract_data_from_all_files(self.store.output_dir)
        self.assertEqual([(r.website, len(r.products)) for r in results], [("Zepto", 1)])


if __name__ == "__main__":
    unittest.main()
