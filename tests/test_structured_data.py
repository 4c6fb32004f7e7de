import json
import unittest

from bs4 import BeautifulSoup

from kirana_scraper.extractors.structured import (
    dig,
    find_product_nodes,
    load_assigned_json,
    load_next_data,
    node_prices,
    walk_products,
)


def next_data_page(blob) -> str:
    return f'<html><body><script id="__NEXT_DATA__" type="application/json">{json.dumps(blob)}</script></body></html>'


class TestLoaders(unittest.TestCase):
    def test_load_next_data(self):
        soup = BeautifulSoup(next_data_page({"props": {"a": 1}}), "lxml")
        self.assertEqual(load_next_data(soup), {"props": {"a": 1}})

    def test_malformed_next_data_returns_none(self):
        html = '<script id="__NEXT_DATA__">{"props": </script>'
        self.assertIsNone(load_next_data(BeautifulSoup(html, "lxml")))

    def test_load_assigned_json_ignores_trailing_code(self):
        html = '<script>window.___INITIAL_STATE___ = {"a": {"b": [1, 2]}}; window.x = 1;</script>'
        self.assertEqual(load_assigned_json(html, "window.___INITIAL_STATE___"), {"a": {"b": [1, 2]}})

    def test_load_assigned_json_missing(self):
        self.assertIsNone(load_assigned_json("<html></html>", "window.___INITIAL_STATE___"))

    def test_dig(self):
        self.assertEqual(dig({"a": {"b": {"c": 3}}}, ("a", "b", "c")), 3)
        self.assertIsNone(dig({"a": []}, ("a", "b")))
        self.assertIsNone(dig(None, ("a",)))


class TestWalk(unittest.TestCase):
    def test_yields_products_in_document_order(self):
        blob = {
            "data": {
                "products": [
                    {"name": "Amul Butter 100g", "price": 56, "mrp": 60},
                    {"name": "Amul Cheese Slices", "price": 145},
                ]
            }
        }
        names = [node["name"] for node in walk_products(blob)]
        self.assertEqual(names, ["Amul Butter 100g", "Amul Cheese Slices"])

    def test_depth_bound(self):
        node = {"name": "Deep Product", "price": 10}
        blob = node
        for _ in range(5):
            blob = {"data": blob}
        self.assertEqual(list(walk_products(blob, max_depth=3)), [])
        self.assertEqual(len(list(walk_products(blob, max_depth=5))), 1)

    def test_key_hints_filter_unrelated_branches(self):
        blob = {
            "footer": {"links": [{"name": "Careers page", "price": 1}]},
            "searchResult": {"items": [{"name": "Tata Salt 1kg", "price": 28}]},
        }
        names = [n["name"] for n in walk_products(blob, key_hints=("search", "item"))]
        self.assertEqual(names, ["Tata Salt 1kg"])

    def test_broad_pass_then_deep_hinted_pass(self):
        deep = {"name": "Deep Product", "price": 10}
        blob = {"props": {"pageProps": {"x": {"y": {"z": {"productList": [deep]}}}}}}
        self.assertEqual(find_product_nodes(blob, broad_depth=2), [])
        blob = {"props": {"pageProps": {"data": {"search": {"results": {"products": [deep]}}}}}}
        self.assertEqual(
            find_product_nodes(blob, key_hints=("props", "data", "search", "result", "product"), broad_depth=2),
            [deep],
        )

    def test_node_prices(self):
        self.assertEqual(node_prices({"name": "x", "price": "₹56", "mrp": 60}), (56.0, 60.0))
        self.assertEqual(node_prices({"name": "x", "offerPrice": {"value": 20}}), (20.0, None))
        self.assertEqual(node_prices({"name": "x", "price": 0}), (0.0, None))
        self.assertEqual(node_prices({"name": "x", "price": -5, "mrp": "n/a"}), (None, None))
        self.assertEqual(node_prices({"name": "x", "price": float("nan")}), (None, None))


if __name__ == "__main__":
    unittest.main()
