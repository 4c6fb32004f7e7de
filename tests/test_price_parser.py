import unittest

from kirana_scraper.utils import (
    clean_text,
    find_price_spans,
    find_prices,
    has_currency,
    is_noise_name,
    name_key,
    parse_price,
    slugify,
)


class TestParsePrice(unittest.TestCase):
    def test_rupee_with_thousands_and_decimals(self):
        self.assertEqual(parse_price("₹1,234.50"), 1234.5)

    def test_no_digits_returns_none(self):
        self.assertIsNone(parse_price("no price here"))

    def test_bare_number(self):
        self.assertEqual(parse_price("40"), 40.0)

    def test_indian_grouping(self):
        self.assertEqual(parse_price("Rs. 1,23,456"), 123456.0)

    def test_inr_prefix_and_space(self):
        self.assertEqual(parse_price("INR 99"), 99.0)
        self.assertEqual(parse_price("₹ 25"), 25.0)

    def test_first_amount_wins(self):
        self.assertEqual(parse_price("₹45 ₹30"), 45.0)

    def test_rounds_to_two_places(self):
        self.assertEqual(parse_price("₹10.456"), 10.46)

    def test_non_string_input(self):
        self.assertIsNone(parse_price(None))
        self.assertIsNone(parse_price(40))
        self.assertIsNone(parse_price(""))


class TestTextHelpers(unittest.TestCase):
    def test_find_prices_requires_currency(self):
        self.assertEqual(find_prices("Pack of 2 ₹45 ₹30 save 15"), [45.0, 30.0])
        self.assertEqual(find_prices("500 g"), [])

    def test_price_spans_point_at_digits(self):
        self.assertEqual(find_price_spans("₹ 27 ₹29"), [(27.0, 2), (29.0, 6)])
        self.assertEqual(find_price_spans("27 only"), [])

    def test_has_currency(self):
        self.assertTrue(has_currency("MRP ₹ 60"))
        self.assertFalse(has_currency("Potato 1kg"))

    def test_clean_text_and_name_key(self):
        self.assertEqual(clean_text("  Potato \n  1kg "), "Potato 1kg")
        self.assertEqual(name_key(" Potato  1KG"), name_key("potato 1kg"))

    def test_noise_names(self):
        self.assertTrue(is_noise_name("₹ 45 - 30"))
        self.assertFalse(is_noise_name("7 Up 500ml"))

    def test_slugify(self):
        self.assertEqual(slugify("RT Nagar, Bengaluru"), "rt-nagar-bengaluru")


if __name__ == "__main__":
    unittest.main()
