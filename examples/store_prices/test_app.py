# This file is not part of the example. It is a test file to ensure the example
# works as expected during the CI process.


import json
import unittest


class TestStorePrices(unittest.TestCase):
    def test_app(self):
        from .app import STORE, store_prices

        text, prices = store_prices()
        self.assertEqual(json.loads(text), json.loads(STORE))
        self.assertEqual(prices, [8.95, 12.99, 8.99])
