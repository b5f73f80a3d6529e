"""Store prices example.

Starts a mock server answering with a small JSON document describing a book
store, then queries it with a RequestExecutor: once for the raw text, once
for the prices of all books.

# Launch the example

python -m examples.store_prices.app

"""

import logging

from httpcall import MockResponder, RequestExecutor, StaticResponse

STORE = """{
  "store": {
    "book": [
      {"category": "reference", "author": "Nigel Rees", "price": 8.95},
      {"category": "fiction", "author": "Evelyn Waugh", "price": 12.99},
      {"category": "fiction", "author": "Herman Melville", "price": 8.99}
    ],
    "bicycle": {"color": "red", "price": 19.95}
  }
}"""


def store_prices(port: int = 0):
    with MockResponder(port).start(
        StaticResponse(STORE, content_type="application/json")
    ) as mock:
        request = RequestExecutor(mock.url)
        text = request.fetch_text()
        prices = request.fetch_json_path("$.store.book[*].price")
    return text, prices


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    text, prices = store_prices()
    print(f'GET_RESULT: "{text}"')
    print(f"PARSE_RESULT: {prices}")
