import unittest
from unittest import mock

import requests

from sponge.ingestion.ingestors import (
    HackerNewsIngestor,
    IngestError,
    NYTimesIngestor,
    RedditIngestor,
)


def _response(payload=None, status=200, json_error=None):
    resp = mock.Mock()
    resp.status_code = status
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = payload
    return resp


class TestHackerNewsIngestor(unittest.TestCase):
    def _session(self, top_ids, items, failing=()):
        session = mock.Mock(spec=requests.Session)

        def get(url, **kwargs):
            if url.endswith("topstories.json"):
                return _response(top_ids)
            item_id = int(url.rsplit("/", 1)[-1].split(".")[0])
            if item_id in failing:
                raise requests.Timeout("timed out")
            return _response(items.get(item_id))

        session.get.side_effect = get
        return session

    def test_fetches_top_items_and_drops_failures(self):
        items = {i: {"title": f"Story {i}", "url": f"https://news.example/{i}"} for i in range(1, 16)}
        items[3] = None  # deleted item
        session = self._session(list(range(1, 16)), items, failing={4})

        with self.assertLogs("sponge.fanout.collector", level="WARNING"):
            result = HackerNewsIngestor(session=session).fetch(limit=5)

        self.assertEqual(sorted(r.title for r in result), ["Story 1", "Story 2", "Story 5"])
        self.assertTrue(all(r.source == "Hacker News" for r in result))
        # one list call + one call per identifier in the top 5
        self.assertEqual(session.get.call_count, 6)

    def test_short_list_is_clamped(self):
        items = {1: {"title": "A", "url": "https://a"}, 2: {"title": "B", "url": "https://b"}}
        session = self._session([1, 2], items)
        with self.assertLogs("sponge.ingestion.ingestors", level="WARNING"):
            result = HackerNewsIngestor(session=session).fetch(limit=10)
        self.assertEqual(len(result), 2)

    def test_list_failure_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response(status=500)
        with self.assertRaises(IngestError):
            HackerNewsIngestor(session=session).fetch(limit=5)

    def test_list_network_failure_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("dns")
        with self.assertRaises(IngestError):
            HackerNewsIngestor(session=session).fetch(limit=5)

    def test_non_list_payload_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response({"error": "nope"})
        with self.assertRaises(IngestError):
            HackerNewsIngestor(session=session).fetch(limit=5)


class TestRedditIngestor(unittest.TestCase):
    def test_parses_listing(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response(
            {
                "data": {
                    "children": [
                        {"data": {"title": "Generics in practice", "url": "https://blog.example/generics"}},
                        {"data": {"title": "no link"}},
                        {"data": {"title": "Errors", "url": "https://blog.example/errors"}},
                    ]
                }
            }
        )
        ingestor = RedditIngestor(session=session, username="gopher")
        result = ingestor.fetch(limit=3)

        self.assertEqual([r.title for r in result], ["Generics in practice", "Errors"])
        self.assertEqual(ingestor.label, "Reddit Golang")
        _, kwargs = session.get.call_args
        self.assertIn("/u/gopher", kwargs["headers"]["User-Agent"])
        self.assertEqual(kwargs["params"]["limit"], 3)
        self.assertEqual(kwargs["params"]["t"], "day")

    def test_subreddit_in_url_and_label(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response({"data": {"children": []}})
        ingestor = RedditIngestor(session=session, username="u", subreddit="python")
        with self.assertLogs("sponge.ingestion.ingestors", level="WARNING"):
            self.assertEqual(ingestor.fetch(limit=5), [])
        self.assertEqual(session.get.call_args[0][0], "https://www.reddit.com/r/python/top.json")
        self.assertEqual(ingestor.label, "Reddit Python")

    def test_disabled_without_username(self):
        self.assertFalse(RedditIngestor(session=mock.Mock(), username="").is_configured())

    def test_rate_limited_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response(status=429)
        with self.assertRaises(IngestError):
            RedditIngestor(session=session, username="u").fetch(limit=5)


class TestNYTimesIngestor(unittest.TestCase):
    def test_truncates_to_limit(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response(
            {"results": [{"title": f"Headline {i}", "url": f"https://nyt.example/{i}"} for i in range(3)]}
        )
        result = NYTimesIngestor(session=session, api_key="k").fetch(limit=2)
        self.assertEqual([r.title for r in result], ["Headline 0", "Headline 1"])
        self.assertEqual(session.get.call_args[1]["params"], {"api-key": "k"})

    def test_missing_results_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response({"fault": "invalid key"})
        with self.assertRaises(IngestError):
            NYTimesIngestor(session=session, api_key="k").fetch(limit=2)

    def test_invalid_json_raises(self):
        session = mock.Mock(spec=requests.Session)
        session.get.return_value = _response(json_error=ValueError("bad"))
        with self.assertRaises(IngestError):
            NYTimesIngestor(session=session, api_key="k").fetch(limit=2)

    def test_disabled_without_key(self):
        self.assertFalse(NYTimesIngestor(session=mock.Mock(), api_key="").is_configured())


if __name__ == "__main__":
    unittest.main()
