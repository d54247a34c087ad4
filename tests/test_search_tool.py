import unittest
from unittest.mock import MagicMock, patch

import requests

from surrogateagent.tools.base import PayloadType
from surrogateagent.tools.search import JinaReaderClient, SearchTool, wiki_slug, wikipedia_url


class _FakeDigester:
    def __init__(self):
        self.calls = []

    def craft_search_digest(self, query, hits):
        self.calls.append((query, list(hits)))
        return f"digest of {query}"


def _reader_response(content, ok=True, status=200):
    res = MagicMock()
    res.ok = ok
    res.status_code = status
    res.json.return_value = {"data": {"content": content}}
    return res


class SearchToolTests(unittest.TestCase):
    def setUp(self):
        self.digester = _FakeDigester()
        self.tool = SearchTool(JinaReaderClient("https://r.jina.ai", 5), self.digester, min_content_chars=100)

    @patch("surrogateagent.tools.search.requests.get")
    def test_wikipedia_tier_wins_when_content_is_long_enough(self, mock_get):
        mock_get.return_value = _reader_response("A" * 900)
        result = self.tool.run("web_search", {"query": "alan turing"})
        self.assertTrue(result.success)
        self.assertEqual(result.payload_type, PayloadType.SEARCH_RESULT)
        self.assertEqual(result.message, "digest of alan turing")
        self.assertEqual(result.data["data_quality"], "live")
        hit = result.data["results"][0]
        self.assertEqual(hit["source"], "wikipedia.org")
        self.assertEqual(hit["snippet"], "A" * 200 + "...")
        self.assertEqual(
            mock_get.call_args.args[0], "https://r.jina.ai/https://en.wikipedia.org/wiki/Alan_Turing"
        )
        digest_hit = self.digester.calls[0][1][0]
        self.assertEqual(len(digest_hit.snippet), 800)

    @patch("surrogateagent.tools.search.requests.get")
    def test_short_wikipedia_content_falls_back_to_web_tier(self, mock_get):
        mock_get.side_effect = [_reader_response("stub"), _reader_response("B" * 1500)]
        result = self.tool.run("web_search", {"query": "best pizza nyc"})
        hit = result.data["results"][0]
        self.assertEqual(hit["title"], "Web search: best pizza nyc")
        self.assertEqual(hit["source"], "web search")
        self.assertEqual(hit["snippet"], "B" * 300 + "...")
        self.assertIn("google.com/search?q=best+pizza+nyc", mock_get.call_args.args[0])

    @patch("surrogateagent.tools.search.requests.get")
    def test_all_providers_failing_is_still_success_and_unverified(self, mock_get):
        mock_get.side_effect = [requests.Timeout("slow"), _reader_response("", ok=False, status=451)]
        result = self.tool.run("web_search", {"query": "quantum tunnelling"})
        self.assertTrue(result.success)
        self.assertEqual(result.data["data_quality"], "unverified")
        self.assertTrue(result.message.startswith("Based on my knowledge: digest of quantum tunnelling"))
        self.assertIn("training data", result.message)
        self.assertEqual(result.data["results"][0]["source"], "AI Training Data")

    @patch("surrogateagent.tools.search.requests.get")
    def test_missing_query_defaults_to_unknown(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        result = self.tool.run("web_search", {})
        self.assertEqual(result.data["query"], "Unknown")

    def test_unknown_action(self):
        self.assertFalse(self.tool.run("image_search", {"query": "cats"}).success)

    def test_wiki_slug_title_cases_words(self):
        self.assertEqual(wiki_slug("  new   york city "), "New_York_City")
        self.assertEqual(wikipedia_url("C++ language"), "https://en.wikipedia.org/wiki/C%2B%2B_Language")


if __name__ == "__main__":
    unittest.main()
