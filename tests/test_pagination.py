"""
Tests for page-by-page collection of search results.
"""

from unittest.mock import patch

import pytest
import responses
from responses import matchers

from helpscout_api_client import HelpScoutAPIError, NotFoundError

from .conftest import api_calls


def _page(rsps, url, number, payload, extra=None):
    params = {"page": str(number)}
    params.update(extra or {})
    rsps.add(
        responses.GET,
        url,
        json=payload,
        status=200,
        match=[matchers.query_param_matcher(params)],
    )


class TestItemsVariant:
    """Pagination over ``items``/``pages`` responses."""

    def test_two_pages_concatenated_in_order(self, client, mock_responses, base_url):
        url = f"{base_url}/search/conversations"
        query = {"query": "(status:active)"}
        _page(mock_responses, url, 1, {"items": [1, 2, 3], "pages": 2}, query)
        _page(mock_responses, url, 2, {"items": [4, 5], "pages": 2}, query)

        result = client.search("search/conversations", "status:active")

        assert result == [1, 2, 3, 4, 5]
        assert len(api_calls(mock_responses)) == 2

    def test_single_page(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {"items": ["a"], "pages": 1})

        assert client.collect_all("customers") == ["a"]
        assert len(api_calls(mock_responses)) == 1

    def test_stops_at_total_pages(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        for number in (1, 2, 3):
            _page(mock_responses, url, number, {"items": [number], "pages": 3})
        _page(mock_responses, url, 4, {"items": ["never"], "pages": 3})

        assert client.collect_all("customers") == [1, 2, 3]
        assert len(api_calls(mock_responses)) == 3

    def test_caller_params_sent_with_every_page(self, client, mock_responses, base_url):
        url = f"{base_url}/conversations"
        extra = {"mailbox": "12", "status": "closed"}
        _page(mock_responses, url, 1, {"items": [1], "pages": 2}, extra)
        _page(mock_responses, url, 2, {"items": [2], "pages": 2}, extra)

        params = {"mailbox": "12", "status": "closed"}
        assert client.collect_all("conversations", params) == [1, 2]
        assert params == {"mailbox": "12", "status": "closed"}

    def test_zero_items_on_first_page(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {"items": [], "pages": 0})

        assert client.collect_all("customers") == []

    def test_empty_first_page_returns_none(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {})

        assert client.collect_all("customers") is None

    def test_empty_page_stops_early(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {"items": [1, 2], "pages": 5})
        _page(mock_responses, url, 2, {})

        assert client.collect_all("customers") == [1, 2]
        assert len(api_calls(mock_responses)) == 2

    def test_search_conversations_ignores_embedded_key(self, client, mock_responses, base_url):
        url = f"{base_url}/search/conversations"
        _page(
            mock_responses, url, 1,
            {"items": [{"id": 1}], "pages": 1},
            {"query": "(subject:refund)"},
        )

        assert client.search_conversations("subject:refund") == [{"id": 1}]

    def test_search_forwards_headers_and_timeout(self, client, mock_responses, base_url):
        url = f"{base_url}/search/conversations"
        _page(mock_responses, url, 1, {"items": [1], "pages": 1}, {"query": "(tag:vip)"})

        with patch.object(client.session, "request", wraps=client.session.request) as send:
            client.search("search/conversations", "tag:vip", headers={"X-Trace": "1"}, timeout=3)

        assert send.call_args.kwargs["timeout"] == 3
        assert api_calls(mock_responses)[0].request.headers["X-Trace"] == "1"

    def test_non_object_page_raises(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, [1, 2, 3])

        with pytest.raises(HelpScoutAPIError, match="list"):
            client.collect_all("customers")

    def test_error_on_later_page_propagates(self, client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {"items": [1], "pages": 2})
        mock_responses.add(
            responses.GET,
            url,
            status=404,
            match=[matchers.query_param_matcher({"page": "2"})],
        )

        with pytest.raises(NotFoundError):
            client.collect_all("customers")


class TestEmbeddedVariant:
    """Pagination over HAL ``_embedded``/``page.totalPages`` responses."""

    @staticmethod
    def _hal(key, items, number, total):
        return {
            "_embedded": {key: items},
            "page": {"size": 25, "totalElements": 0, "totalPages": total, "number": number},
        }

    def test_two_pages_concatenated_in_order(self, embedded_client, mock_responses, base_url):
        url = f"{base_url}/search/conversations"
        query = {"query": "(status:active)"}
        _page(mock_responses, url, 1, self._hal("conversations", [1, 2, 3], 1, 2), query)
        _page(mock_responses, url, 2, self._hal("conversations", [4, 5], 2, 2), query)

        assert embedded_client.search_conversations("status:active") == [1, 2, 3, 4, 5]

    def test_list_threads(self, embedded_client, mock_responses, base_url):
        url = f"{base_url}/conversations/42/threads"
        _page(mock_responses, url, 1, self._hal("threads", [{"id": 7}], 1, 1))

        assert embedded_client.list_threads(42) == [{"id": 7}]

    def test_embedded_key_required(self, embedded_client, mock_responses):
        with pytest.raises(ValueError, match="embedded_key"):
            embedded_client.collect_all("customers")

        assert api_calls(mock_responses) == []

    def test_other_embedded_collections_ignored(self, embedded_client, mock_responses, base_url):
        url = f"{base_url}/customers"
        payload = {
            "_embedded": {"links": ["x"], "customers": [{"id": 1}]},
            "page": {"totalPages": 1},
        }
        _page(mock_responses, url, 1, payload)

        assert embedded_client.collect_all("customers", embedded_key="customers") == [{"id": 1}]

    def test_missing_page_block_stops_after_first(self, embedded_client, mock_responses, base_url):
        url = f"{base_url}/customers"
        _page(mock_responses, url, 1, {"_embedded": {"customers": [1]}})

        assert embedded_client.collect_all("customers", embedded_key="customers") == [1]
        assert len(api_calls(mock_responses)) == 1
