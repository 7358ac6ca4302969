"""Tests for Reddit mention tracker."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from trackers.reddit_tracker import RedditTracker, reddit_time_filter


@pytest.fixture
def mock_http():
    http = AsyncMock()
    http.get_json = AsyncMock()
    http.close = AsyncMock()
    return http


@pytest.fixture
def tracker(mock_http):
    return RedditTracker({}, http_client=mock_http)


SAMPLE_SEARCH_RESPONSE = {
    "data": {
        "children": [
            {"data": {"title": "Rocket is great", "permalink": "/r/rust/comments/abc/rocket/", "score": 321}},
            {"data": {}},
            {"data": {"title": "No link", "score": 3}},
        ]
    }
}


@pytest.mark.parametrize(
    "days,expected",
    [(1, "day"), (2, "week"), (7, "week"), (8, "month"), (30, "month"), (31, "year"), (365, "year"), (9999, "all")],
)
def test_reddit_time_filter(days, expected):
    assert reddit_time_filter(days) == expected


class TestRedditTracker:
    @pytest.mark.asyncio
    async def test_maps_posts(self, tracker, mock_http):
        mock_http.get_json.return_value = SAMPLE_SEARCH_RESPONSE

        posts = await tracker.search_mentions("acme/rocket", days=30)

        assert posts == [
            {"title": "Rocket is great", "url": "https://www.reddit.com/r/rust/comments/abc/rocket/", "score": 321},
            {"title": "No link", "url": "", "score": 3},
        ]

    @pytest.mark.asyncio
    async def test_request(self, tracker, mock_http):
        mock_http.get_json.return_value = {"data": {"children": []}}

        await tracker.search_mentions("acme/rocket", days=7)

        kwargs = mock_http.get_json.call_args[1]
        assert mock_http.get_json.call_args[0][0] == "https://www.reddit.com/search.json"
        assert kwargs["params"]["q"] == '"acme/rocket"'
        assert kwargs["params"]["t"] == "week"
        assert kwargs["headers"]["User-Agent"] == "web:spark-finder:v1.0"

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, tracker, mock_http):
        mock_http.get_json.return_value = None
        assert await tracker.search_mentions("acme/rocket") == []

    @pytest.mark.asyncio
    async def test_exception_returns_empty(self, tracker, mock_http):
        mock_http.get_json.side_effect = RuntimeError("boom")
        assert await tracker.search_mentions("acme/rocket") == []
