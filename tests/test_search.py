import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from tubeshelf.errors import NotFoundError, ParseError, TransportError
from tubeshelf.search import (
    SearchClient,
    build_details_url,
    build_search_url,
    parse_search_response,
)


def _search_item(video_id: str, title: str) -> dict:
    return {
        "id": {"kind": "youtube#video", "videoId": video_id},
        "snippet": {
            "title": title,
            "description": f"About {title}",
            "channelTitle": "Lofi Girl",
            "publishedAt": "2023-07-14T10:00:00Z",
            "thumbnails": {"default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"}},
        },
    }


def _fetcher(payload: dict, calls: list[str]):
    def fetch(url: str) -> bytes:
        calls.append(url)
        return json.dumps(payload).encode("utf-8")

    return fetch


def test_build_search_url_params() -> None:
    url = build_search_url("lofi beats & chill", "KEY")
    parsed = urlparse(url)
    assert parsed.path.endswith("/youtube/v3/search")
    assert "q=lofi%20beats%20%26%20chill" in parsed.query
    query = parse_qs(parsed.query)
    assert query == {
        "part": ["snippet"],
        "maxResults": ["50"],
        "q": ["lofi beats & chill"],
        "key": ["KEY"],
    }


def test_build_search_url_with_page_token() -> None:
    query = parse_qs(urlparse(build_search_url("lofi", "KEY", "tok1")).query)
    assert query["pageToken"] == ["tok1"]


def test_build_details_url_params() -> None:
    parsed = urlparse(build_details_url("abc123", "KEY"))
    assert parsed.path.endswith("/youtube/v3/videos")
    assert parse_qs(parsed.query) == {
        "id": ["abc123"],
        "part": ["snippet,contentDetails,statistics,status"],
        "key": ["KEY"],
    }


def test_parse_search_response_projects_fields() -> None:
    data = {
        "nextPageToken": "tok1",
        "items": [
            _search_item("abc123", "Rainy &amp; calm"),
            {"id": {"kind": "youtube#channel", "channelId": "UC1"}, "snippet": {}},
        ],
    }
    page = parse_search_response(data)
    assert page.next_page_token == "tok1"
    assert len(page.items) == 1
    item = page.items[0]
    assert item.video_id == "abc123"
    assert item.title == "Rainy & calm"
    assert item.channel_title == "Lofi Girl"
    assert item.publish_time == "2023-07-14T10:00:00Z"
    assert item.publish_date == "2023-07-14"
    assert item.thumbnail_url == "https://i.ytimg.com/vi/abc123/default.jpg"


def test_parse_search_response_without_token() -> None:
    page = parse_search_response({"items": []})
    assert page.items == []
    assert page.next_page_token is None


def test_parse_search_response_missing_items() -> None:
    with pytest.raises(ParseError):
        parse_search_response({"kind": "youtube#searchListResponse"})


def test_search_uses_fetcher() -> None:
    calls: list[str] = []
    payload = {"nextPageToken": "tok2", "items": [_search_item("id1", "One")]}
    client = SearchClient("KEY", fetcher=_fetcher(payload, calls))
    page = client.fetch_next_page("lofi", "tok1")
    assert [item.video_id for item in page.items] == ["id1"]
    assert page.next_page_token == "tok2"
    assert parse_qs(urlparse(calls[0]).query)["pageToken"] == ["tok1"]


def test_search_invalid_json() -> None:
    client = SearchClient("KEY", fetcher=lambda _: b"<html>")
    with pytest.raises(ParseError):
        client.search("lofi")


def test_search_without_api_key() -> None:
    calls: list[str] = []
    client = SearchClient(None, fetcher=_fetcher({"items": []}, calls))
    with pytest.raises(TransportError):
        client.search("lofi")
    assert calls == []


def test_search_transport_failure_propagates() -> None:
    def fetch(_: str) -> bytes:
        raise TransportError("connection refused")

    client = SearchClient("KEY", fetcher=fetch)
    with pytest.raises(TransportError):
        client.search("lofi")


def test_fetch_video_details() -> None:
    payload = {
        "items": [
            {
                "id": "abc123",
                "snippet": {"title": "Song", "description": "desc", "tags": ["lofi", "chill"]},
                "contentDetails": {"duration": "PT3M2S"},
                "statistics": {"viewCount": "1200", "likeCount": "34"},
            }
        ]
    }
    client = SearchClient("KEY", fetcher=_fetcher(payload, []))
    details = client.fetch_video_details("abc123")
    assert details.tags == ("lofi", "chill")
    assert details.view_count == 1200
    assert details.like_count == 34
    assert details.duration == "PT3M2S"
    assert details.description == "desc"


def test_fetch_video_details_not_found() -> None:
    client = SearchClient("KEY", fetcher=_fetcher({"items": []}, []))
    with pytest.raises(NotFoundError):
        client.fetch_video_details("missing")


def test_http_error_status_maps_to_transport_error() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(403, json={"error": {"message": "quotaExceeded"}})

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        client = SearchClient("KEY", http_client=http_client)
        with pytest.raises(TransportError) as excinfo:
            client.search("lofi")
    assert "403" in str(excinfo.value)
    assert "quotaExceeded" in str(excinfo.value)
    assert "q=lofi" in seen[0]


def test_connection_failure_maps_to_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        client = SearchClient("KEY", http_client=http_client)
        with pytest.raises(TransportError, match="Request failed"):
            client.fetch_video_details("abc123")


def test_http_client_returns_body() -> None:
    payload = {"items": [_search_item("vid1", "One")]}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with httpx.Client(transport=httpx.MockTransport(handler)) as http_client:
        page = SearchClient("KEY", http_client=http_client).search("lofi")
    assert [item.video_id for item in page.items] == ["vid1"]
