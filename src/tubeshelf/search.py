from __future__ import annotations

import html
import json
import logging
from typing import Any, Callable
from urllib.parse import quote, urlencode

import httpx

from .errors import NotFoundError, ParseError, TransportError
from .models import SearchPage, SearchResultItem, VideoDetails

Fetcher = Callable[[str], bytes]

API_ROOT = "https://www.googleapis.com/youtube/v3"
SEARCH_ENDPOINT = f"{API_ROOT}/search"
VIDEOS_ENDPOINT = f"{API_ROOT}/videos"
MAX_RESULTS = 50
DETAILS_PARTS = "snippet,contentDetails,statistics,status"

logger = logging.getLogger(__name__)


def build_search_url(term: str, api_key: str, page_token: str | None = None) -> str:
    params = [
        ("part", "snippet"),
        ("maxResults", str(MAX_RESULTS)),
        ("q", term),
        ("key", api_key),
    ]
    if page_token:
        params.append(("pageToken", page_token))
    return f"{SEARCH_ENDPOINT}?{_encode(params)}"


def build_details_url(video_id: str, api_key: str) -> str:
    params = [
        ("id", video_id),
        ("part", DETAILS_PARTS),
        ("key", api_key),
    ]
    return f"{VIDEOS_ENDPOINT}?{_encode(params)}"


def parse_search_response(data: Any) -> SearchPage:
    """Project a ``search.list`` body onto ``SearchResultItem``s.

    Results that are not videos (channels and playlists have no
    ``id.videoId``) are skipped.
    """
    items = _items_of(data)
    results: list[SearchResultItem] = []
    for raw in items:
        item = _parse_search_item(raw)
        if item is not None:
            results.append(item)
    token = _as_str(data.get("nextPageToken"))
    return SearchPage(items=results, next_page_token=token)


def parse_details_response(data: Any, video_id: str) -> VideoDetails:
    items = _items_of(data)
    if not items:
        raise NotFoundError(f"No details returned for video {video_id}")
    raw = items[0]
    if not isinstance(raw, dict):
        raise ParseError("Video details item is not an object")
    snippet = _as_dict(raw.get("snippet"))
    statistics = _as_dict(raw.get("statistics"))
    content = _as_dict(raw.get("contentDetails"))
    tags = snippet.get("tags")
    return VideoDetails(
        video_id=_as_str(raw.get("id")) or video_id,
        title=_as_str(snippet.get("title")),
        description=_as_str(snippet.get("description")),
        tags=tuple(tag for tag in tags if isinstance(tag, str)) if isinstance(tags, list) else (),
        view_count=_as_count(statistics.get("viewCount")),
        like_count=_as_count(statistics.get("likeCount")),
        duration=_as_str(content.get("duration")),
    )


class SearchClient:
    def __init__(
        self,
        api_key: str | None,
        fetcher: Fetcher | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self._http_client = http_client
        self._fetcher = fetcher or self._http_get

    def _http_get(self, url: str) -> bytes:
        return _http_fetch(url, self._http_client)

    def search(self, term: str) -> SearchPage:
        return self._fetch_page(term, None)

    def fetch_next_page(self, term: str, page_token: str) -> SearchPage:
        return self._fetch_page(term, page_token)

    def fetch_video_details(self, video_id: str) -> VideoDetails:
        url = build_details_url(video_id, self._require_key())
        data = self._get_json(url)
        return parse_details_response(data, video_id)

    def _fetch_page(self, term: str, page_token: str | None) -> SearchPage:
        term = term.strip()
        if not term:
            raise ValueError("Search term is empty")
        url = build_search_url(term, self._require_key(), page_token)
        data = self._get_json(url)
        page = parse_search_response(data)
        logger.info(
            "Search %r (page %s) returned %d items",
            term,
            page_token or "1",
            len(page.items),
        )
        return page

    def _require_key(self) -> str:
        if not self.api_key:
            raise TransportError("No API key configured")
        return self.api_key

    def _get_json(self, url: str) -> dict[str, Any]:
        body = self._fetcher(url)
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError("Search API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise ParseError("Search API response is not a JSON object")
        return data


def _http_fetch(url: str, client: httpx.Client | None = None) -> bytes:
    try:
        if client is None:
            with httpx.Client(follow_redirects=True, timeout=10.0) as owned:
                return _get_content(owned, url)
        return _get_content(client, url)
    except httpx.HTTPStatusError as exc:
        message = _api_error_message(exc.response) or str(exc)
        logger.warning("Search API error %s: %s", exc.response.status_code, message)
        raise TransportError(message) from exc
    except httpx.HTTPError as exc:
        logger.warning("Search API request failed: %s", exc)
        raise TransportError(f"Request failed: {exc}") from exc


def _get_content(client: httpx.Client, url: str) -> bytes:
    response = client.get(url)
    response.raise_for_status()
    return response.content


def _api_error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    error = _as_dict(data.get("error")) if isinstance(data, dict) else {}
    message = _as_str(error.get("message"))
    if message is None:
        return None
    return f"{response.status_code}: {message}"


def _encode(params: list[tuple[str, str]]) -> str:
    return urlencode(params, safe=",", quote_via=quote)


def _items_of(data: Any) -> list[Any]:
    if not isinstance(data, dict):
        raise ParseError("Search API response is not a JSON object")
    items = data.get("items")
    if not isinstance(items, list):
        raise ParseError("Search API response has no items list")
    return items


def _parse_search_item(raw: Any) -> SearchResultItem | None:
    if not isinstance(raw, dict):
        raise ParseError("Search result item is not an object")
    video_id = _as_str(_as_dict(raw.get("id")).get("videoId"))
    if video_id is None:
        return None
    snippet = _as_dict(raw.get("snippet"))
    thumbnails = _as_dict(snippet.get("thumbnails"))
    return SearchResultItem(
        video_id=video_id,
        title=html.unescape(_as_str(snippet.get("title")) or ""),
        description=html.unescape(_as_str(snippet.get("description")) or ""),
        thumbnail_url=_as_str(_as_dict(thumbnails.get("default")).get("url")),
        channel_title=html.unescape(_as_str(snippet.get("channelTitle")) or ""),
        publish_time=_as_str(snippet.get("publishedAt")) or "",
    )


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _as_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None
