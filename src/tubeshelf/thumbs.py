from __future__ import annotations

from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

import httpx

from .errors import TransportError
from .models import SearchResultItem
from .paths import thumbs_cache_dir

Fetcher = Callable[[str], bytes]

_VALID_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


def fetch_thumbnail(
    item: SearchResultItem,
    cache_dir: Path | None = None,
    fetcher: Fetcher | None = None,
) -> Path | None:
    """Return the cached thumbnail for ``item``, downloading it on first use."""
    if not item.thumbnail_url:
        return None
    cache_dir = cache_dir or thumbs_cache_dir()
    path = cache_dir / f"{item.video_id}{_guess_extension(item.thumbnail_url)}"
    if path.exists():
        return path
    fetcher = fetcher or _http_fetch
    path.write_bytes(fetcher(item.thumbnail_url))
    return path


def _guess_extension(url: str) -> str:
    suffix = Path(urlparse(url).path).suffix.lower()
    if suffix in _VALID_EXTENSIONS:
        return suffix
    return ".jpg"


def _http_fetch(url: str) -> bytes:
    try:
        with httpx.Client(follow_redirects=True, timeout=10.0) as client:
            response = client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as exc:
        raise TransportError(f"Thumbnail request failed: {exc}") from exc
