"""Viewer page retrieval over HTTP.

A viewer URL like https://kirapo.jp/<path>/<work_id>/viewer serves its
pages from <work>/data/:

  GET <data_url>0001.jpg          scrambled page image
  GET <data_url>0001.ptimg.json   tile manifest for that page

Pages are numbered from 1 and fetched until the first image request
answers 404.
"""

import re
from collections.abc import Iterator

import requests

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
)

_VIEWER_URL_RE = re.compile(r"^https://kirapo\.jp/.*/viewer$")
_REQUEST_TIMEOUT = 30  # seconds


class FetchError(Exception):
    """Raised when a page or manifest request fails."""


def parse_viewer_url(url: str) -> tuple[str, str]:
    """Split a viewer URL into (data_url, work_id).

    Example:
        https://kirapo.jp/meteor/titles/12/viewer
        -> ("https://kirapo.jp/meteor/titles/12/data/", "12")

    Raises:
        ValueError: URL is not a kirapo viewer URL or has no numeric work id.
    """
    if not _VIEWER_URL_RE.match(url):
        raise ValueError(
            f"Invalid viewer URL: {url!r} (expected https://kirapo.jp/.../viewer)"
        )
    base = url[: -len("/viewer")]
    work_id = base.rsplit("/", 1)[-1]
    if not work_id.isascii() or not work_id.isdigit():
        raise ValueError(f"Invalid viewer URL: {url!r} (no numeric work id before /viewer)")
    return f"{base}/data/", work_id


def make_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    return session


def _get(session: requests.Session, url: str) -> requests.Response:
    try:
        return session.get(url, timeout=_REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise FetchError(f"Request failed: {url}: {e}") from e


def fetch_page(
    session: requests.Session, data_url: str, index: int,
) -> tuple[bytes, str] | None:
    """Fetch the scrambled image and manifest for page `index`.

    Returns:
        (image_bytes, manifest_text), or None if the image is not found
        (past the last page).

    Raises:
        FetchError: Transport error or unexpected HTTP status.
    """
    image_url = f"{data_url}{index:04d}.jpg"
    resp = _get(session, image_url)
    if resp.status_code == 404:
        return None
    if resp.status_code != 200:
        raise FetchError(f"Page {index}: GET {image_url} returned HTTP {resp.status_code}")
    image_bytes = resp.content

    manifest_url = f"{data_url}{index:04d}.ptimg.json"
    resp = _get(session, manifest_url)
    if resp.status_code != 200:
        raise FetchError(
            f"Page {index}: GET {manifest_url} returned HTTP {resp.status_code}"
        )
    try:
        manifest_text = resp.content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FetchError(f"Page {index}: manifest is not UTF-8: {e}") from e
    return image_bytes, manifest_text


def iter_pages(
    session: requests.Session,
    data_url: str,
    start: int = 1,
    max_pages: int | None = None,
) -> Iterator[tuple[int, bytes, str]]:
    """Yield (index, image_bytes, manifest_text) until the first missing page."""
    index = start
    while max_pages is None or index - start < max_pages:
        print(f"  GET    page {index:04d}", flush=True)
        page = fetch_page(session, data_url, index)
        if page is None:
            return
        image_bytes, manifest_text = page
        yield index, image_bytes, manifest_text
        index += 1
