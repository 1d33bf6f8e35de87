"""CLI for downloading and descrambling every page of a viewer.

Two-step workflow, both steps in one command:
  1. Fetch NNNN.jpg + NNNN.ptimg.json until the first missing page,
     staging them under <output-dir>/<work_id>/raw/.
  2. Descramble the staged pages to <output-dir>/<work_id>/<n>.png
     via descramble_batch (same rules as `ptimg descramble --batch`).

Usage:
    ptimg download https://kirapo.jp/meteor/titles/12/viewer
    ptimg download https://kirapo.jp/meteor/titles/12/viewer \
        --output-dir comics/ --workers 4 --keep-going
"""

import argparse
from pathlib import Path

from .common import page_filename
from .descramble import descramble_batch
from .descramble_cli import report_results
from .fetch import DEFAULT_USER_AGENT, iter_pages, make_session, parse_viewer_url


def download(
    url: str,
    output_dir: str | Path = ".",
    max_pages: int | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> tuple[Path, list[dict]]:
    """Fetch all pages of a viewer and stage them on disk.

    Returns:
        (work_dir, pages) where pages are batch entries ({'id', 'image',
        'manifest'}) ready for descramble_batch.

    Raises:
        ValueError: Invalid viewer URL.
        FetchError: A request failed before the last page was reached.
    """
    data_url, work_id = parse_viewer_url(url)
    work_dir = Path(output_dir) / work_id
    raw_dir = work_dir / "raw"
    raw_dir.mkdir(parents=True, exist_ok=True)

    session = make_session(user_agent)
    pages = []
    for index, image_bytes, manifest_text in iter_pages(
        session, data_url, max_pages=max_pages,
    ):
        image_path = raw_dir / page_filename(index, ".jpg")
        manifest_path = raw_dir / page_filename(index, ".ptimg.json")
        image_path.write_bytes(image_bytes)
        manifest_path.write_text(manifest_text, encoding="utf-8")
        pages.append({
            "id": str(index),
            "image": str(image_path),
            "manifest": str(manifest_path),
        })
    return work_dir, pages


def _parse_args(args=None):
    parser = argparse.ArgumentParser(
        description="Download every page of a viewer and descramble it.",
    )
    parser.add_argument(
        "url",
        help="Viewer URL, ending in /viewer",
    )
    parser.add_argument(
        "--output-dir", default=".",
        help="Parent directory; pages go to <output-dir>/<work_id>/ (default: .)",
    )
    parser.add_argument(
        "--max-pages", type=int, default=None,
        help="Stop after this many pages (default: all)",
    )
    parser.add_argument(
        "--user-agent", default=DEFAULT_USER_AGENT,
        help="User-Agent header for requests",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="Parallel worker processes for descrambling (default: 1)",
    )
    parser.add_argument(
        "--keep-going", action="store_true",
        help="Skip pages that fail to descramble instead of stopping",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Overwrite existing descrambled pages",
    )
    parsed = parser.parse_args(args)
    if parsed.workers < 1:
        parser.error("--workers must be >= 1")
    if parsed.max_pages is not None and parsed.max_pages < 1:
        parser.error("--max-pages must be >= 1")
    return parsed


def main(args=None):
    parsed = _parse_args(args)

    print(f"Downloading {parsed.url}")
    work_dir, pages = download(
        parsed.url, parsed.output_dir,
        max_pages=parsed.max_pages, user_agent=parsed.user_agent,
    )
    print(f"{len(pages)} pages downloaded. Descrambling into {work_dir}")
    if not pages:
        return

    results = descramble_batch(
        pages, work_dir,
        force=parsed.force, workers=parsed.workers, keep_going=parsed.keep_going,
    )
    report_results(results, work_dir)


if __name__ == "__main__":
    main()
