"""Descrambling operations — single page and batch.

Glue between the pure core (parse_manifest, composite) and the file
system. Each page is an independent unit of work, so batches can run on
a ProcessPoolExecutor with no shared state.
"""

import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

from PIL import Image

from .common import decode_image, save_image
from .compositor import composite
from .manifest import parse_manifest


def descramble_bytes(image_bytes: bytes, manifest_text: str | bytes) -> Image.Image:
    """Descramble one page from its raw image payload and manifest text.

    The manifest is parsed before the image is decoded, so a bad manifest
    fails fast without paying for the decode.

    Raises:
        ManifestFormatError: Malformed manifest.
        ValueError: Undecodable image payload.
        CompositeBoundsError: A tile falls outside the source or canvas.
    """
    geometry = parse_manifest(manifest_text)
    source = decode_image(image_bytes)
    return composite(source, geometry)


def descramble_file(
    image_path: str | Path,
    manifest_path: str | Path,
    output_path: str | Path,
) -> Image.Image:
    """Descramble a page stored on disk and save the result.

    Args:
        image_path: Scrambled source image.
        manifest_path: Matching .ptimg.json manifest.
        output_path: Output image path (PNG keeps the alpha channel).

    Returns:
        The descrambled RGBA image.
    """
    image_bytes = Path(image_path).read_bytes()
    manifest_text = Path(manifest_path).read_text(encoding="utf-8")
    result = descramble_bytes(image_bytes, manifest_text)
    save_image(result, output_path)
    return result


def _descramble_one(args):
    """Worker for batch descrambling.

    Takes a single tuple so it works with ProcessPoolExecutor.submit().
    With keep_going, input errors are returned instead of raised so one
    bad page does not stop the batch.
    """
    page, out_path, keep_going = args
    t0 = time.monotonic()
    try:
        descramble_file(page["image"], page["manifest"], out_path)
    except (ValueError, OSError) as e:
        if not keep_going:
            raise
        print(f"  FAIL   {page['id']}  {e}", flush=True)
        return {"id": page["id"], "status": "fail", "output": None, "error": str(e)}
    elapsed = time.monotonic() - t0
    print(f"  DONE   {page['id']} -> {out_path} ({elapsed:.2f}s)", flush=True)
    return {"id": page["id"], "status": "done", "output": str(out_path), "error": None}


def descramble_batch(
    pages: list[dict],
    output_dir: str | Path,
    force: bool = False,
    workers: int = 1,
    keep_going: bool = False,
) -> list[dict]:
    """Descramble multiple pages into output_dir/<id>.png.

    Args:
        pages: List of dicts with 'id', 'image', 'manifest'.
        output_dir: Directory for output pages (created if needed).
        force: Overwrite existing files.
        workers: Number of parallel worker processes.
            1 = sequential, >1 = parallel via ProcessPoolExecutor.
        keep_going: Report failing pages and continue instead of raising.

    Returns:
        One result dict per page, in input order:
        {"id", "status": "done" | "skip" | "fail", "output", "error"}.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    results = {}
    jobs = []
    for page in pages:
        out_path = out_dir / f"{page['id']}.png"
        if out_path.exists() and not force:
            print(f"  SKIP   {out_path} (exists, use --force to overwrite)")
            results[page["id"]] = {
                "id": page["id"], "status": "skip",
                "output": str(out_path), "error": None,
            }
            continue
        jobs.append((page, out_path, keep_going))

    if workers > 1 and len(jobs) > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_descramble_one, job) for job in jobs]
            try:
                for future in as_completed(futures):
                    result = future.result()
                    results[result["id"]] = result
            except BaseException:
                # Queued pages must not run once the batch has failed.
                pool.shutdown(wait=True, cancel_futures=True)
                raise
    else:
        for job in jobs:
            result = _descramble_one(job)
            results[result["id"]] = result

    return [results[page["id"]] for page in pages]
