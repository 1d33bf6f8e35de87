"""CLI for descrambling — single page or batch from YAML manifest.

Usage:
    # Single page
    ptimg descramble 0001.jpg --manifest 0001.ptimg.json --output 0001.png

    # Check a manifest against its image without writing anything
    ptimg descramble 0001.jpg --manifest 0001.ptimg.json --validate

    # Batch
    ptimg descramble --batch pages.yaml --output-dir out/ --workers 4
"""

import argparse
from pathlib import Path

from PIL import Image

from .batch_manifest import load_batch_manifest, validate_batch_paths
from .compositor import coverage, validate_placements
from .descramble import descramble_batch, descramble_file
from .manifest import load_manifest


def _validate_single(image_path: str, manifest_path: str) -> None:
    """Parse and bounds-check one page, print a summary. Raises on failure."""
    geometry = load_manifest(manifest_path)
    with Image.open(image_path) as img:
        source_size = img.size
    validate_placements(geometry, source_size)
    w, h = geometry.canvas_size
    print(f"OK     {manifest_path}")
    print(f"  source    {source_size[0]}x{source_size[1]}")
    print(f"  canvas    {w}x{h}")
    print(f"  tiles     {len(geometry.placements)}")
    print(f"  coverage  {coverage(geometry):.1%}")


def report_results(results: list[dict], output_dir) -> None:
    done = sum(1 for r in results if r["status"] == "done")
    skipped = sum(1 for r in results if r["status"] == "skip")
    failed = [r for r in results if r["status"] == "fail"]
    print(f"Done: {done} descrambled, {skipped} skipped, {len(failed)} failed in {output_dir}")
    for r in failed:
        print(f"  - {r['id']}: {r['error']}")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Reassemble scrambled page images from their tile manifests.",
    )
    parser.add_argument(
        "image", nargs="?", default=None,
        help="Path to scrambled image (single page mode)",
    )
    parser.add_argument(
        "--manifest", default=None,
        help="Path to the page's .ptimg.json manifest (single page mode)",
    )
    parser.add_argument(
        "--output", default=None,
        help="Output image path (single page mode)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Only parse and bounds-check the manifest (single page mode)",
    )
    parser.add_argument(
        "--batch", default=None,
        help="Path to batch YAML manifest (batch mode)",
    )
    parser.add_argument(
        "--output-dir", default=None,
        help="Output directory for batch mode (overrides the YAML output_dir)",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="Parallel worker processes for batch mode (default: 1)",
    )
    parser.add_argument(
        "--keep-going", action="store_true",
        help="In batch mode, skip failing pages instead of stopping",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Overwrite existing output files",
    )
    parsed = parser.parse_args(args)

    is_single = (
        parsed.image is not None or parsed.manifest is not None
        or parsed.output is not None or parsed.validate
    )
    is_batch = parsed.batch is not None or parsed.output_dir is not None

    if is_single and is_batch:
        parser.error(
            "Cannot mix single-page args (image/--manifest/--output/--validate) "
            "with batch args (--batch/--output-dir)"
        )
    if parsed.workers < 1:
        parser.error("--workers must be >= 1")

    if is_single:
        if parsed.image is None or parsed.manifest is None:
            parser.error("Single page mode requires an image argument and --manifest")

        if parsed.validate:
            _validate_single(parsed.image, parsed.manifest)
            return

        if parsed.output is None:
            parser.error("Single page mode requires --output (or --validate)")
        if Path(parsed.output).exists() and not parsed.force:
            parser.error(f"{parsed.output} exists, use --force to overwrite")

        print(f"Descrambling {parsed.image}")
        img = descramble_file(parsed.image, parsed.manifest, parsed.output)
        print(f"Done: {parsed.output} ({img.width}x{img.height})")

    elif is_batch:
        if parsed.batch is None:
            parser.error("Batch mode requires --batch")

        config = load_batch_manifest(parsed.batch)
        output_dir = parsed.output_dir or config["output_dir"]
        if output_dir is None:
            parser.error("Batch mode requires --output-dir (or output_dir in the YAML)")
        validate_batch_paths(config)

        print(f"Batch descrambling {len(config['pages'])} pages from {parsed.batch}")
        results = descramble_batch(
            config["pages"], output_dir,
            force=parsed.force, workers=parsed.workers, keep_going=parsed.keep_going,
        )
        report_results(results, output_dir)

    else:
        parser.error("Specify either a single page (image --manifest) or batch (--batch)")


if __name__ == "__main__":
    main()
