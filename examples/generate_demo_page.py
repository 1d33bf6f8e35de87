#!/usr/bin/env python3
"""Generate scrambled demo pages for trying out ptimg.

Creates 3 pages in examples/demo-pages/. Each page is a labelled color
grid cut into tiles, shuffled with a fixed seed, plus the matching
.ptimg.json manifest and a batch YAML covering all of them.

Usage:
    python examples/generate_demo_page.py
    # Then descramble:
    ptimg descramble --batch examples/demo-pages/pages.yaml
"""

import json
import random
from pathlib import Path

import numpy as np
import yaml
from PIL import Image, ImageDraw, ImageFont

OUTPUT_DIR = Path(__file__).resolve().parent / "demo-pages"
SIZE = (320, 240)
TILE = 40  # SIZE must be a multiple of TILE in both directions

# Page id, base color, shuffle seed.
PAGES = [
    ("0001", (180, 60, 60), 1),   # red
    ("0002", (60, 60, 180), 2),   # blue
    ("0003", (60, 160, 60), 3),   # green
]


def _make_page(base: tuple[int, int, int], label: str) -> Image.Image:
    """A grid of shaded cells with the page label in the middle."""
    w, h = SIZE
    ys, xs = np.mgrid[0:h, 0:w]
    shade = ((xs // TILE + ys // TILE) % 4) * 30
    arr = np.clip(np.array(base)[None, None, :] + shade[..., None], 0, 255).astype(np.uint8)
    img = Image.fromarray(arr)

    draw = ImageDraw.Draw(img)
    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 64
        )
    except OSError:
        font = ImageFont.load_default()
    bbox = draw.textbbox((0, 0), label, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text(((w - tw) / 2, (h - th) / 2), label, fill=(255, 255, 255), font=font)
    return img


def _scramble(img: Image.Image, seed: int) -> tuple[Image.Image, list[str]]:
    """Shuffle tiles; return the scrambled image and the coords restoring it."""
    w, h = img.size
    cells = [(x, y) for y in range(0, h, TILE) for x in range(0, w, TILE)]
    shuffled = cells[:]
    random.Random(seed).shuffle(shuffled)

    scrambled = Image.new(img.mode, img.size)
    coords = []
    # Original cell `dst` is stored at scrambled cell `src`.
    for (dx, dy), (sx, sy) in zip(cells, shuffled):
        scrambled.paste(img.crop((dx, dy, dx + TILE, dy + TILE)), (sx, sy))
        coords.append(f"i:{sx},{sy}+{TILE},{TILE}>{dx},{dy}")
    return scrambled, coords


def main():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)

    batch = {
        "paths": {"demo": str(OUTPUT_DIR)},
        "output_dir": "${demo}/descrambled",
        "pages": [],
    }
    for page_id, color, seed in PAGES:
        image_path = OUTPUT_DIR / f"{page_id}.png"
        manifest_path = OUTPUT_DIR / f"{page_id}.ptimg.json"
        if image_path.exists() and manifest_path.exists():
            print(f"  skip {page_id} (exists)")
        else:
            scrambled, coords = _scramble(_make_page(color, page_id), seed)
            scrambled.save(image_path)
            manifest = {"views": [{"width": SIZE[0], "height": SIZE[1], "coords": coords}]}
            manifest_path.write_text(json.dumps(manifest))
            print(f"  wrote {page_id} ({len(coords)} tiles)")

        batch["pages"].append({
            "id": page_id,
            "image": f"${{demo}}/{page_id}.png",
            "manifest": f"${{demo}}/{page_id}.ptimg.json",
        })

    with open(OUTPUT_DIR / "pages.yaml", "w") as f:
        yaml.safe_dump(batch, f, sort_keys=False)
    print(f"\nDone. {len(PAGES)} pages in {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
