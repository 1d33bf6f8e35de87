"""Shared test fixtures for ptimg tests."""

import json

import numpy as np
import pytest
from PIL import Image


def gradient_image(width, height):
    """RGBA image where every pixel is distinct, so misplaced tiles show up."""
    ys, xs = np.mgrid[0:height, 0:width]
    arr = np.stack(
        [xs * 7 % 256, ys * 13 % 256, (xs + ys * width) % 256, np.full_like(xs, 255)],
        axis=-1,
    ).astype(np.uint8)
    return Image.fromarray(arr)


def manifest_json(width, height, coords):
    return json.dumps({"views": [{"width": width, "height": height, "coords": coords}]})


# Swaps the left and right halves of a 4x2 page. Applying it to the
# scrambled image (halves swapped) restores the original.
SWAP_HALVES = ["i:2,0+2,2>0,0", "i:0,0+2,2>2,0"]


@pytest.fixture
def original_image():
    return gradient_image(4, 2)


@pytest.fixture
def scrambled_page(tmp_path, original_image):
    """Write a scrambled 4x2 PNG and its manifest to disk.

    Shared across test_descramble.py and the CLI tests.
    Returns a batch page dict plus the expected descrambled image.
    """
    arr = np.asarray(original_image)
    scrambled = np.concatenate([arr[:, 2:], arr[:, :2]], axis=1)
    image_path = tmp_path / "0001.png"
    manifest_path = tmp_path / "0001.ptimg.json"
    Image.fromarray(scrambled).save(image_path)
    manifest_path.write_text(manifest_json(4, 2, SWAP_HALVES), encoding="utf-8")
    return {
        "id": "0001",
        "image": str(image_path),
        "manifest": str(manifest_path),
        "expected": original_image,
    }
