"""ptimg.common — shared utilities for the descrambling pipeline.

Contains: path variable resolution, image decoding, image saving,
and page file naming.
"""

import io
import re
from pathlib import Path

from PIL import Image, UnidentifiedImageError


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return str(paths[key])
    return re.sub(r"\$\{(\w+)\}", _replace, text)


def page_filename(index: int, suffix: str = ".png") -> str:
    """Zero-padded page name, e.g. page_filename(7) -> '0007.png'."""
    return f"{index:04d}{suffix}"


# ── Image I/O ──────────────────────────────────────────────────────

def decode_image(data: bytes) -> Image.Image:
    """Decode an encoded image payload (JPEG, PNG, ...) into a Pillow image.

    Pillow decodes lazily; load() is forced here so a truncated payload
    fails now rather than inside the compositor. Pillow's PNG plugin
    reports some broken chunks as SyntaxError, so that is caught too, as is
    Pillow's oversized-image guard (DecompressionBombError).
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (
        UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError,
    ) as e:
        raise ValueError(f"Could not decode image ({len(data)} bytes): {e}") from e
    return img


def save_image(img: Image.Image, path: str | Path) -> None:
    """Write an image, creating parent directories. Format follows the suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in (".jpg", ".jpeg") and img.mode == "RGBA":
        # JPEG has no alpha channel.
        img = img.convert("RGB")
    img.save(path)
