"""Tile compositor: rebuild the original page from a scrambled image.

Every placement copies a rectangle of the source image to its destination
on a fresh RGBA canvas. Placements are applied in manifest order, so when
destinations overlap the later tile wins.

All placements are bounds-checked before any pixel is written. A tile
that reaches past the source image or past the canvas is rejected, never
clamped or cropped: a clipped tile would still produce a plausible-looking
page, just a wrong one.
"""

import numpy as np
from PIL import Image

from .manifest import GeometryDescriptor, TilePlacement


class CompositeBoundsError(ValueError):
    """A placement's source or destination rectangle exceeds its buffer."""

    def __init__(
        self,
        index: int,
        placement: TilePlacement,
        kind: str,
        box: tuple[int, int, int, int],
        limit: tuple[int, int],
    ):
        self.index = index
        self.placement = placement
        self.kind = kind
        self.box = box
        self.limit = limit
        buffer = "source image" if kind == "source" else "canvas"
        super().__init__(
            f"Placement {index}: {kind} rectangle "
            f"(left={box[0]}, top={box[1]}, right={box[2]}, bottom={box[3]}) "
            f"exceeds {buffer} {limit[0]}x{limit[1]}"
        )

    def __reduce__(self):
        return (
            type(self),
            (self.index, self.placement, self.kind, self.box, self.limit),
        )


def _box_fits(box: tuple[int, int, int, int], size: tuple[int, int]) -> bool:
    left, top, right, bottom = box
    return left >= 0 and top >= 0 and right <= size[0] and bottom <= size[1]


def validate_placements(
    geometry: GeometryDescriptor, source_size: tuple[int, int],
) -> None:
    """Check every placement against the source image and the canvas.

    Args:
        geometry: Parsed manifest geometry.
        source_size: (width, height) of the decoded source image.

    Raises:
        CompositeBoundsError: First placement whose source or destination
            rectangle does not fit. Source is checked before destination.
    """
    canvas = geometry.canvas_size
    for i, p in enumerate(geometry.placements):
        if not _box_fits(p.source_box, source_size):
            raise CompositeBoundsError(i, p, "source", p.source_box, tuple(source_size))
        if not _box_fits(p.dest_box, canvas):
            raise CompositeBoundsError(i, p, "destination", p.dest_box, canvas)


def composite(source: Image.Image, geometry: GeometryDescriptor) -> Image.Image:
    """Composite the described tiles of `source` onto a new RGBA canvas.

    Canvas pixels not covered by any placement stay (0, 0, 0, 0).

    Args:
        source: Decoded scrambled image (any Pillow mode; converted to RGBA).
        geometry: Parsed manifest geometry.

    Returns:
        New RGBA image of exactly canvas_width x canvas_height.

    Raises:
        CompositeBoundsError: See validate_placements. Raised before any
            copying, so no partial result exists.
    """
    validate_placements(geometry, source.size)

    w, h = geometry.canvas_size
    if w == 0 or h == 0:
        return Image.new("RGBA", (w, h))

    src = np.asarray(source.convert("RGBA"))
    out = np.zeros((h, w, 4), dtype=np.uint8)
    for p in geometry.placements:
        out[p.dest_y:p.dest_y + p.height, p.dest_x:p.dest_x + p.width] = (
            src[p.source_y:p.source_y + p.height, p.source_x:p.source_x + p.width]
        )
    return Image.fromarray(out)


def coverage(geometry: GeometryDescriptor) -> float:
    """Fraction of canvas pixels written by at least one placement.

    Destinations are clipped to the canvas here; this is a report, not a
    validation. A zero-area canvas counts as fully covered.
    """
    w, h = geometry.canvas_size
    if w == 0 or h == 0:
        return 1.0
    mask = np.zeros((h, w), dtype=bool)
    for p in geometry.placements:
        mask[p.dest_y:p.dest_y + p.height, p.dest_x:p.dest_x + p.width] = True
    return float(mask.mean())
