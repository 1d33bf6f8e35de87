"""Manifest parser for scrambled page geometry (.ptimg.json).

A page manifest describes how the tiles of a scrambled image map onto the
output canvas. Only the first view is used:

  {"views": [{"width": 4, "height": 2,
              "coords": ["i:0,0+2,2>0,0", "i:2,0+2,2>2,0"]}]}

Each coords entry is a compact placement string:

  i:<src_x>,<src_y>+<w>,<h>><dst_x>,<dst_y>

Parsing is strict: a malformed entry is never dropped, it raises a
ManifestFormatError naming the field that failed. No bounds checking
happens here (there is no image yet), that is the compositor's job.
"""

import json
from dataclasses import dataclass
from pathlib import Path


COORD_PREFIX = "i:"


class ManifestFormatError(ValueError):
    """Malformed manifest. `field` names what failed, `index` the coords entry."""

    def __init__(self, message: str, field: str, index: int | None = None):
        super().__init__(message)
        self.field = field
        self.index = index

    def __reduce__(self):
        # Keeps the error intact across ProcessPoolExecutor workers.
        return (type(self), (self.args[0], self.field, self.index))


# ── Geometry types ────────────────────────────────────────────────


@dataclass(frozen=True)
class TilePlacement:
    """One tile: a source rectangle and where its top-left lands on the canvas."""

    source_x: int
    source_y: int
    width: int
    height: int
    dest_x: int
    dest_y: int

    @property
    def source_box(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) in the source image, right/bottom exclusive."""
        return (
            self.source_x, self.source_y,
            self.source_x + self.width, self.source_y + self.height,
        )

    @property
    def dest_box(self) -> tuple[int, int, int, int]:
        """(left, top, right, bottom) on the output canvas, right/bottom exclusive."""
        return (
            self.dest_x, self.dest_y,
            self.dest_x + self.width, self.dest_y + self.height,
        )


@dataclass(frozen=True)
class GeometryDescriptor:
    canvas_width: int
    canvas_height: int
    placements: tuple[TilePlacement, ...]

    @property
    def canvas_size(self) -> tuple[int, int]:
        return (self.canvas_width, self.canvas_height)


# ── Coords entry parsing ──────────────────────────────────────────


def _parse_number(token: str, name: str, index: int, entry: str) -> int:
    # str.isdigit() accepts non-ASCII digits like '²', so check the range.
    if not token or not all("0" <= c <= "9" for c in token):
        raise ManifestFormatError(
            f"coords[{index}]: '{name}' is not a non-negative integer "
            f"(got {token!r} in {entry!r})",
            field=f"coords[{index}].{name}",
            index=index,
        )
    return int(token, 10)


def _split_pair(
    text: str, names: tuple[str, str], index: int, entry: str,
) -> tuple[int, int]:
    """Parse 'a,b' into two integers, naming the offending component on error."""
    parts = text.split(",")
    if len(parts) != 2:
        raise ManifestFormatError(
            f"coords[{index}]: expected '{names[0]},{names[1]}', "
            f"got {text!r} in {entry!r}",
            field=f"coords[{index}].{names[0]}",
            index=index,
        )
    return (
        _parse_number(parts[0], names[0], index, entry),
        _parse_number(parts[1], names[1], index, entry),
    )


def parse_coord(entry, index: int = 0) -> TilePlacement:
    """Parse a single 'i:x,y+w,h>x,y' coords entry into a TilePlacement.

    Args:
        entry: The raw coords string from the manifest.
        index: Position of the entry in the coords array, used in errors.

    Raises:
        ManifestFormatError: Missing 'i:' prefix, '>' or '+' marker, wrong
            component count, non-numeric token, or zero tile extent.
    """
    field = f"coords[{index}]"
    if not isinstance(entry, str):
        raise ManifestFormatError(
            f"{field}: expected a string, got {type(entry).__name__}",
            field=field, index=index,
        )
    if not entry.startswith(COORD_PREFIX):
        raise ManifestFormatError(
            f"{field}: missing '{COORD_PREFIX}' prefix in {entry!r}",
            field=field, index=index,
        )
    body = entry[len(COORD_PREFIX):]

    placement_part, sep, dest_part = body.partition(">")
    if not sep:
        raise ManifestFormatError(
            f"{field}: missing '>' between placement and destination in {entry!r}",
            field=field, index=index,
        )

    src_part, sep, size_part = placement_part.partition("+")
    if not sep:
        raise ManifestFormatError(
            f"{field}: missing '+' between source position and size in {entry!r}",
            field=field, index=index,
        )

    source_x, source_y = _split_pair(src_part, ("src_x", "src_y"), index, entry)
    width, height = _split_pair(size_part, ("width", "height"), index, entry)
    dest_x, dest_y = _split_pair(dest_part, ("dst_x", "dst_y"), index, entry)

    if width == 0 or height == 0:
        raise ManifestFormatError(
            f"{field}: tile size must be > 0, got {width}x{height} in {entry!r}",
            field=f"{field}.{'width' if width == 0 else 'height'}",
            index=index,
        )

    return TilePlacement(source_x, source_y, width, height, dest_x, dest_y)


# ── Manifest parsing ──────────────────────────────────────────────


def _canvas_dimension(view: dict, key: str) -> int:
    if key not in view:
        raise ManifestFormatError(
            f"Manifest: views[0] is missing required field '{key}'", field=key,
        )
    value = view[key]
    # bool is an int subclass; JSON true/false is not a dimension.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ManifestFormatError(
            f"Manifest: views[0].{key} must be an integer, got {value!r}",
            field=key,
        )
    if value < 0:
        raise ManifestFormatError(
            f"Manifest: views[0].{key} must be >= 0, got {value}", field=key,
        )
    return value


def parse_manifest(raw_json: str | bytes) -> GeometryDescriptor:
    """Parse raw manifest JSON into a GeometryDescriptor.

    Processing pipeline:
      1. Decode JSON.
      2. Take views[0] and read canvas width/height.
      3. Parse every coords entry in order (see parse_coord).

    Args:
        raw_json: Manifest document, as text or UTF-8 bytes.

    Returns:
        Immutable GeometryDescriptor with placements in manifest order.

    Raises:
        ManifestFormatError: Invalid JSON, or any missing/malformed field.
    """
    try:
        raw = json.loads(raw_json)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestFormatError(f"Manifest: invalid JSON ({e})", field="json") from e

    if not isinstance(raw, dict) or "views" not in raw:
        raise ManifestFormatError(
            "Manifest: missing required 'views' field", field="views",
        )
    views = raw["views"]
    if not isinstance(views, list):
        raise ManifestFormatError(
            f"Manifest: 'views' must be an array, got {type(views).__name__}",
            field="views",
        )
    if not views:
        raise ManifestFormatError("Manifest: 'views' is empty", field="views")

    view = views[0]
    if not isinstance(view, dict):
        raise ManifestFormatError(
            f"Manifest: views[0] must be an object, got {type(view).__name__}",
            field="views[0]",
        )

    width = _canvas_dimension(view, "width")
    height = _canvas_dimension(view, "height")

    if "coords" not in view:
        raise ManifestFormatError(
            "Manifest: views[0] is missing required field 'coords'", field="coords",
        )
    coords = view["coords"]
    if not isinstance(coords, list):
        raise ManifestFormatError(
            f"Manifest: views[0].coords must be an array, got {type(coords).__name__}",
            field="coords",
        )

    placements = tuple(parse_coord(entry, i) for i, entry in enumerate(coords))
    return GeometryDescriptor(width, height, placements)


def load_manifest(manifest_path: str | Path) -> GeometryDescriptor:
    """Read a .ptimg.json file and parse it.

    Raises:
        FileNotFoundError: Missing manifest file.
        ManifestFormatError: See parse_manifest.
    """
    with open(manifest_path, encoding="utf-8") as f:
        return parse_manifest(f.read())
