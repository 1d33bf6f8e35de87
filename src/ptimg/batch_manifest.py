"""Batch manifest loader — descramble many local pages from YAML.

Follows the same ${var} path resolution as the other YAML configs.

Batch manifest schema:
  paths:
    raw: "/data/chapter-01"
  output_dir: "${raw}/descrambled"      # optional, CLI --output-dir wins
  pages:
    - id: "0001"
      image: "${raw}/0001.jpg"
      manifest: "${raw}/0001.ptimg.json"
"""

from pathlib import Path

import yaml

from .common import resolve_path_vars


def load_batch_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a batch manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Resolve ${path} variables in output_dir and each page's files.
      3. Validate each page entry (id, image, manifest).
      4. Check for duplicate ids.

    Args:
        manifest_path: Path to the YAML batch manifest.

    Returns:
        Normalized config dict: {"output_dir": str | None, "pages": [...]}.

    Raises:
        ValueError: Missing/invalid fields.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError("Batch manifest: expected a mapping at the top level")
    if "pages" not in raw:
        raise ValueError("Batch manifest: missing required 'pages' field")
    if not isinstance(raw["pages"], list):
        raise ValueError("Batch manifest: 'pages' must be a list")

    paths = raw.get("paths") or {}

    output_dir = raw.get("output_dir")
    if output_dir is not None:
        output_dir = resolve_path_vars(str(output_dir), paths)

    pages = []
    seen_ids = set()
    for i, page in enumerate(raw["pages"]):
        if not isinstance(page, dict):
            raise ValueError(f"Page {i}: expected a mapping, got {page!r}")
        for field in ("id", "image", "manifest"):
            if field not in page:
                raise ValueError(f"Page {i}: missing required field '{field}'")

        pid = str(page["id"])
        if not pid.strip():
            raise ValueError(f"Page {i}: 'id' must be a non-empty string")
        if pid in seen_ids:
            raise ValueError(f"Duplicate page id: '{pid}'")
        seen_ids.add(pid)

        pages.append({
            "id": pid,
            "image": resolve_path_vars(str(page["image"]), paths),
            "manifest": resolve_path_vars(str(page["manifest"]), paths),
        })

    return {"output_dir": output_dir, "pages": pages}


def validate_batch_paths(config: dict) -> None:
    """Check that every page's image and manifest exist on disk.

    Raises:
        FileNotFoundError: Lists all missing files.
    """
    missing = []
    for page in config["pages"]:
        for key in ("image", "manifest"):
            if not Path(page[key]).exists():
                missing.append(f"{page['id']}: {page[key]}")

    if missing:
        msg = f"Missing {len(missing)} page file(s):\n"
        for p in missing:
            msg += f"  - {p}\n"
        raise FileNotFoundError(msg)
