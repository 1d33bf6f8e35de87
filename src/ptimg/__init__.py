"""ptimg — reassemble scrambled tiled page images.

Parse a page's coordinate manifest (.ptimg.json) into tile placements,
then composite the tiles of the scrambled image back into the original
page. Local pages are descrambled singly or in YAML-declared batches;
viewer pages can be downloaded and descrambled in one go.
"""
