from PIL import Image, ImageDraw, ImageFont
import os
from typing import List, Optional, Sequence

from pal import config
from pal.clusterer import PaletteEntry
from pal.colors import to_rgb
from pal.config import EmptyPaletteError


def _load_font(font_path: Optional[str], font_size: int):
    loaded_font = None
    try:
        if font_path and os.path.isfile(font_path):
            loaded_font = ImageFont.truetype(font_path, font_size)
    except IOError:
        pass  # fall through to the default font

    if not loaded_font:
        try:
            loaded_font = ImageFont.load_default(size=font_size)
        except TypeError:  # Pillow < 10.1 has no size argument
            loaded_font = ImageFont.load_default()
    return loaded_font


def _text_fill(rgb) -> tuple:
    # Dark text on light swatches, light text on dark ones (Rec. 601 luma)
    r, g, b = rgb
    return (0, 0, 0) if (0.299 * r + 0.587 * g + 0.114 * b) > 140 else (255, 255, 255)


def create_palette_strip(
    entries: Sequence[PaletteEntry],
    width: int = config.STRIP_WIDTH,
    strip_height: int = config.STRIP_HEIGHT,
    label_dominance: bool = False,
    font_path: Optional[str] = None,
    font_size: int = 14,
) -> Image.Image:
    """
    Paint one full-width horizontal strip per palette entry, top to bottom in
    the order given (callers normally pass entries sorted by dominance).

    Args:
        entries: Palette entries whose `color` is an L*a*b* centroid.
        width (int): Image width in pixels.
        strip_height (int): Height of each strip in pixels.
        label_dominance (bool): If True, writes the dominance percentage into each strip.
        font_path (str, optional): Path to a TTF font for the labels.
        font_size (int): Label font size.

    Returns:
        PIL.Image.Image: RGB image of size (width, strip_height * len(entries)).

    Raises:
        EmptyPaletteError: if `entries` is empty.
    """
    if len(entries) == 0:
        raise EmptyPaletteError("No valid colors found in palette")

    image = Image.new("RGB", (width, strip_height * len(entries)))
    draw = ImageDraw.Draw(image)
    font = _load_font(font_path, font_size) if label_dominance else None

    for idx, entry in enumerate(entries):
        rgb = tuple(to_rgb(entry.color))
        y_start = idx * strip_height
        draw.rectangle([0, y_start, width - 1, y_start + strip_height - 1], fill=rgb)

        if font is not None:
            text_content = f"{entry.dominance * 100:.1f}%"
            bbox = draw.textbbox((0, 0), text_content, font=font)
            text_h = bbox[3] - bbox[1]
            text_y = y_start + (strip_height - text_h) / 2.0 - bbox[1]
            draw.text((10, text_y), text_content, fill=_text_fill(rgb), font=font)

    return image


def palette_rgb_rows(entries: Sequence[PaletteEntry]) -> List[tuple]:
    """Device colors of the entries, in order, as plain (r, g, b) tuples."""
    return [tuple(to_rgb(entry.color)) for entry in entries]
