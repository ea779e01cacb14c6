import re
from pathlib import Path
from typing import Dict, Optional, Sequence, Union

import svgwrite
from PIL import Image, PngImagePlugin

from pal import config
from pal.clusterer import PaletteEntry
from pal.colors import to_hex, Rgb
from pal.legend import palette_rgb_rows
from pal.config import EmptyPaletteError

METADATA_PREFIX = "palettegen:"
SOFTWARE = "palettegen"


def palette_output_path(input_path: Union[str, Path], output_dir: Union[str, Path], suffix: str = ".png") -> Path:
    """`<output_dir>/<input stem>_palette<suffix>`"""
    return Path(output_dir) / f"{Path(input_path).stem}_palette{suffix}"


def _clean_key(key: str) -> str:
    key_clean = re.sub(r'\s+', '_', key)
    key_clean = re.sub(r'[^a-zA-Z0-9_.-]', '', key_clean)
    if not re.match(r'^[a-zA-Z_]', key_clean):  # must start with a letter or underscore
        key_clean = "palettegen_" + key_clean
    # tEXt keywords are limited to 79 bytes, leave room for the prefix
    return key_clean[:64]


def save_palette_png(
    image_to_save: Image.Image,
    output_path: Union[str, Path],
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None,
) -> Path:
    """
    Saves a PIL Image object as a PNG file, embedding specified metadata as tEXt chunks.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    png_info = PngImagePlugin.PngInfo()
    png_info.add_text("Software", SOFTWARE)
    if command_line_invocation:
        png_info.add_text(f"{METADATA_PREFIX}command_line", command_line_invocation)

    for key, value in (additional_metadata or {}).items():
        png_info.add_text(f"{METADATA_PREFIX}{_clean_key(key)}", str(value))

    image_to_save.save(output_path, "PNG", pnginfo=png_info)
    return output_path


def save_palette_svg(
    output_path: Union[str, Path],
    entries: Sequence[PaletteEntry],
    width: int = config.STRIP_WIDTH,
    strip_height: int = config.STRIP_HEIGHT,
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None,
) -> Path:
    """
    Writes the palette as an SVG with one <rect> strip per entry, same layout as
    the PNG strip. Each rect carries a <title> with its hex color and dominance.
    """
    if len(entries) == 0:
        raise EmptyPaletteError("No valid colors found in palette")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    height = strip_height * len(entries)

    dwg = svgwrite.Drawing(filename=str(output_path), size=(f"{width}px", f"{height}px"), profile='full')

    desc_lines = [f"Software: {SOFTWARE}"]
    if command_line_invocation:
        desc_lines.append(f"CommandLine: {command_line_invocation}")
    for key, value in (additional_metadata or {}).items():
        desc_lines.append(f"{_clean_key(key)}: {value}")
    dwg.set_desc(title="Color palette", desc="\n".join(desc_lines))

    strips = dwg.g(id="palette-strips")
    for idx, (entry, rgb) in enumerate(zip(entries, palette_rgb_rows(entries))):
        hex_color = to_hex(Rgb(*rgb))
        rect = dwg.rect(insert=(0, idx * strip_height), size=(width, strip_height), fill=hex_color)
        rect.set_desc(title=f"{hex_color} {entry.dominance * 100:.1f}%")
        strips.add(rect)
    dwg.add(strips)

    dwg.save(pretty=True)
    return output_path
