# tests/test_file_utils.py
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from PIL import Image
from pal import file_utils
from pal.clusterer import PaletteEntry
from pal.colors import to_lab
from pal.config import EmptyPaletteError

SVG_NS = "{http://www.w3.org/2000/svg}"


def test_save_palette_png_creates_file_with_metadata(tmp_path):
    img = Image.new("RGB", (10, 10), color=(100, 150, 200))

    output_file = tmp_path / "nested" / "test_output.png"
    cmd_line = "palettegen.py photo.png out --num-colors 3"
    metadata = {"User Note": "Test run", "Extra_Key": "Extra value", "9lives": "cat"}

    returned = file_utils.save_palette_png(img, output_file, command_line_invocation=cmd_line, additional_metadata=metadata)

    assert returned == output_file
    assert output_file.exists()

    with Image.open(output_file) as im:
        info = im.info
        assert info["palettegen:command_line"] == cmd_line
        assert info["palettegen:User_Note"] == "Test run"
        assert info["palettegen:Extra_Key"] == "Extra value"
        assert info["palettegen:palettegen_9lives"] == "cat"
        assert info["Software"] == "palettegen"


def test_palette_output_path():
    path = file_utils.palette_output_path("/photos/beach.jpg", "/out")
    assert path == Path("/out/beach_palette.png")
    assert file_utils.palette_output_path("beach.jpg", "out", ".svg").name == "beach_palette.svg"


def test_save_palette_svg_creates_valid_svg(tmp_path):
    entries = [
        PaletteEntry(to_lab((255, 0, 0)), 0.6),
        PaletteEntry(to_lab((0, 0, 255)), 0.4),
    ]
    output_file = tmp_path / "palette.svg"

    file_utils.save_palette_svg(
        output_file,
        entries,
        width=200,
        strip_height=40,
        command_line_invocation="palettegen.py x.png out --svg",
        additional_metadata={"Mood": "dominant"},
    )

    assert output_file.exists()
    root = ET.parse(output_file).getroot()
    assert root.tag.endswith("svg")

    rects = list(root.iter(f"{SVG_NS}rect"))
    assert [r.get("fill") for r in rects] == ["#ff0000", "#0000ff"]
    assert [r.get("y") for r in rects] == ["0", "40"]

    text = output_file.read_text()
    assert "Mood: dominant" in text
    assert "60.0%" in text


def test_save_palette_svg_empty_palette(tmp_path):
    with pytest.raises(EmptyPaletteError):
        file_utils.save_palette_svg(tmp_path / "empty.svg", [])
