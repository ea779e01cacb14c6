import typer
from pal import config, extract, file_utils, legend, weights
from pal.colors import format_rgb, to_hex, to_rgb
from pal.config import ArgumentError, ConfigurationError, PaletteError
from pathlib import Path
from typing import List, NamedTuple, Optional
import sys

import rich.traceback


class Request(NamedTuple):
    img_path: Path
    output_dir: Optional[Path]
    num_colors: int
    mood: str
    rgb: bool
    hex: bool
    silent: bool
    time: bool
    output_paths: List[Path]


def validate_request(
    img_path: Path,
    output_dir: Optional[Path] = None,
    num_colors: Optional[int] = None,
    preset: Optional[str] = None,
    mood: Optional[str] = None,
    rgb: bool = False,
    hex: bool = False,
    silent: bool = False,
    time: bool = False,
    svg: bool = False,
    overwrite: bool = False,
) -> Request:
    """
    Checks every argument and reports all problems at once.

    With no output flag at all, RGB output is implied. Palette files that
    already exist in `output_dir` are reported unless `overwrite` is set.

    Raises:
        ArgumentError: listing every problem found.
    """
    errors: List[str] = []

    if not img_path.exists():
        errors.append(f"Image path '{img_path}' does not exist")
    elif not img_path.is_file():
        errors.append(f"Image path '{img_path}' is not a file")
    elif not extract.is_supported_image(img_path):
        errors.append(f"File '{img_path}' is not a supported image format")

    output_paths: List[Path] = []
    if output_dir is not None and not output_dir.is_dir():
        errors.append(f"Path '{output_dir}' does not exist or is not a directory")
    elif output_dir is not None:
        suffixes = [".png", ".svg"] if svg else [".png"]
        output_paths = [file_utils.palette_output_path(img_path, output_dir, s) for s in suffixes]
        existing = [str(p) for p in output_paths if p.exists()]
        if existing and not overwrite:
            errors.append(f"Files already exist: {', '.join(existing)}. Use --yes (-y) to overwrite.")

    preset_values = {}
    try:
        preset_values = config.resolve_preset(preset)
    except ConfigurationError as e:
        errors.append(str(e))

    effective_num_colors = num_colors if num_colors is not None else preset_values.get("num_colors", config.DEFAULT_NUM_COLORS)
    if not (1 <= effective_num_colors <= config.MAX_NUM_COLORS):
        errors.append(f"Invalid use of --num-colors, it requires a valid number (1-{config.MAX_NUM_COLORS})")

    effective_mood = mood if mood is not None else preset_values.get("mood", config.DEFAULT_MOOD)
    try:
        weights.resolve(effective_mood)
    except ConfigurationError as e:
        errors.append(str(e))

    if silent and (rgb or hex):
        errors.append("Silent flag cannot be used with RGB or hex flags")

    if errors:
        raise ArgumentError(errors)

    if not (rgb or hex or silent or time):
        rgb = True

    return Request(img_path, output_dir, int(effective_num_colors), str(effective_mood), rgb, hex, silent, time, output_paths)


def palettegen_cli(
    img_path: Path = typer.Argument(
        ...,
        help="Input image file (png, jpg, jpeg, bmp, gif, webp).",
        metavar="IMAGE",
    ),
    output_dir: Optional[Path] = typer.Argument(
        None,
        help="Existing directory for the palette image. Omit to only print colors.",
        metavar="OUTPUT_DIRECTORY",
    ),
    num_colors: Optional[int] = typer.Option(
        None, "--num-colors", "--num", "-n", envvar="PALETTEGEN_NUM_COLORS",
        help=f"Number of colors to extract (1-{config.MAX_NUM_COLORS}). Default: {config.DEFAULT_NUM_COLORS}."
    ),
    preset: Optional[str] = typer.Option(
        None, "--preset", help=f"Preset: {', '.join(config.PRESETS)}."
    ),
    mood: Optional[str] = typer.Option(
        None, "--mood", envvar="PALETTEGEN_MOOD",
        help=f"Weighting used for cluster means: {', '.join(weights.available_moods())}. Default: {config.DEFAULT_MOOD}."
    ),
    rgb: bool = typer.Option(False, "--rgb", help="Print colors as rgb(r, g, b)."),
    hex: bool = typer.Option(False, "--hex", "-x", help="Print colors as #rrggbb."),
    silent: bool = typer.Option(False, "--silent", "-s", help="Do not print colors."),
    time: bool = typer.Option(False, "--time", "-t", help="Print clustering time in milliseconds."),
    seed: Optional[int] = typer.Option(
        None, "--seed", envvar="PALETTEGEN_SEED", help="Random seed for reproducible palettes."
    ),
    max_size: int = typer.Option(
        config.DEFAULT_MAX_SIZE, "--max-size", min=1, envvar="PALETTEGEN_MAX_SIZE",
        help=f"Downsample so neither side exceeds this many pixels. Default: {config.DEFAULT_MAX_SIZE}."
    ),
    svg: bool = typer.Option(False, "--svg", help="Also write the palette as SVG."),
    label: bool = typer.Option(False, "--label", help="Write the dominance percentage on each strip."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite existing files."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log clustering progress to stderr."),
):
    """
    Extracts the dominant colors of an image.
    """
    command_line_str = " ".join(sys.argv)
    config.configure_logging("DEBUG" if verbose else None)

    try:
        request = validate_request(
            img_path, output_dir, num_colors=num_colors, preset=preset, mood=mood,
            rgb=rgb, hex=hex, silent=silent, time=time, svg=svg, overwrite=yes,
        )
    except ArgumentError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True); raise typer.Exit(code=1)

    output_paths = request.output_paths
    if output_paths and not request.silent:
        typer.echo(f"Processing: {request.img_path}")

    try:
        palette = extract.generate_palette(
            request.img_path, request.num_colors, request.mood, max_size=max_size, seed=seed,
        )
    except PaletteError as e:
        typer.secho(f"Error: {e} while trying to generate palette from {request.img_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except OSError as e:
        typer.secho(f"Error reading {request.img_path}: {e}", fg=typer.colors.RED, err=True); raise typer.Exit(code=1)

    for entry in palette.entries:
        device = to_rgb(entry.color)
        parts = []
        if request.rgb: parts.append(format_rgb(device))
        if request.hex: parts.append(to_hex(device))
        if parts:
            typer.echo(" ".join(parts))

    if request.time:
        typer.echo(f"Time: {palette.elapsed_ms:.0f} ms")

    if not output_paths:
        return

    metadata = {
        "SourceImage": str(request.img_path),
        "NumColorsTarget": str(request.num_colors),
        "NumColorsActual": str(len(palette.entries)),
        "Mood": request.mood,
        "Colors": " ".join(to_hex(to_rgb(entry.color)) for entry in palette.entries),
        "Dominance": " ".join(f"{entry.dominance:.4f}" for entry in palette.entries),
    }
    try:
        strip = legend.create_palette_strip(palette.entries, label_dominance=label)
        file_utils.save_palette_png(strip, output_paths[0], command_line_invocation=command_line_str, additional_metadata=metadata)
        if svg:
            file_utils.save_palette_svg(output_paths[1], palette.entries, command_line_invocation=command_line_str, additional_metadata=metadata)
    except PaletteError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True); raise typer.Exit(code=1)
    except OSError as e:
        typer.secho(f"Error writing palette image: {e}", fg=typer.colors.RED, err=True); raise typer.Exit(code=1)

    if not request.silent:
        for path in output_paths:
            typer.echo(f"Palette saved to: {path}")


if __name__ == "__main__":
    rich.traceback.install(show_locals=False, suppress=[typer])
    typer.run(palettegen_cli)
