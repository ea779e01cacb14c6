import time
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError
from loguru import logger

from pal import clusterer, config, weights
from pal.clusterer import PaletteEntry
from pal.colors import rgb_array_to_lab
from pal.config import ConfigurationError


class Palette(NamedTuple):
    entries: List[PaletteEntry]
    elapsed_ms: float


def is_supported_image(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in config.SUPPORTED_EXTENSIONS


def image_to_lab(image: Image.Image, max_size: Optional[int] = config.DEFAULT_MAX_SIZE) -> np.ndarray:
    """
    Turn a PIL image into an (N, 3) L*a*b* pixel buffer.

    Args:
        image (PIL.Image.Image): Source image, any mode.
        max_size (int, optional): If set, the image is downsampled (aspect ratio kept)
                                  so neither side exceeds this many pixels. Smaller
                                  images are never upscaled.

    Returns:
        np.ndarray: float64 array with one Lab row per pixel.
    """
    img = image.convert("RGB")
    if max_size is not None:
        if max_size < 1:
            raise ConfigurationError(f"max_size must be positive, got {max_size}")
        img.thumbnail((max_size, max_size), Image.Resampling.BICUBIC)
    return rgb_array_to_lab(np.asarray(img).reshape(-1, 3))


def load_pixels(path: Union[str, Path], max_size: Optional[int] = config.DEFAULT_MAX_SIZE) -> np.ndarray:
    """
    Decode an image file into an L*a*b* pixel buffer.

    Raises:
        FileNotFoundError: if `path` does not exist.
        ConfigurationError: if the file is not a readable image.
    """
    try:
        with Image.open(path) as image:
            logger.debug(f"Loaded {path} ({image.width}x{image.height}, mode {image.mode})")
            return image_to_lab(image, max_size=max_size)
    except UnidentifiedImageError as e:
        raise ConfigurationError(f"Cannot read '{path}' as an image: {e}") from e


def sort_by_dominance(entries: List[PaletteEntry]) -> List[PaletteEntry]:
    """Most dominant first; equal dominance keeps centroid order."""
    return sorted(entries, key=lambda entry: entry.dominance, reverse=True)


def generate_palette(
    path: Union[str, Path],
    num_colors: int = config.DEFAULT_NUM_COLORS,
    mood: Union[str, weights.Mood] = config.DEFAULT_MOOD,
    max_size: Optional[int] = config.DEFAULT_MAX_SIZE,
    seed: Optional[int] = None,
) -> Palette:
    """
    Extract the dominant colors of an image file.

    The mood is resolved before the image is decoded so a bad name fails fast.
    Only the clustering itself is timed.

    Returns:
        Palette: entries sorted by descending dominance, plus the clustering time in ms.
    """
    weight_fn = weights.resolve(mood)
    pixels = load_pixels(path, max_size=max_size)

    start = time.perf_counter()
    entries = clusterer.cluster(pixels, weight_fn, num_colors, rng=np.random.default_rng(seed))
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    logger.info(f"Extracted {len(entries)} colors from {path} in {elapsed_ms:.1f} ms")
    return Palette(sort_by_dominance(entries), elapsed_ms)
