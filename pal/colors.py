import numpy as np
from typing import NamedTuple, Sequence, Tuple, Union

from pal.config import ConfigurationError


class Rgb(NamedTuple):
    """Device color: three 8-bit channels."""
    r: int
    g: int
    b: int


class Lab(NamedTuple):
    """
    Perceptual color in CIE L*a*b* (D65).

    Fields are normally floats, but may also hold equal-length numpy arrays
    (column form) so a weight function can be evaluated over many samples at once.
    """
    l: float
    a: float
    b: float


# D65 reference white and the sRGB <-> XYZ matrices
WHITE_D65 = np.array([0.95047, 1.0, 1.08883])

RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])
XYZ_TO_RGB = np.linalg.inv(RGB_TO_XYZ)

EPSILON = 216.0 / 24389.0
KAPPA = 24389.0 / 27.0

ColorLike = Union[Lab, Sequence[float], np.ndarray]


def _srgb_to_linear(c: np.ndarray) -> np.ndarray:
    return np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)


def _linear_to_srgb(c: np.ndarray) -> np.ndarray:
    c = np.maximum(c, 0.0)  # negative linear values would give NaN under the power
    return np.where(c <= 0.0031308, c * 12.92, 1.055 * c ** (1.0 / 2.4) - 0.055)


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """
    Convert an array of sRGB colors (..., 3) in [0, 255] to L*a*b*.

    Returns:
        np.ndarray: float64 array of the same shape holding (L, a, b) rows.
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = _srgb_to_linear(rgb)
    xyz = linear @ RGB_TO_XYZ.T / WHITE_D65

    f = np.where(xyz > EPSILON, np.cbrt(xyz), (KAPPA * xyz + 16.0) / 116.0)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    return np.stack([116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)], axis=-1)


def lab_array_to_rgb(lab: np.ndarray) -> np.ndarray:
    """
    Convert an array of L*a*b* colors (..., 3) back to sRGB.

    Averaged Lab values can fall outside the sRGB gamut, so every channel is
    clamped to [0, 255] before rounding.

    Returns:
        np.ndarray: uint8 array of the same shape.
    """
    lab = np.asarray(lab, dtype=np.float64)
    l, a, b = lab[..., 0], lab[..., 1], lab[..., 2]

    fy = (l + 16.0) / 116.0
    fx = fy + a / 500.0
    fz = fy - b / 200.0

    x = np.where(fx ** 3 > EPSILON, fx ** 3, (116.0 * fx - 16.0) / KAPPA)
    y = np.where(l > KAPPA * EPSILON, fy ** 3, l / KAPPA)
    z = np.where(fz ** 3 > EPSILON, fz ** 3, (116.0 * fz - 16.0) / KAPPA)

    xyz = np.stack([x, y, z], axis=-1) * WHITE_D65
    srgb = _linear_to_srgb(xyz @ XYZ_TO_RGB.T) * 255.0

    return np.round(np.clip(srgb, 0.0, 255.0)).astype(np.uint8)


def to_lab(rgb: Union[Rgb, Sequence[int]]) -> Lab:
    """Convert a single device color to L*a*b*."""
    return Lab(*(float(c) for c in rgb_array_to_lab(np.asarray(rgb))))


def to_rgb(lab: ColorLike) -> Rgb:
    """Convert a single L*a*b* color to a clamped device color."""
    return Rgb(*(int(c) for c in lab_array_to_rgb(np.asarray(lab, dtype=np.float64))))


def distance(a: ColorLike, b: ColorLike) -> float:
    """Euclidean distance between two colors in L*a*b* space."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.sum(diff * diff)))


def nearest(color: ColorLike, centroids: Sequence[ColorLike]) -> Tuple[int, float]:
    """
    Find the centroid closest to `color`.

    Linear scan; on ties the lowest index wins.

    Returns:
        (index, distance) of the closest centroid.

    Raises:
        ConfigurationError: if `centroids` is empty.
    """
    if len(centroids) == 0:
        raise ConfigurationError("Cannot find the nearest of an empty centroid set")
    best_index, best_distance = 0, float("inf")
    for i, centroid in enumerate(centroids):
        d = distance(color, centroid)
        if d < best_distance:
            best_index, best_distance = i, d
    return best_index, best_distance


def distances(pixels: np.ndarray, color: ColorLike) -> np.ndarray:
    """Distance from every (N, 3) Lab row to a single color."""
    diff = pixels - np.asarray(color, dtype=np.float64)
    return np.sqrt(np.sum(diff * diff, axis=-1))


def nearest_indices(pixels: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized `nearest` over a block of pixels.

    Args:
        pixels (np.ndarray): (N, 3) Lab rows.
        centroids (np.ndarray): (k, 3) Lab rows.

    Returns:
        Tuple[np.ndarray, np.ndarray]: index of the closest centroid for every pixel
        (first minimum on ties, same as `nearest`) and the matching distances.
    """
    if len(centroids) == 0:
        raise ConfigurationError("Cannot find the nearest of an empty centroid set")
    dists = distances(pixels[:, None, :], centroids[None, :, :])
    idx = np.argmin(dists, axis=1)
    return idx, dists[np.arange(len(pixels)), idx]


def to_hex(rgb: Rgb) -> str:
    r, g, b = rgb
    return f"#{r:02x}{g:02x}{b:02x}"


def format_rgb(rgb: Rgb) -> str:
    r, g, b = rgb
    return f"rgb({r}, {g}, {b})"
