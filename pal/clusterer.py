"""
Weighted k-means++ clustering in L*a*b* space.

The engine seeds k centroids with k-means++, then alternates a parallel
assignment phase (each worker maps a contiguous slice of the pixel buffer to
its nearest centroids) and a sequential weighted-mean update, until no centroid
moves more than the tolerance or the iteration budget runs out.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from pal import config
from pal.colors import Lab, distances, nearest_indices
from pal.config import ConfigurationError, EmptyPaletteError
from pal.weights import WeightFunction, is_vectorized

PixelInput = Union[np.ndarray, Sequence[Lab], Sequence[Sequence[float]]]


class PaletteEntry(NamedTuple):
    color: Lab
    dominance: float


def as_pixel_buffer(pixels: PixelInput) -> np.ndarray:
    """
    Normalize the caller's pixels to a read-only (N, 3) float64 array.

    The returned array is a view where possible; marking the view read-only
    leaves the caller's own array untouched.
    """
    buffer = np.asarray(pixels, dtype=np.float64)
    if buffer.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if buffer.ndim != 2 or buffer.shape[1] != 3:
        raise ConfigurationError(f"Pixel buffer must have shape (N, 3), got {buffer.shape}")
    buffer = buffer.view()
    buffer.flags.writeable = False
    return buffer


def worker_count(k: int, num_pixels: int) -> int:
    """One worker per centroid up to the configured cap, never more workers than pixels."""
    return max(1, min(k, config.max_workers(), num_pixels))


def _chunk_bounds(num_pixels: int, workers: int) -> List[Tuple[int, int]]:
    # Contiguous slices that cover every index, sizes differ by at most one.
    edges = [num_pixels * i // workers for i in range(workers + 1)]
    return list(zip(edges[:-1], edges[1:]))


def _assign_chunk(pixels: np.ndarray, centroids: np.ndarray, start: int, end: int) -> List[np.ndarray]:
    """Map one slice of the buffer to worker-local per-centroid index lists."""
    idx, _ = nearest_indices(pixels[start:end], centroids)
    return [start + np.flatnonzero(idx == i) for i in range(len(centroids))]


def assign_clusters(
    pixels: np.ndarray,
    centroids: np.ndarray,
    workers: Optional[int] = None,
) -> List[np.ndarray]:
    """
    Assignment phase: partition the pixel indices by nearest centroid.

    A thread pool is created for this phase only and joined before returning.
    Worker results are concatenated in worker order, so every cluster lists its
    pixel indices in ascending order.

    Args:
        pixels (np.ndarray): (N, 3) read-only pixel buffer.
        centroids (np.ndarray): (k, 3) centroid snapshot; not modified.
        workers (int, optional): number of workers. Defaults to `worker_count(k, N)`.

    Returns:
        List[np.ndarray]: k integer index arrays, disjoint and covering range(N).
    """
    k = len(centroids)
    if workers is None:
        workers = worker_count(k, len(pixels))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pal-assign") as executor:
        futures = [
            executor.submit(_assign_chunk, pixels, centroids, start, end)
            for start, end in _chunk_bounds(len(pixels), workers)
        ]
        partials = [future.result() for future in futures]

    return [np.concatenate([partial[i] for partial in partials]) for i in range(k)]


def weighted_mean(samples: np.ndarray, weight_fn: WeightFunction) -> Optional[np.ndarray]:
    """
    Weighted average of (M, 3) Lab rows, or None when it is undefined
    (no samples, or the weights sum to zero).

    `weight_fn` is called once per sample unless it is marked `vectorized`, in
    which case the whole cluster goes through in one column-form call.
    Negative weights count as 0.
    """
    if len(samples) == 0:
        return None
    if is_vectorized(weight_fn):
        weights = np.asarray(weight_fn(Lab(*samples.T)), dtype=np.float64)
        weights = np.broadcast_to(weights, (len(samples),))
    else:
        weights = np.fromiter(
            (float(weight_fn(Lab(*row))) for row in samples.tolist()), dtype=np.float64, count=len(samples)
        )
    weights = np.maximum(weights, 0.0)
    total = weights.sum()
    if not total > 0:
        return None
    return (weights[:, None] * samples).sum(axis=0) / total


def update_centroids(
    pixels: np.ndarray,
    clusters: List[np.ndarray],
    centroids: np.ndarray,
    weight_fn: WeightFunction,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recompute each centroid as the weighted mean of its cluster.

    A cluster whose mean is undefined (empty, or zero total weight) keeps its
    previous centroid, so its displacement is 0.

    Returns:
        Tuple[np.ndarray, np.ndarray]: the new (k, 3) centroids and the per-centroid displacement.
    """
    updated = np.array(centroids, dtype=np.float64, copy=True)
    displacement = np.zeros(len(centroids))

    for i, members in enumerate(clusters):
        mean = weighted_mean(pixels[members], weight_fn)
        if mean is None:
            logger.debug(f"Cluster {i} has no weight this round, keeping its centroid")
            continue
        updated[i] = mean
        displacement[i] = distances(mean, centroids[i])

    return updated, displacement


def seed_centroids(pixels: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    k-means++ seeding.

    The first centroid is drawn uniformly; each further centroid is drawn with
    probability proportional to the squared distance to the nearest centroid
    chosen so far. When that distribution degenerates (every pixel already
    sits on a centroid) seeding stops early and fewer than k rows come back.

    Returns:
        np.ndarray: (m, 3) centroids with 1 <= m <= k.
    """
    first = int(rng.integers(len(pixels)))
    seeds = [pixels[first]]
    nearest_dist = distances(pixels, seeds[0])

    for _ in range(k - 1):
        d2 = nearest_dist ** 2
        total = d2.sum()
        if not np.isfinite(total) or total <= 0:
            logger.warning(
                f"Weighted seeding distribution degenerated after {len(seeds)} of {k} centroids; "
                "returning the partial set"
            )
            break
        chosen = int(rng.choice(len(pixels), p=d2 / total))
        seeds.append(pixels[chosen])
        nearest_dist = np.minimum(nearest_dist, distances(pixels, pixels[chosen]))

    return np.array(seeds, dtype=np.float64)


def _finalize(centroids: np.ndarray, clusters: List[np.ndarray], num_pixels: int) -> List[PaletteEntry]:
    return [
        PaletteEntry(Lab(*(float(c) for c in centroid)), len(members) / num_pixels)
        for centroid, members in zip(centroids, clusters)
    ]


def cluster(
    pixels: PixelInput,
    weight_fn: WeightFunction,
    k: int,
    rng: Optional[np.random.Generator] = None,
    tolerance: float = config.TOLERANCE,
    max_iter: int = config.MAX_ITER,
) -> List[PaletteEntry]:
    """
    Find the k dominant colors of a pixel buffer.

    Args:
        pixels: (N, 3) L*a*b* pixels, one row per pixel.
        weight_fn: weight function used for the centroid means (see `pal.weights`).
        k (int): number of clusters, >= 1. When the buffer holds fewer than k
            distinct colors the result simply has fewer entries.
        rng (np.random.Generator, optional): random source for seeding. Pass a
            seeded generator for reproducible output.
        tolerance (float): a centroid moving further than this keeps the loop going.
        max_iter (int): iteration budget.

    Returns:
        List[PaletteEntry]: (centroid, dominance) per cluster, in centroid index
        order (not sorted by dominance). Dominances sum to 1.

    Raises:
        EmptyPaletteError: if there are no pixels.
        ConfigurationError: if k < 1 or the buffer is malformed.
    """
    if k < 1:
        raise ConfigurationError(f"Number of colors must be at least 1, got {k}")
    if max_iter < 1:
        raise ConfigurationError(f"max_iter must be at least 1, got {max_iter}")
    buffer = as_pixel_buffer(pixels)
    num_pixels = len(buffer)
    if num_pixels == 0:
        raise EmptyPaletteError("No valid colors found: the pixel buffer is empty")
    if rng is None:
        rng = np.random.default_rng()

    workers = worker_count(k, num_pixels)
    logger.info(f"Clustering {num_pixels} pixels into {k} colors using {workers} worker(s)")

    centroids = seed_centroids(buffer, k, rng)
    if len(centroids) < k:
        # Not enough distinct colors: report the seeds by how many pixels they attract
        return _finalize(centroids, assign_clusters(buffer, centroids), num_pixels)

    for iteration in range(1, max_iter + 1):
        clusters = assign_clusters(buffer, centroids, workers)
        centroids, displacement = update_centroids(buffer, clusters, centroids, weight_fn)
        logger.debug(f"Iteration {iteration}: max displacement {displacement.max():.6f}")
        if not np.any(displacement > tolerance):
            logger.info(f"Converged after {iteration} iteration(s)")
            break
    else:
        logger.info(f"Stopped after reaching the iteration limit ({max_iter})")

    return _finalize(centroids, clusters, num_pixels)
