"""
Named weighting strategies ("moods") used when recomputing cluster means.

A weight function takes one `Lab` color and returns a non-negative weight. The
clustering engine calls it once per sample. Functions marked with `vectorized`
(every built-in mood is) also accept a `Lab` whose fields are arrays and return
one weight per sample; the engine then weighs a whole cluster in one call.
"""

from enum import Enum
from typing import Callable, Dict, List, Union

import numpy as np

from pal.colors import Lab
from pal.config import UnknownMoodError

WeightFunction = Callable[[Lab], Union[float, np.ndarray]]

# Keeps near-black / achromatic samples from getting exactly zero weight.
WEIGHT_FLOOR = 0.05


def vectorized(fn: WeightFunction) -> WeightFunction:
    """Mark a weight function as accepting column-form `Lab` input."""
    fn.vectorized = True
    return fn


def is_vectorized(fn: WeightFunction) -> bool:
    return getattr(fn, "vectorized", False) is True


class Mood(str, Enum):
    DOMINANT = "dominant"
    LIGHT = "light"
    DARK = "dark"
    VIBRANT = "vibrant"
    MUTED = "muted"


def _chroma(color: Lab) -> np.ndarray:
    return np.hypot(color.a, color.b)


@vectorized
def dominant(color: Lab) -> np.ndarray:
    """Every sample counts the same: a plain arithmetic mean."""
    return np.ones_like(np.asarray(color.l, dtype=np.float64))


@vectorized
def light(color: Lab) -> np.ndarray:
    return np.clip(np.asarray(color.l, dtype=np.float64) / 100.0, 0.0, 1.0) + WEIGHT_FLOOR


@vectorized
def dark(color: Lab) -> np.ndarray:
    return np.clip((100.0 - np.asarray(color.l, dtype=np.float64)) / 100.0, 0.0, 1.0) + WEIGHT_FLOOR


@vectorized
def vibrant(color: Lab) -> np.ndarray:
    return _chroma(color) + WEIGHT_FLOOR


@vectorized
def muted(color: Lab) -> np.ndarray:
    return 1.0 / (1.0 + _chroma(color))


_REGISTRY: Dict[str, WeightFunction] = {}


def register(name: Union[str, Mood], fn: WeightFunction, vectorized: bool = False) -> None:
    """
    Register (or replace) a weight function under a mood name.

    `fn` receives one `Lab` color per call and must return a non-negative
    weight; the engine treats negative weights as 0. Pass `vectorized=True`
    only if `fn` also handles column-form `Lab` input.
    """
    if vectorized:
        fn.vectorized = True
    key = name.value if isinstance(name, Mood) else str(name).lower()
    _REGISTRY[key] = fn


def resolve(name: Union[str, Mood]) -> WeightFunction:
    """
    Look up the weight function for a mood.

    Raises:
        UnknownMoodError: if no function is registered under `name`.
    """
    key = name.value if isinstance(name, Mood) else str(name).lower()
    if key not in _REGISTRY:
        available = ", ".join(available_moods())
        raise UnknownMoodError(f"Unknown mood '{name}'. Available: {available}")
    return _REGISTRY[key]


def available_moods() -> List[str]:
    return list(_REGISTRY.keys())


def _register_moods() -> None:
    register(Mood.DOMINANT, dominant)
    register(Mood.LIGHT, light)
    register(Mood.DARK, dark)
    register(Mood.VIBRANT, vibrant)
    register(Mood.MUTED, muted)


_register_moods()
