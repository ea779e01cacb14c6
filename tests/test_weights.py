# tests/test_weights.py
import math
import numpy as np
import pytest
from pal import clusterer, weights
from pal.colors import Lab
from pal.config import ConfigurationError, UnknownMoodError


def test_dominant_weights_everything_equally():
    fn = weights.resolve("dominant")
    assert float(fn(Lab(20.0, 5.0, -3.0))) == 1.0
    column = Lab(np.array([0.0, 50.0, 100.0]), np.zeros(3), np.zeros(3))
    assert np.array_equal(fn(column), np.ones(3))


def test_resolve_accepts_enum_and_any_case():
    assert weights.resolve(weights.Mood.VIBRANT) is weights.vibrant
    assert weights.resolve("LIGHT") is weights.light


def test_unknown_mood_is_a_configuration_error():
    with pytest.raises(UnknownMoodError) as excinfo:
        weights.resolve("sparkly")
    assert "sparkly" in str(excinfo.value)
    assert "dominant" in str(excinfo.value)
    assert isinstance(excinfo.value, ConfigurationError)
    assert isinstance(excinfo.value, ValueError)


def test_available_moods():
    assert set(weights.available_moods()) >= {"dominant", "light", "dark", "vibrant", "muted"}


@pytest.mark.parametrize("mood", ["dominant", "light", "dark", "vibrant", "muted"])
def test_moods_are_positive_in_column_form(mood):
    rng = np.random.default_rng(0)
    samples = rng.uniform([0, -100, -100], [100, 100, 100], size=(500, 3))
    result = np.broadcast_to(np.asarray(weights.resolve(mood)(Lab(*samples.T)), dtype=float), (500,))
    assert np.all(result > 0)
    assert np.all(np.isfinite(result))


def test_light_and_dark_prefer_opposite_ends():
    bright, dim = Lab(95.0, 0.0, 0.0), Lab(5.0, 0.0, 0.0)
    assert weights.light(bright) > weights.light(dim)
    assert weights.dark(dim) > weights.dark(bright)


def test_vibrant_and_muted_prefer_opposite_chroma():
    grey, saturated = Lab(50.0, 0.0, 0.0), Lab(50.0, 60.0, 40.0)
    assert weights.vibrant(saturated) > weights.vibrant(grey)
    assert weights.muted(grey) > weights.muted(saturated)


def test_register_custom_mood():
    def lightness_only(color):
        return np.asarray(color.l, dtype=float)

    weights.register("lightness-only", lightness_only)
    try:
        assert weights.resolve("lightness-only") is lightness_only
    finally:
        weights._REGISTRY.pop("lightness-only", None)


def test_builtin_moods_are_vectorized():
    for mood in weights.Mood:
        assert weights.is_vectorized(weights.resolve(mood))


def test_registered_function_is_per_sample_unless_flagged():
    def plain(color):
        return 1.0

    def columns(color):
        return np.ones_like(np.asarray(color.l, dtype=float))

    weights.register("plain", plain)
    weights.register("columns", columns, vectorized=True)
    try:
        assert not weights.is_vectorized(weights.resolve("plain"))
        assert weights.is_vectorized(weights.resolve("columns"))
    finally:
        weights._REGISTRY.pop("plain", None)
        weights._REGISTRY.pop("columns", None)


def test_scalar_weight_function_clusters_through_the_registry():
    seen = []

    def chroma_plus(color):
        seen.append(type(color.l))
        return math.hypot(color.a, color.b) + 0.1

    pixels = np.array([[40.0, 3.0, 4.0], [60.0, 0.0, 0.0], [50.0, -6.0, 8.0]])
    w = np.array([5.1, 0.1, 10.1])
    expected = (w[:, None] * pixels).sum(axis=0) / w.sum()

    weights.register("chroma-plus", chroma_plus)
    try:
        fn = weights.resolve("chroma-plus")
        [(color, dominance)] = clusterer.cluster(pixels, fn, 1, rng=np.random.default_rng(0))
    finally:
        weights._REGISTRY.pop("chroma-plus", None)

    assert np.allclose(color, expected)
    assert dominance == 1.0
    assert seen and set(seen) == {float}
