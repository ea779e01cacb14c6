import os
import sys
from typing import Dict, List, Optional

from loguru import logger

# Clustering engine
TOLERANCE = 1e-4
MAX_ITER = 300
MAX_WORKERS = 5

# Image loading / output
DEFAULT_NUM_COLORS = 5
MAX_NUM_COLORS = 12
DEFAULT_MAX_SIZE = 512
DEFAULT_MOOD = "dominant"
STRIP_WIDTH = 500
STRIP_HEIGHT = 100

SUPPORTED_EXTENSIONS = (".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp")

PRESETS: Dict[str, Dict[str, object]] = {
    "minimal": {"num_colors": 3, "mood": "dominant"},
    "standard": {"num_colors": 5, "mood": "dominant"},
    "detailed": {"num_colors": 12, "mood": "dominant"},
    "pastel": {"num_colors": 6, "mood": "light"},
    "neon": {"num_colors": 6, "mood": "vibrant"},
}


class PaletteError(Exception):
    """Base class for everything palettegen raises on purpose."""


class ConfigurationError(PaletteError, ValueError):
    """A request that is invalid before any clustering starts."""


class UnknownMoodError(ConfigurationError):
    pass


class EmptyPaletteError(PaletteError):
    """No colors could be produced (e.g. the pixel buffer was empty)."""


class ArgumentError(ConfigurationError):
    """Collects every argument problem found so they can be reported together."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        lines = ["Argument validation error:"]
        lines += [f"\t{i}. {error}" for i, error in enumerate(self.errors, start=1)]
        return "\n".join(lines)


def max_workers() -> int:
    """Worker cap for the assignment phase, overridable via PALETTEGEN_MAX_WORKERS."""
    raw = os.environ.get("PALETTEGEN_MAX_WORKERS")
    if raw is None:
        return MAX_WORKERS
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"PALETTEGEN_MAX_WORKERS must be an integer, got '{raw}'")
    if value < 1:
        raise ConfigurationError(f"PALETTEGEN_MAX_WORKERS must be >= 1, got {value}")
    return value


def resolve_preset(name: Optional[str]) -> Dict[str, object]:
    if name is None:
        return {}
    if name not in PRESETS:
        available = ", ".join(PRESETS.keys())
        raise ConfigurationError(f"Unknown preset '{name}'. Available: {available}")
    return dict(PRESETS[name])


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function} | {message}"


def configure_logging(level: Optional[str] = None) -> None:
    """Route loguru output to stderr at `level` (default: PALETTEGEN_LOG_LEVEL or WARNING)."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=(level or os.environ.get("PALETTEGEN_LOG_LEVEL", "WARNING")).upper(),
    )
