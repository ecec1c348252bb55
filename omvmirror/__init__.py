"""Local mirror of Flemish omgevingsloket permit cases."""

from .casenumber import normalize_case_id
from .config import Config, load_config
from .errors import (
    FetchError,
    MirrorError,
    PathCollisionError,
    UnimplementedNodeError,
    ValidationError,
)
from .mirror import MirrorResult, mirror_case, run

__version__ = "0.1.0"

__all__ = [
    "Config",
    "FetchError",
    "MirrorError",
    "MirrorResult",
    "PathCollisionError",
    "UnimplementedNodeError",
    "ValidationError",
    "load_config",
    "mirror_case",
    "normalize_case_id",
    "run",
]
