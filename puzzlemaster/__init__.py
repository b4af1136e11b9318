"""Interactive jigsaw puzzle engine."""

from .assets import AssetLoader, RasterImage, read_image
from .config import EngineConfig, load_config
from .engine import (IMAGE_LOAD_FAILED, LEVEL_LOADED, PIECE_SNAPPED, PUZZLE_COMPLETED,
                     PuzzleEngine)
from .errors import ConfigError, DegenerateLayout, ImageLoadFailure, InvalidGridSize, PuzzleError
from .geometry import EdgeTabs, Outline, Rect, TabMap, build_outline, edge_tabs_for, generate_tab_map
from .interaction import DragController, InteractionState, PointerEvent, normalize_pointer
from .layout import compute_target_rect, get_safe_pos, scatter_regions
from .piece import Piece
from .progress import JsonProgressStore, ProgressStore, UserRecord
from .render import Renderer

__all__ = [
    "AssetLoader",
    "RasterImage",
    "read_image",
    "EngineConfig",
    "load_config",
    "PuzzleEngine",
    "LEVEL_LOADED",
    "PIECE_SNAPPED",
    "PUZZLE_COMPLETED",
    "IMAGE_LOAD_FAILED",
    "PuzzleError",
    "ConfigError",
    "DegenerateLayout",
    "ImageLoadFailure",
    "InvalidGridSize",
    "EdgeTabs",
    "Outline",
    "Rect",
    "TabMap",
    "build_outline",
    "edge_tabs_for",
    "generate_tab_map",
    "DragController",
    "InteractionState",
    "PointerEvent",
    "normalize_pointer",
    "compute_target_rect",
    "get_safe_pos",
    "scatter_regions",
    "Piece",
    "JsonProgressStore",
    "ProgressStore",
    "UserRecord",
    "Renderer",
]
