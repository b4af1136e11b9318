import json
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

# --- Global Settings ---
SNAP_DISTANCE = 30
BASE_GRID_SIZE = 8
HEADER_HEIGHT = 80
PADDING = 10
LEVEL_ASSETS = (
    "stage_1.png",
    "stage_2.png",
    "stage_3.png",
    "stage_4.png",
    "stage_5.png",
)
ASSET_DIR = "images"
SAVE_DIR = "saves"

# --- Layout Tuning ---
WIDE_VIEWPORT = 800          # viewports wider than this use the desktop fraction
DESKTOP_WIDTH_FRACTION = 0.6
MOBILE_WIDTH_FRACTION = 0.96
MAX_HEIGHT_FRACTION = 0.7

# --- Piece Shape ---
TAB_SIZE_RATIO = 0.25        # of min(w, h)
HIT_MARGIN_RATIO = 0.3       # bounding box slack for tab overflow
TEXTURE_MARGIN_RATIO = 0.5   # of max(w, h)

# --- Colours ---
GUIDE_COLOR = (255, 20, 147, 77)
PLACEHOLDER_COLOR = (255, 105, 180, 255)
OUTLINE_COLOR = (255, 255, 255, 102)
SHADOW_COLOR = (0, 0, 0, 77)
BACKGROUND_COLOR = (30, 30, 30)


class EngineConfig(BaseModel):
    """Engine settings. Unknown keys and wrongly typed values are rejected."""
    model_config = ConfigDict(extra="forbid")

    snap_distance: float = Field(SNAP_DISTANCE, gt=0, strict=True)
    base_grid_size: int = Field(BASE_GRID_SIZE, ge=1, strict=True)
    level_assets: Tuple[str, ...] = Field(LEVEL_ASSETS, min_length=1)
    header_height: float = Field(HEADER_HEIGHT, ge=0, strict=True)
    padding: float = Field(PADDING, ge=0, strict=True)
    asset_dir: str = ASSET_DIR
    save_dir: str = SAVE_DIR

    def asset_for_level(self, level):
        """Image identifier for a 1-based level; the list repeats."""
        return self.level_assets[(level - 1) % len(self.level_assets)]

    def grid_size_for_level(self, level):
        return self.base_grid_size + (level - 1)

    @classmethod
    def from_dict(cls, data):
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid config: {exc}") from exc


def load_config(path=None):
    """Read an EngineConfig from a JSON file, or return the defaults."""
    if path is None:
        return EngineConfig()
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"could not read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a JSON object")
    return EngineConfig.from_dict(data)
