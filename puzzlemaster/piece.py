import math
from dataclasses import dataclass

from .config import HIT_MARGIN_RATIO
from .geometry import EdgeTabs, Outline, Rect


@dataclass(eq=False)
class Piece:
    """One draggable cell of the puzzle.

    (x, y) is the live top-left of the cell body; tabs may stick out of it.
    target_x/target_y is where that top-left belongs inside the target rect.
    """
    row: int
    col: int
    target_x: float
    target_y: float
    x: float
    y: float
    w: float
    h: float
    edge_tabs: EdgeTabs
    outline: Outline
    locked: bool = False
    z_index: int = 0

    @property
    def grid_pos(self):
        return (self.row, self.col)

    @property
    def target_pos(self):
        return (self.target_x, self.target_y)

    @property
    def pos(self):
        return (self.x, self.y)

    def move_to(self, x, y):
        self.x = x
        self.y = y

    def distance_to_target(self):
        return math.hypot(self.x - self.target_x, self.y - self.target_y)

    def lock(self):
        """Snap onto the target and drop to the background layer for good."""
        self.x = self.target_x
        self.y = self.target_y
        self.locked = True
        self.z_index = 0

    def hit_box(self):
        return Rect(self.x, self.y, self.w, self.h).inflate(self.w * HIT_MARGIN_RATIO,
                                                           self.h * HIT_MARGIN_RATIO)

    def hit(self, px, py):
        # Cheap box first, the curved outline only for candidates.
        if not self.hit_box().contains_point(px, py):
            return False
        return self.outline.contains(px - self.x, py - self.y)

    def to_dict(self):
        return {
            "grid_pos": [self.row, self.col],
            "pos": [self.x, self.y],
            "locked": self.locked,
            "z_index": self.z_index,
        }
