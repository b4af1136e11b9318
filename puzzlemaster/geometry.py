"""Piece geometry: tab polarity, closed outlines and point-in-outline tests.

An outline is built in piece-local coordinates with the cell's top-left at
(0, 0) and traversed clockwise (top, right, bottom, left) in screen space,
where y grows downward. Each tabbed edge bends along the normal obtained by
rotating its direction a quarter turn, so a +1 tab dents into the piece and
a -1 tab bulges out of it. Two cells sharing an edge always carry opposite
tabs, which makes one a knob and the other the matching socket.
"""
import math
import random
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from .config import TAB_SIZE_RATIO

POLARITIES = (-1, 1)
EDGE_VALUES = (-1, 0, 1)

# Fractions of the edge where the tab starts and ends.
TAB_START = 0.35
TAB_END = 0.65
# Control point offsets, as fractions of tab size (out) or edge length (along).
NECK_OUT = 0.2
SHOULDER_OUT = 0.9
SHOULDER_ALONG = 0.1

CURVE_SAMPLES = 12


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    w: float
    h: float

    @property
    def right(self):
        return self.x + self.w

    @property
    def bottom(self):
        return self.y + self.h

    def contains_point(self, px, py):
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def intersects(self, other):
        """True when the interiors overlap; shared borders do not count."""
        return (self.x < other.right and other.x < self.right and
                self.y < other.bottom and other.y < self.bottom)

    def inflate(self, dx, dy):
        return Rect(self.x - dx, self.y - dy, self.w + 2 * dx, self.h + 2 * dy)

    def to_dict(self):
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    @classmethod
    def from_dict(cls, data):
        return cls(float(data["x"]), float(data["y"]), float(data["w"]), float(data["h"]))


@dataclass(frozen=True)
class TabMap:
    """Polarity of every internal edge of a rows x cols grid.

    vertical[r][c] is the edge between (r, c) and (r, c + 1);
    horizontal[r][c] is the edge between (r, c) and (r + 1, c).
    """
    rows: int
    cols: int
    vertical: tuple
    horizontal: tuple

    def __post_init__(self):
        if self.rows < 1 or self.cols < 1:
            raise ValueError(f"tab map needs a positive grid, got {self.rows}x{self.cols}")
        object.__setattr__(self, "vertical", tuple(tuple(row) for row in self.vertical))
        object.__setattr__(self, "horizontal", tuple(tuple(row) for row in self.horizontal))
        if len(self.vertical) != self.rows or any(len(r) != self.cols - 1 for r in self.vertical):
            raise ValueError("vertical tabs must be rows x (cols - 1)")
        if len(self.horizontal) != self.rows - 1 or any(len(r) != self.cols for r in self.horizontal):
            raise ValueError("horizontal tabs must be (rows - 1) x cols")
        for grid in (self.vertical, self.horizontal):
            for row in grid:
                for value in row:
                    if value not in POLARITIES:
                        raise ValueError(f"tab polarity must be +1 or -1, got {value!r}")

    def to_dict(self):
        return {
            "rows": self.rows,
            "cols": self.cols,
            "vertical": [list(r) for r in self.vertical],
            "horizontal": [list(r) for r in self.horizontal],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(data["rows"], data["cols"], data["vertical"], data["horizontal"])


@dataclass(frozen=True)
class EdgeTabs:
    top: int
    right: int
    bottom: int
    left: int

    def __post_init__(self):
        for side in ("top", "right", "bottom", "left"):
            if getattr(self, side) not in EDGE_VALUES:
                raise ValueError(f"{side} tab must be -1, 0 or 1, got {getattr(self, side)!r}")


def generate_tab_map(rows, cols=None, rng=None):
    """Draw every internal edge independently from {-1, +1}."""
    cols = rows if cols is None else cols
    rng = rng or random.Random()
    vertical = [[rng.choice(POLARITIES) for _ in range(cols - 1)] for _ in range(rows)]
    horizontal = [[rng.choice(POLARITIES) for _ in range(cols)] for _ in range(rows - 1)]
    return TabMap(rows, cols, vertical, horizontal)


def edge_tabs_for(tab_map, row, col):
    if not (0 <= row < tab_map.rows and 0 <= col < tab_map.cols):
        raise IndexError(f"cell ({row}, {col}) outside {tab_map.rows}x{tab_map.cols} grid")
    return EdgeTabs(
        top=0 if row == 0 else -tab_map.horizontal[row - 1][col],
        right=0 if col == tab_map.cols - 1 else tab_map.vertical[row][col],
        bottom=0 if row == tab_map.rows - 1 else tab_map.horizontal[row][col],
        left=0 if col == 0 else -tab_map.vertical[row][col - 1],
    )


# --- Outline Construction ---
def lerp(a, b, t):
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def generate_edge(start, end, tab, tab_size):
    """Segments running from start to end; start itself is not emitted."""
    if tab == 0:
        return [("line", end)]
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return [("line", end)]
    nx, ny = -dy / length, dx / length
    out = tab * tab_size
    mid = lerp(start, end, 0.5)
    b1 = lerp(start, end, TAB_START)
    b2 = lerp(start, end, TAB_END)
    neck1 = (b1[0] + nx * out * NECK_OUT, b1[1] + ny * out * NECK_OUT)
    neck2 = (b2[0] + nx * out * NECK_OUT, b2[1] + ny * out * NECK_OUT)
    shoulder1 = (mid[0] - dx * SHOULDER_ALONG + nx * out * SHOULDER_OUT,
                 mid[1] - dy * SHOULDER_ALONG + ny * out * SHOULDER_OUT)
    shoulder2 = (mid[0] + dx * SHOULDER_ALONG + nx * out * SHOULDER_OUT,
                 mid[1] + dy * SHOULDER_ALONG + ny * out * SHOULDER_OUT)
    tip = (mid[0] + nx * out, mid[1] + ny * out)
    return [
        ("line", b1),
        ("cubic", neck1, shoulder1, tip),
        ("cubic", shoulder2, neck2, b2),
        ("line", end),
    ]


@dataclass(frozen=True)
class Outline:
    width: float
    height: float
    segments: tuple

    def polygon(self, samples=CURVE_SAMPLES):
        return flatten(self.segments, samples)

    def contains(self, x, y):
        """Precise test for a piece-local point."""
        return point_in_polygon(self.polygon(), x, y)

    def offset_polygon(self, dx, dy, samples=CURVE_SAMPLES):
        return [(px + dx, py + dy) for px, py in self.polygon(samples)]


def tab_size_for(w, h):
    return min(w, h) * TAB_SIZE_RATIO


def build_outline(w, h, edge_tabs):
    if w <= 0 or h <= 0:
        raise ValueError(f"piece size must be positive, got {w}x{h}")
    ts = tab_size_for(w, h)
    tl, tr, br, bl = (0.0, 0.0), (w, 0.0), (w, h), (0.0, h)
    segments = (generate_edge(tl, tr, edge_tabs.top, ts) +
                generate_edge(tr, br, edge_tabs.right, ts) +
                generate_edge(br, bl, edge_tabs.bottom, ts) +
                generate_edge(bl, tl, edge_tabs.left, ts))
    return Outline(w, h, tuple(segments))


def cubic_point(p0, c1, c2, p3, t):
    u = 1 - t
    a, b, c, d = u * u * u, 3 * u * u * t, 3 * u * t * t, t * t * t
    return (a * p0[0] + b * c1[0] + c * c2[0] + d * p3[0],
            a * p0[1] + b * c1[1] + c * c2[1] + d * p3[1])


@lru_cache(maxsize=4096)
def flatten(segments, samples=CURVE_SAMPLES):
    points = [(0.0, 0.0)]
    for seg in segments:
        if seg[0] == "line":
            points.append(seg[1])
        else:
            p0 = points[-1]
            _, c1, c2, p3 = seg
            for i in range(1, samples + 1):
                points.append(cubic_point(p0, c1, c2, p3, i / samples))
    # The path closes on its starting corner.
    if points[-1] == points[0]:
        points.pop()
    return tuple(points)


def point_in_polygon(points, x, y):
    """Even-odd ray cast against a closed polygon."""
    pts = np.asarray(points, dtype=float)
    xi, yi = pts[:, 0], pts[:, 1]
    xj, yj = np.roll(xi, 1), np.roll(yi, 1)
    crosses = (yi > y) != (yj > y)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_at = (xj - xi) * (y - yi) / (yj - yi) + xi
    return bool(np.count_nonzero(crosses & (x < x_at)) % 2)
