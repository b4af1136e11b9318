import warnings
from dataclasses import dataclass

from .config import (DESKTOP_WIDTH_FRACTION, HEADER_HEIGHT, MAX_HEIGHT_FRACTION,
                     MOBILE_WIDTH_FRACTION, PADDING, WIDE_VIEWPORT)
from .errors import DegenerateLayout
from .geometry import Rect


def compute_target_rect(width, height, img_w, img_h):
    """Centre the largest aspect-preserving rect the viewport fractions allow."""
    if img_w <= 0 or img_h <= 0:
        raise ValueError(f"image size must be positive, got {img_w}x{img_h}")
    img_ratio = img_w / img_h
    fraction = DESKTOP_WIDTH_FRACTION if width > WIDE_VIEWPORT else MOBILE_WIDTH_FRACTION
    target_w = width * fraction
    target_h = target_w / img_ratio
    if target_h > height * MAX_HEIGHT_FRACTION:
        target_h = height * MAX_HEIGHT_FRACTION
        target_w = target_h * img_ratio
    return Rect((width - target_w) / 2, (height - target_h) / 2, target_w, target_h)


@dataclass(frozen=True)
class ScatterRegion:
    name: str
    rect: Rect

    def holds(self, piece_w, piece_h):
        return self.rect.w > piece_w and self.rect.h > piece_h


def scatter_regions(width, height, target, header=HEADER_HEIGHT, padding=PADDING):
    """The four bands around the target, below the header and inside the padding."""
    return [
        ScatterRegion("top", Rect(padding, header, width - 2 * padding, target.y - header)),
        ScatterRegion("bottom", Rect(padding, target.bottom, width - 2 * padding,
                                     height - target.bottom - padding)),
        ScatterRegion("left", Rect(padding, header, target.x - padding, height - header - padding)),
        ScatterRegion("right", Rect(target.right, header, width - target.right - padding,
                                    height - header - padding)),
    ]


def get_safe_pos(rng, width, height, target, piece_w, piece_h,
                 header=HEADER_HEIGHT, padding=PADDING, regions=None):
    """Random top-left for a piece, outside the target whenever one fits.

    Pieces may land on top of each other; only the target is avoided.
    """
    if regions is None:
        regions = scatter_regions(width, height, target, header, padding)
    usable = [r for r in regions if r.holds(piece_w, piece_h)]
    if not usable:
        warnings.warn(
            DegenerateLayout(f"no region around {target} fits a {piece_w:.1f}x{piece_h:.1f} piece "
                             f"in a {width}x{height} viewport; using the bottom edge"),
            stacklevel=2,
        )
        hi = max(padding, width - piece_w - padding)
        return rng.uniform(padding, hi), height - piece_h - padding
    region = rng.choice(usable).rect
    x = rng.uniform(region.x, region.right - piece_w)
    y = rng.uniform(region.y, region.bottom - piece_h)
    return x, y


def has_room(width, height, target, piece_w, piece_h, header=HEADER_HEIGHT, padding=PADDING):
    return any(r.holds(piece_w, piece_h)
               for r in scatter_regions(width, height, target, header, padding))
