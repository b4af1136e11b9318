import logging
import math
import os

import pygame
from PIL import Image, ImageChops, ImageDraw, ImageFilter

from .config import (BACKGROUND_COLOR, GUIDE_COLOR, OUTLINE_COLOR, PLACEHOLDER_COLOR,
                     SHADOW_COLOR, TEXTURE_MARGIN_RATIO)

logger = logging.getLogger(__name__)

SHADOW_OFFSET = (2, 2)
SHADOW_BLUR = 5
DASH = 5
GAP = 5
GUIDE_WIDTH = 2


def to_surface(image):
    """PIL RGBA image -> pygame surface with per-pixel alpha."""
    return pygame.image.frombytes(image.tobytes(), image.size, "RGBA")


def texture_margin(piece):
    return max(piece.w, piece.h) * TEXTURE_MARGIN_RATIO


def piece_mask(piece, margin, size):
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).polygon(piece.outline.offset_polygon(margin, margin), fill=255)
    return mask


def sample_texture(raster, crop, target, piece, margin, size):
    """Cut the piece's image region, tab overflow included, scaled to size."""
    scale_x = crop.w / target.w
    scale_y = crop.h / target.h
    origin_x = crop.x + piece.col * piece.w * scale_x
    origin_y = crop.y + piece.row * piece.h * scale_y
    sx = origin_x - margin * scale_x
    sy = origin_y - margin * scale_y
    box = (sx, sy, sx + size[0] * scale_x, sy + size[1] * scale_y)
    # Out-of-bounds parts of the box come back transparent.
    return raster.image.crop(box).resize(size, Image.Resampling.BILINEAR)


def build_piece_image(piece, raster=None, crop=None, target=None):
    margin = texture_margin(piece)
    size = (math.ceil(piece.w + 2 * margin), math.ceil(piece.h + 2 * margin))
    mask = piece_mask(piece, margin, size)
    if raster is None:
        tile = Image.new("RGBA", size, PLACEHOLDER_COLOR)
    else:
        tile = sample_texture(raster, crop, target, piece, margin, size).convert("RGBA")
    tile.putalpha(ImageChops.multiply(tile.getchannel("A"), mask))
    stroke = Image.new("RGBA", size, (0, 0, 0, 0))
    poly = piece.outline.offset_polygon(margin, margin)
    ImageDraw.Draw(stroke).line(poly + [poly[0]], fill=OUTLINE_COLOR, width=1)
    return Image.alpha_composite(tile, stroke), mask


def build_shadow_image(mask):
    shadow = Image.new("RGBA", mask.size, SHADOW_COLOR[:3] + (0,))
    alpha = mask.filter(ImageFilter.GaussianBlur(SHADOW_BLUR))
    shadow.putalpha(alpha.point(lambda v: v * SHADOW_COLOR[3] // 255))
    return shadow


def draw_dashed_rect(surface, rect, color=GUIDE_COLOR, dash=DASH, gap=GAP, width=GUIDE_WIDTH):
    overlay = pygame.Surface((math.ceil(rect.w) + width * 2, math.ceil(rect.h) + width * 2), pygame.SRCALPHA)
    x0, y0 = width, width
    x1, y1 = width + rect.w, width + rect.h
    corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
    for (ax, ay), (bx, by) in zip(corners, corners[1:] + corners[:1]):
        length = math.hypot(bx - ax, by - ay)
        pos = 0.0
        while pos < length:
            end = min(pos + dash, length)
            start_pt = (ax + (bx - ax) * pos / length, ay + (by - ay) * pos / length)
            end_pt = (ax + (bx - ax) * end / length, ay + (by - ay) * end / length)
            pygame.draw.line(overlay, color, start_pt, end_pt, width)
            pos += dash + gap
    surface.blit(overlay, (round(rect.x) - width, round(rect.y) - width))


class PieceSprite:
    __slots__ = ("surface", "shadow", "margin")

    def __init__(self, surface, shadow, margin):
        self.surface = surface
        self.shadow = shadow
        self.margin = margin


class Renderer:
    """Paints an engine's state; piece sprites are built once and cached."""

    def __init__(self, background=BACKGROUND_COLOR):
        self.background = background
        self._sprites = {}
        self._cache_key = None

    def _sprite(self, engine, piece):
        key = (engine.generation, id(engine.image))
        if key != self._cache_key:
            self._sprites = {}
            self._cache_key = key
        sprite = self._sprites.get(piece.grid_pos)
        if sprite is None:
            image, mask = build_piece_image(piece, engine.image, engine.source_crop, engine.target_rect)
            sprite = PieceSprite(to_surface(image), to_surface(build_shadow_image(mask)),
                                 texture_margin(piece))
            self._sprites[piece.grid_pos] = sprite
        return sprite

    def draw(self, surface, engine):
        surface.fill(self.background)
        if engine.target_rect is None:
            return
        draw_dashed_rect(surface, engine.target_rect)
        locked = [p for p in engine.pieces if p.locked]
        loose = sorted((p for p in engine.pieces if not p.locked), key=lambda p: p.z_index)
        for piece in locked + loose:
            self.draw_piece(surface, engine, piece)

    def draw_piece(self, surface, engine, piece, offset=(0, 0)):
        sprite = self._sprite(engine, piece)
        x = round(piece.x - sprite.margin + offset[0])
        y = round(piece.y - sprite.margin + offset[1])
        if not piece.locked:
            surface.blit(sprite.shadow, (x + SHADOW_OFFSET[0], y + SHADOW_OFFSET[1]))
        surface.blit(sprite.surface, (x, y))

    def export_completed(self, engine, filename):
        """Save the assembled target area as a JPEG."""
        rect = engine.target_rect
        completed = pygame.Surface((math.ceil(rect.w), math.ceil(rect.h)))
        completed.fill(self.background)
        for piece in engine.pieces:
            self.draw_piece(completed, engine, piece, offset=(-rect.x, -rect.y))
        save_surface_as_jpg(completed, filename)
        return filename


def save_surface_as_jpg(surface, filename):
    folder = os.path.dirname(filename)
    if folder and not os.path.exists(folder):
        os.makedirs(folder)
    data = pygame.image.tobytes(surface, "RGB")
    img = Image.frombytes("RGB", surface.get_size(), data)
    img.save(filename, "JPEG")
    logger.info("saved completed puzzle as %s", filename)
