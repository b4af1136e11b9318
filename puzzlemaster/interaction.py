"""Pointer handling: normalising pygame input, hit tests, drag and snap."""
import logging
from dataclasses import dataclass

import pygame

from .config import SNAP_DISTANCE

logger = logging.getLogger(__name__)

DOWN, MOVE, UP = "down", "move", "up"
MOUSE_POINTER = "mouse"

_MOUSE_KINDS = {
    pygame.MOUSEBUTTONDOWN: DOWN,
    pygame.MOUSEMOTION: MOVE,
    pygame.MOUSEBUTTONUP: UP,
}
_FINGER_KINDS = {
    pygame.FINGERDOWN: DOWN,
    pygame.FINGERMOTION: MOVE,
    pygame.FINGERUP: UP,
}


@dataclass(frozen=True)
class PointerEvent:
    kind: str
    x: float
    y: float
    pointer_id: object = MOUSE_POINTER


def normalize_pointer(event, canvas_size, origin=(0, 0)):
    """Turn a pygame mouse or finger event into canvas-local pixels.

    Finger coordinates arrive normalised to the window, so they are scaled by
    canvas_size. Mouse events that SDL synthesises from touches are dropped so
    each touch is seen once. Returns None for anything that is not a pointer.
    """
    if event.type in _MOUSE_KINDS:
        if getattr(event, "touch", False):
            return None
        if event.type != pygame.MOUSEMOTION and getattr(event, "button", 1) != 1:
            return None
        x, y = event.pos
        pointer_id = MOUSE_POINTER
        kind = _MOUSE_KINDS[event.type]
    elif event.type in _FINGER_KINDS:
        x = event.x * canvas_size[0]
        y = event.y * canvas_size[1]
        pointer_id = ("finger", event.finger_id)
        kind = _FINGER_KINDS[event.type]
    else:
        return None
    return PointerEvent(kind, x - origin[0], y - origin[1], pointer_id)


@dataclass
class InteractionState:
    dragging: bool = False
    active_piece: object = None
    active_pointer: object = None
    drag_offset: tuple = (0.0, 0.0)
    next_z_index: int = 1

    def release(self):
        self.dragging = False
        self.active_piece = None
        self.active_pointer = None
        self.drag_offset = (0.0, 0.0)


def hit_test(pieces, x, y):
    """Topmost unlocked piece under (x, y), or None."""
    loose = sorted((p for p in pieces if not p.locked), key=lambda p: p.z_index, reverse=True)
    for piece in loose:
        if piece.hit(x, y):
            return piece
    return None


class DragController:
    """Idle/Dragging state machine over a piece list it does not own."""

    def __init__(self, pieces, snap_distance=SNAP_DISTANCE, state=None):
        self.pieces = pieces
        self.snap_distance = snap_distance
        self.state = state or InteractionState()

    @property
    def dragging(self):
        return self.state.dragging

    def handle(self, pointer):
        if pointer.kind == DOWN:
            return self.pointer_down(pointer.x, pointer.y, pointer.pointer_id)
        if pointer.kind == MOVE:
            return self.pointer_move(pointer.x, pointer.y, pointer.pointer_id)
        return self.pointer_up(pointer.pointer_id)

    def pointer_down(self, x, y, pointer_id=MOUSE_POINTER):
        s = self.state
        if s.dragging:
            return None
        hit = hit_test(self.pieces, x, y)
        if hit is None:
            return None
        s.dragging = True
        s.active_piece = hit
        s.active_pointer = pointer_id
        s.drag_offset = (x - hit.x, y - hit.y)
        hit.z_index = s.next_z_index
        s.next_z_index += 1
        logger.debug("picked piece %s at (%.1f, %.1f)", hit.grid_pos, x, y)
        return hit

    def pointer_move(self, x, y, pointer_id=MOUSE_POINTER):
        s = self.state
        if not s.dragging or s.active_piece is None or pointer_id != s.active_pointer:
            return None
        s.active_piece.move_to(x - s.drag_offset[0], y - s.drag_offset[1])
        return s.active_piece

    def pointer_up(self, pointer_id=MOUSE_POINTER):
        """Drop the held piece, snapping it home if close enough.

        Returns the dropped piece; its `locked` flag tells whether it snapped.
        """
        s = self.state
        if not s.dragging or s.active_piece is None or pointer_id != s.active_pointer:
            return None
        piece = s.active_piece
        if piece.distance_to_target() < self.snap_distance:
            piece.lock()
            logger.debug("piece %s snapped", piece.grid_pos)
        s.release()
        return piece
