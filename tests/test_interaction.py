"""Tests for pointer normalisation, hit testing and the drag state machine."""

import pygame
import pytest

from puzzlemaster.geometry import EdgeTabs, build_outline
from puzzlemaster.interaction import (DOWN, MOVE, UP, DragController, PointerEvent, hit_test,
                                      normalize_pointer)
from puzzlemaster.piece import Piece


def make_piece(row=0, col=0, x=500.0, y=500.0, target=(100.0, 100.0), size=100.0, tabs=None):
    tabs = tabs or EdgeTabs(0, 0, 0, 0)
    return Piece(row, col, target[0], target[1], x, y, size, size, tabs, build_outline(size, size, tabs))


# --- normalize_pointer ---
def test_mouse_events_become_pointer_events():
    down = pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(30, 40), button=1)
    assert normalize_pointer(down, (800, 600)) == PointerEvent(DOWN, 30, 40)
    moved = pygame.event.Event(pygame.MOUSEMOTION, pos=(35, 45), rel=(5, 5), buttons=(1, 0, 0))
    assert normalize_pointer(moved, (800, 600)).kind == MOVE
    up = pygame.event.Event(pygame.MOUSEBUTTONUP, pos=(35, 45), button=1)
    assert normalize_pointer(up, (800, 600)).kind == UP


def test_origin_makes_coordinates_canvas_local():
    down = pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(30, 40), button=1)
    pointer = normalize_pointer(down, (800, 600), origin=(10, 20))
    assert (pointer.x, pointer.y) == (20, 20)


def test_finger_events_are_scaled_to_the_canvas():
    touch = pygame.event.Event(pygame.FINGERDOWN, x=0.5, y=0.25, dx=0.0, dy=0.0, finger_id=3, touch_id=1)
    pointer = normalize_pointer(touch, (800, 600))
    assert pointer == PointerEvent(DOWN, 400.0, 150.0, ("finger", 3))


def test_non_pointer_and_synthetic_events_are_dropped():
    assert normalize_pointer(pygame.event.Event(pygame.KEYDOWN, key=pygame.K_a), (800, 600)) is None
    right_click = pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(1, 1), button=3)
    assert normalize_pointer(right_click, (800, 600)) is None
    from_touch = pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(1, 1), button=1, touch=True)
    assert normalize_pointer(from_touch, (800, 600)) is None


# --- hit testing ---
def test_highest_z_wins():
    below = make_piece(0, 0)
    above = make_piece(0, 1)
    above.z_index = 5
    assert hit_test([below, above], 550, 550) is above


def test_locked_pieces_are_ignored():
    locked = make_piece(0, 0, x=100.0, y=100.0)
    locked.lock()
    assert hit_test([locked], 150, 150) is None


def test_box_slack_still_needs_the_outline():
    flat = make_piece()
    # Inside the 30% slack box but outside a flat square.
    assert hit_test([flat], 490, 550) is None
    knob = make_piece(tabs=EdgeTabs(0, 0, 0, -1))
    # The left knob reaches 25px out of the cell.
    assert hit_test([knob], 480, 550) is knob


# --- drag state machine ---
def test_pick_records_offset_and_raises_piece():
    piece = make_piece()
    ctl = DragController([piece])
    assert ctl.pointer_down(520, 530) is piece
    assert ctl.dragging
    assert ctl.state.drag_offset == (20, 30)
    assert piece.z_index == 1
    assert ctl.state.next_z_index == 2


def test_miss_is_a_no_op():
    ctl = DragController([make_piece()])
    assert ctl.pointer_down(5, 5) is None
    assert not ctl.dragging
    assert ctl.pointer_move(10, 10) is None
    assert ctl.pointer_up() is None


def test_drag_follows_pointer_without_clamping():
    piece = make_piece()
    ctl = DragController([piece])
    ctl.pointer_down(520, 530)
    ctl.pointer_move(-100, -200)
    assert piece.pos == (-120, -230)


def test_drop_far_away_stays_loose():
    piece = make_piece()
    ctl = DragController([piece])
    ctl.pointer_down(550, 550)
    ctl.pointer_move(400, 400)
    assert ctl.pointer_up() is piece
    assert not piece.locked
    assert piece.pos == (350, 350)
    assert not ctl.dragging
    assert ctl.state.active_piece is None


@pytest.mark.parametrize("distance, snaps", [(30 - 1e-6, True), (30 + 1e-6, False)])
def test_snap_boundary(distance, snaps):
    piece = make_piece(target=(100.0, 100.0))
    ctl = DragController([piece], snap_distance=30)
    ctl.pointer_down(550, 550)
    ctl.pointer_move(100 + distance + 50, 100 + 50)
    ctl.pointer_up()
    assert piece.locked is snaps
    if snaps:
        assert piece.pos == (100.0, 100.0)
        assert piece.z_index == 0


def test_snapped_piece_cannot_be_picked_again():
    piece = make_piece(target=(100.0, 100.0))
    ctl = DragController([piece])
    ctl.pointer_down(550, 550)
    ctl.pointer_move(155, 155)
    ctl.pointer_up()
    assert piece.locked
    assert ctl.pointer_down(150, 150) is None


def test_second_touch_is_ignored_while_dragging():
    first = make_piece(0, 0, x=500.0, y=500.0)
    second = make_piece(0, 1, x=100.0, y=500.0)
    ctl = DragController([first, second])
    ctl.handle(PointerEvent(DOWN, 550, 550, ("finger", 1)))
    assert ctl.handle(PointerEvent(DOWN, 150, 550, ("finger", 2))) is None
    assert ctl.handle(PointerEvent(MOVE, 0, 0, ("finger", 2))) is None
    assert first.pos == (500.0, 500.0)
    assert ctl.handle(PointerEvent(UP, 0, 0, ("finger", 2))) is None
    assert ctl.dragging
    ctl.handle(PointerEvent(MOVE, 560, 560, ("finger", 1)))
    assert first.pos == (510.0, 510.0)
    assert ctl.handle(PointerEvent(UP, 560, 560, ("finger", 1))) is first
    assert not ctl.dragging
