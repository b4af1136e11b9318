"""Shared test fixtures."""

import os
import random
from concurrent.futures import Future

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pytest
from PIL import Image

from puzzlemaster.assets import RasterImage
from puzzlemaster.config import EngineConfig
from puzzlemaster.engine import PuzzleEngine
from puzzlemaster.progress import ProgressStore

RED = (200, 30, 30)


def make_raster(width=800, height=600, color=RED):
    return RasterImage.from_pil(Image.new("RGB", (width, height), color), f"{width}x{height}")


def done_future(result=None, error=None):
    future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
    return future


class ImmediateExecutor:
    """Runs submitted work inline and hands back an already finished future."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait=True):
        pass


class StubLoader:
    """Finishes every load immediately with a fixed image or error per level."""

    def __init__(self, images=None, default=None):
        self.images = images or {}
        self.default = default if default is not None else make_raster()
        self.requests = []

    def load_image(self, level):
        self.requests.append(level)
        outcome = self.images.get(level, self.default)
        if isinstance(outcome, Exception):
            return done_future(error=outcome)
        return done_future(outcome)

    def close(self):
        pass


class ManualLoader:
    """Hands out pending futures the test completes by hand."""

    def __init__(self):
        self.requests = []

    def load_image(self, level):
        future = Future()
        self.requests.append((level, future))
        return future

    def close(self):
        pass


class RecordingProgress(ProgressStore):
    def __init__(self, level=1):
        self.level = level
        self.completions = []

    def login(self, user_id):
        return user_id

    def get_current_level(self, user_id):
        return self.level

    def advance_level(self, user_id):
        self.level += 1
        return self.level

    def on_level_complete(self, user_id):
        self.completions.append(user_id)
        super().on_level_complete(user_id)


class EventLog:
    def __init__(self, engine):
        self.calls = []
        for name in ("level_loaded", "piece_snapped", "puzzle_completed", "image_load_failed"):
            engine.subscribe(name, self._recorder(name))

    def _recorder(self, name):
        def record(*args):
            self.calls.append((name, args))
        return record

    def named(self, name):
        return [args for event, args in self.calls if event == name]


def make_engine(loader=None, progress=None, viewport=(1000, 800), seed=7, **config):
    return PuzzleEngine(
        EngineConfig(**config),
        loader=loader or StubLoader(),
        progress=progress,
        user_id="tester" if progress is not None else None,
        viewport=viewport,
        rng=random.Random(seed),
    )


def centre(piece):
    return piece.x + piece.w / 2, piece.y + piece.h / 2


def drag_home(engine, piece, dx=0.0, dy=0.0):
    """Grab a piece by its centre and drop it (dx, dy) away from its target."""
    px, py = centre(piece)
    grabbed = engine.pointer_down(px, py)
    assert grabbed is piece
    ox, oy = px - piece.x, py - piece.y
    engine.pointer_move(piece.target_x + dx + ox, piece.target_y + dy + oy)
    return engine.pointer_up()


@pytest.fixture
def progress():
    return RecordingProgress()


@pytest.fixture
def engine(progress):
    eng = make_engine(progress=progress)
    eng.load_level(1)
    eng.pump()
    return eng
