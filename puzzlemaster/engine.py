"""The puzzle engine: one instance owns a level's pieces and drag state.

Everything here runs on the event thread. Image decoding happens elsewhere,
but a finished load only takes effect inside pump(), and only if no newer
load_level call has been made since it started.
"""
import logging
import queue
import random
from collections import defaultdict

from .assets import AssetLoader
from .config import EngineConfig
from .errors import ImageLoadFailure, InvalidGridSize
from .geometry import Rect, TabMap, build_outline, edge_tabs_for, generate_tab_map
from .interaction import (DOWN, MOVE, UP, DragController, InteractionState, PointerEvent,
                          normalize_pointer)
from .layout import compute_target_rect, get_safe_pos, has_room
from .piece import Piece

logger = logging.getLogger(__name__)

LEVEL_LOADED = "level_loaded"
PIECE_SNAPPED = "piece_snapped"
PUZZLE_COMPLETED = "puzzle_completed"
IMAGE_LOAD_FAILED = "image_load_failed"
EVENTS = (LEVEL_LOADED, PIECE_SNAPPED, PUZZLE_COMPLETED, IMAGE_LOAD_FAILED)


class PuzzleEngine:
    def __init__(self, config=None, loader=None, progress=None, user_id=None,
                 viewport=(1000, 800), rng=None):
        self.config = config or EngineConfig()
        self.loader = loader or AssetLoader(self.config)
        self.progress = progress
        self.user_id = user_id
        self.viewport = tuple(viewport)
        self.rng = rng or random.Random()

        self.level = None
        self.grid_size = None
        self.image = None
        self.load_error = None
        self.target_rect = None
        self.source_crop = None
        self.tab_map = None
        self.pieces = []
        self.state = InteractionState()
        self.controller = DragController(self.pieces, self.config.snap_distance, self.state)

        # Bumped whenever the piece set is replaced; renderers key caches on it.
        self.generation = 0
        self._load_token = 0
        self._saved_state = None
        self._finished = queue.Queue()
        self._completed = False
        self._listeners = defaultdict(list)

    # --- Events ---
    def subscribe(self, name, callback):
        if name not in EVENTS:
            raise ValueError(f"unknown event {name!r}; expected one of {', '.join(EVENTS)}")
        self._listeners[name].append(callback)
        return callback

    def _emit(self, name, *args):
        for callback in list(self._listeners[name]):
            callback(*args)

    # --- Level Loading ---
    def load_level(self, level, saved_state=None):
        """Start loading a level's image; pieces appear once pump() sees it."""
        if isinstance(level, bool) or not isinstance(level, int):
            raise InvalidGridSize(None, level)
        grid_size = self.config.grid_size_for_level(level)
        if grid_size <= 0:
            raise InvalidGridSize(grid_size, level)
        self._load_token += 1
        token = self._load_token
        self.level = level
        self.grid_size = grid_size
        self.image = None
        self.load_error = None
        self._saved_state = saved_state
        logger.info("loading level %d (%dx%d)", level, grid_size, grid_size)
        future = self.loader.load_image(level)
        future.add_done_callback(lambda f: self._finished.put((token, f)))
        return future

    def retry(self):
        if self.level is None:
            return None
        return self.load_level(self.level, self._saved_state)

    def next_level(self):
        return self.load_level(self.level + 1)

    def pump(self):
        """Apply finished image loads. Call from the event loop every frame."""
        applied = False
        while True:
            try:
                token, future = self._finished.get_nowait()
            except queue.Empty:
                return applied
            if token != self._load_token:
                logger.debug("ignoring stale image load (token %d, current %d)", token, self._load_token)
                continue
            self._on_image_loaded(future)
            applied = True

    def _on_image_loaded(self, future):
        try:
            image = future.result()
        except ImageLoadFailure as exc:
            self.load_error = exc
            logger.warning("level %d image failed to load: %s", self.level, exc)
            self._emit(IMAGE_LOAD_FAILED, self.level, exc)
            return
        self.image = image
        saved, self._saved_state = self._saved_state, None
        restored = False
        if saved is not None:
            try:
                if self._matches(saved):
                    self.restore(saved)
                    restored = True
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                logger.warning("saved puzzle for level %d is damaged (%r); starting fresh", self.level, exc)
        if not restored:
            self.generate()
        self._emit(LEVEL_LOADED, self.level, self.grid_size)

    @property
    def image_ready(self):
        return self.image is not None

    # --- Generation ---
    def generate(self):
        """Cut the loaded image into a fresh, scattered set of pieces."""
        if self.image is None:
            raise RuntimeError("generate() needs the level image to be loaded first")
        width, height = self.viewport
        rect = compute_target_rect(width, height, self.image.width, self.image.height)
        tab_map = generate_tab_map(self.grid_size, self.grid_size, self.rng)
        pw, ph = rect.w / self.grid_size, rect.h / self.grid_size
        if not has_room(width, height, rect, pw, ph, self.config.header_height, self.config.padding):
            logger.warning("viewport %dx%d too small to scatter %.0fx%.0f pieces; stacking them on the bottom edge",
                           width, height, pw, ph)
        positions = {}
        for r in range(self.grid_size):
            for c in range(self.grid_size):
                positions[(r, c)] = get_safe_pos(self.rng, width, height, rect, pw, ph,
                                                 self.config.header_height, self.config.padding)
        self._install(rect, tab_map, positions)
        self.state.next_z_index = 1
        logger.info("generated %d pieces in %s", len(self.pieces), rect)
        return self.pieces

    def _install(self, rect, tab_map, positions, locks=None, z_indexes=None):
        locks = locks or {}
        z_indexes = z_indexes or {}
        pw, ph = rect.w / tab_map.cols, rect.h / tab_map.rows
        pieces = []
        for r in range(tab_map.rows):
            for c in range(tab_map.cols):
                tabs = edge_tabs_for(tab_map, r, c)
                x, y = positions[(r, c)]
                piece = Piece(r, c, rect.x + c * pw, rect.y + r * ph, x, y, pw, ph,
                              tabs, build_outline(pw, ph, tabs), z_index=z_indexes.get((r, c), 0))
                if locks.get((r, c)):
                    piece.lock()
                pieces.append(piece)
        self.target_rect = rect
        self.source_crop = Rect(0, 0, self.image.width, self.image.height)
        self.tab_map = tab_map
        self.pieces = pieces
        self.controller.pieces = pieces
        self.state.release()
        self._completed = False
        self.generation += 1

    def resize(self, width, height):
        """Track the new canvas size. Pieces and targets stay where they are."""
        self.viewport = (width, height)

    # --- Interaction ---
    def handle_event(self, event, origin=(0, 0)):
        pointer = normalize_pointer(event, self.viewport, origin)
        if pointer is None:
            return None
        return self.handle_pointer(pointer)

    def handle_pointer(self, pointer):
        piece = self.controller.handle(pointer)
        if pointer.kind == UP and piece is not None:
            if piece.locked:
                self._emit(PIECE_SNAPPED, piece.row, piece.col)
            self.check_win()
        return piece

    def pointer_down(self, x, y):
        return self.handle_pointer(PointerEvent(DOWN, x, y))

    def pointer_move(self, x, y):
        return self.handle_pointer(PointerEvent(MOVE, x, y))

    def pointer_up(self, x=0.0, y=0.0):
        return self.handle_pointer(PointerEvent(UP, x, y))

    @property
    def is_complete(self):
        return bool(self.pieces) and all(p.locked for p in self.pieces)

    def check_win(self):
        """Report completion to the collaborator once per generated level."""
        if not self.is_complete:
            return False
        if self._completed:
            return True
        self._completed = True
        logger.info("level %d complete", self.level)
        if self.progress is not None and self.user_id is not None:
            self.progress.on_level_complete(self.user_id)
        self._emit(PUZZLE_COMPLETED)
        return True

    # --- Save / Restore ---
    def save_state(self):
        if not self.pieces:
            return None
        return {
            "level": self.level,
            "grid_size": self.grid_size,
            "target_rect": self.target_rect.to_dict(),
            "tab_map": self.tab_map.to_dict(),
            "next_z_index": self.state.next_z_index,
            "pieces": [p.to_dict() for p in self.pieces],
        }

    def _matches(self, saved):
        if saved.get("level") != self.level or saved.get("grid_size") != self.grid_size:
            logger.warning("saved puzzle is for level %s, not %s; starting fresh", saved.get("level"), self.level)
            return False
        tab_map = saved.get("tab_map") or {}
        if tab_map.get("rows") != self.grid_size or tab_map.get("cols") != self.grid_size:
            logger.warning("saved tab map does not fit a %dx%d grid; starting fresh", self.grid_size, self.grid_size)
            return False
        cells = {tuple(entry.get("grid_pos", ())) for entry in saved.get("pieces") or ()}
        if cells != {(r, c) for r in range(self.grid_size) for c in range(self.grid_size)}:
            logger.warning("saved puzzle is missing pieces; starting fresh")
            return False
        return True

    def restore(self, saved):
        rect = Rect.from_dict(saved["target_rect"])
        tab_map = TabMap.from_dict(saved["tab_map"])
        positions, locks, z_indexes = {}, {}, {}
        for entry in saved["pieces"]:
            key = tuple(entry["grid_pos"])
            positions[key] = tuple(entry["pos"])
            locks[key] = entry.get("locked", False)
            z_indexes[key] = entry.get("z_index", 0)
        self._install(rect, tab_map, positions, locks, z_indexes)
        self.state.next_z_index = saved.get("next_z_index", max(z_indexes.values(), default=0) + 1)
        logger.info("restored level %d with %d of %d pieces placed",
                    self.level, sum(1 for p in self.pieces if p.locked), len(self.pieces))
        return self.pieces

    def close(self):
        self.loader.close()
