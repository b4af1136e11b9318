import argparse
import json
import logging
import os
import sys

import pygame

from puzzlemaster import (IMAGE_LOAD_FAILED, PIECE_SNAPPED, PUZZLE_COMPLETED, JsonProgressStore,
                          PuzzleEngine, Renderer, load_config)
from puzzlemaster.errors import ConfigError

logger = logging.getLogger("puzzlemaster.app")

# --- Global Settings ---
SCREEN_WIDTH, SCREEN_HEIGHT = 1280, 800
FPS = 60
HEADER_COLOR = (20, 20, 20)
TITLE_COLOR = (255, 215, 0)

FONTS = {}  # Cache for fonts keyed by size.


def get_font(size):
    """Return a cached font of the given size."""
    if size not in FONTS:
        FONTS[size] = pygame.font.SysFont("arial", size)
    return FONTS[size]


def load_snap_sound(path="snap.mp3"):
    if not os.path.exists(path):
        return None
    try:
        return pygame.mixer.Sound(path)
    except pygame.error as exc:
        logger.warning("snap sound unavailable: %s", exc)
        return None


# --- Helper Functions ---
def draw_text(screen, text, pos, font_size=30, color=(255, 255, 255), shadow_color=(0, 0, 0), shadow_offset=(2, 2)):
    """Draws text with a subtle drop shadow for improved legibility."""
    font = get_font(font_size)
    shadow_surface = font.render(text, True, shadow_color)
    screen.blit(shadow_surface, shadow_surface.get_rect(center=(pos[0] + shadow_offset[0], pos[1] + shadow_offset[1])))
    text_surface = font.render(text, True, color)
    screen.blit(text_surface, text_surface.get_rect(center=pos))


def draw_rounded_button(screen, button, mouse_pos=None):
    """Draws a button with a border and a subtle text shadow."""
    rect = button["rect"]
    base_color = button["color"]
    # Lighten on hover:
    if mouse_pos and rect.collidepoint(mouse_pos):
        color = tuple(min(255, c + 30) for c in base_color)
    else:
        color = base_color
    pygame.draw.rect(screen, (0, 0, 0), rect.inflate(4, 4), border_radius=8)
    pygame.draw.rect(screen, color, rect, border_radius=8)
    draw_text(screen, button["label"], rect.center, font_size=28, shadow_offset=(1, 1))


# --- Saves ---
def save_path(config, user_id):
    return os.path.join(config.save_dir, f"puzzle_{user_id}.json")


def read_save(config, user_id):
    path = save_path(config, user_id)
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("ignoring unreadable save %s: %s", path, exc)
        return None


def write_save(config, user_id, engine):
    state = engine.save_state()
    if state is None or engine.is_complete:
        return None
    if not os.path.exists(config.save_dir):
        os.makedirs(config.save_dir)
    path = save_path(config, user_id)
    with open(path, "w") as f:
        json.dump(state, f)
    print(f"Puzzle saved to {path}")
    return path


def clear_save(config, user_id):
    path = save_path(config, user_id)
    if os.path.exists(path):
        os.remove(path)


# --- Screen ---
def draw_header(screen, engine, header_height, mouse_pos):
    width = screen.get_width()
    pygame.draw.rect(screen, HEADER_COLOR, pygame.Rect(0, 0, width, header_height))
    title = f"Stage {engine.level}" if engine.level is not None else "Puzzle Master"
    draw_text(screen, title, (width // 2, header_height // 2), font_size=40, color=TITLE_COLOR)
    save_btn = {"label": "Save", "rect": pygame.Rect(20, (header_height - 40) // 2, 120, 40), "color": (34, 139, 34)}
    draw_rounded_button(screen, save_btn, mouse_pos)
    return {"save": save_btn}


def draw_overlay(screen, message, button_label, color, mouse_pos):
    shade = pygame.Surface(screen.get_size(), pygame.SRCALPHA)
    shade.fill((0, 0, 0, 150))
    screen.blit(shade, (0, 0))
    cx, cy = screen.get_width() // 2, screen.get_height() // 2
    draw_text(screen, message, (cx, cy - 50), font_size=64, color=TITLE_COLOR)
    btn = {"label": button_label, "rect": pygame.Rect(cx - 100, cy + 10, 200, 50), "color": color}
    draw_rounded_button(screen, btn, mouse_pos)
    return btn


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Drag the pieces back into the picture.")
    parser.add_argument("--user", default="player", help="progress record to play as")
    parser.add_argument("--config", default=None, help="JSON file overriding engine settings")
    parser.add_argument("--width", type=int, default=SCREEN_WIDTH)
    parser.add_argument("--height", type=int, default=SCREEN_HEIGHT)
    parser.add_argument("--debug", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(exc)
        return 2

    pygame.init()
    screen = pygame.display.set_mode((args.width, args.height), pygame.RESIZABLE)
    pygame.display.set_caption("Puzzle Master")
    clock = pygame.time.Clock()
    snap_sound = load_snap_sound()

    progress = JsonProgressStore(os.path.join(config.save_dir, "progress.json"))
    user = progress.login(args.user)
    progress.record_session_start(user.user_id)

    engine = PuzzleEngine(config, progress=progress, user_id=user.user_id, viewport=screen.get_size())
    renderer = Renderer()
    status = {"complete": False, "error": None}

    def on_snapped(row, col):
        if snap_sound is not None:
            snap_sound.play(fade_ms=1)

    def on_completed():
        status["complete"] = True
        clear_save(config, user.user_id)
        name = f"completed/{len(engine.pieces)}-Pieces-Stage-{engine.level}.jpeg"
        renderer.export_completed(engine, name)

    def on_load_failed(level, error):
        status["error"] = error

    engine.subscribe(PIECE_SNAPPED, on_snapped)
    engine.subscribe(PUZZLE_COMPLETED, on_completed)
    engine.subscribe(IMAGE_LOAD_FAILED, on_load_failed)
    engine.load_level(user.current_level, saved_state=read_save(config, user.user_id))

    try:
        running = True
        while running:
            engine.pump()
            mouse_pos = pygame.mouse.get_pos()
            renderer.draw(screen, engine)
            buttons = draw_header(screen, engine, int(config.header_height), mouse_pos)
            overlay_btn = None
            if status["complete"]:
                overlay_btn = draw_overlay(screen, "Level Complete!", "Next Level", (70, 130, 180), mouse_pos)
            elif status["error"] is not None:
                overlay_btn = draw_overlay(screen, "Image failed to load", "Retry", (178, 34, 34), mouse_pos)
            elif not engine.image_ready:
                draw_text(screen, "Loading...", (screen.get_width() // 2, screen.get_height() // 2))

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    engine.resize(event.w, event.h)
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_s:
                    write_save(config, user.user_id, engine)
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and overlay_btn is not None:
                    if overlay_btn["rect"].collidepoint(event.pos):
                        if status["complete"]:
                            status["complete"] = False
                            engine.load_level(progress.get_current_level(user.user_id))
                        else:
                            status["error"] = None
                            engine.retry()
                elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and buttons["save"]["rect"].collidepoint(event.pos):
                    write_save(config, user.user_id, engine)
                elif overlay_btn is None:
                    engine.handle_event(event)

            pygame.display.flip()
            clock.tick(FPS)
    finally:
        write_save(config, user.user_id, engine)
        progress.record_session_end(user.user_id)
        engine.close()
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())
