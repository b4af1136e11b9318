"""Exceptions and warnings raised by the puzzle engine."""


class PuzzleError(Exception):
    """Base class for puzzle engine errors."""


class ConfigError(PuzzleError):
    pass


class InvalidGridSize(PuzzleError):
    """Raised before generation when a level is not an integer or maps to a grid size <= 0."""

    def __init__(self, grid_size, level=None):
        self.grid_size = grid_size
        self.level = level
        if grid_size is None:
            msg = f"level must be an integer, got {level!r}"
        else:
            msg = f"grid size must be positive, got {grid_size}"
            if level is not None:
                msg += f" (level {level})"
        super().__init__(msg)


class ImageLoadFailure(PuzzleError):
    """The image for a level could not be read or decoded. Retryable."""

    def __init__(self, source, reason):
        self.source = source
        self.reason = reason
        super().__init__(f"could not load image {source!r}: {reason}")


class DegenerateLayout(UserWarning):
    """No scatter region around the target can hold a single piece."""
