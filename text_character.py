"""Text-art character drawn with cairo.

Wraps a Companion and paints its current frame as monospace text rows,
standing on a floor line at the companion's tracked position.

Conforms to the Character protocol expected by PetWindow.
"""

from __future__ import annotations

import cairo

from animator import Companion

FONT_FACE = "Monospace"


class TextCharacter:
    """Character whose frames are rows of text."""

    def __init__(
        self,
        companion: Companion,
        colour: tuple[float, float, float],
        font_size: float = 16.0,
    ) -> None:
        self.companion = companion
        self.colour = colour
        self.font_size = font_size
        self.cell_width, self.cell_height, self._ascent = self._measure()

    def _measure(self) -> tuple[float, float, float]:
        surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, 1, 1)
        ctx = cairo.Context(surface)
        self._select_font(ctx)
        ascent, descent, height, max_x_advance, _ = ctx.font_extents()
        return max_x_advance, height, ascent

    def _select_font(self, ctx: cairo.Context) -> None:
        ctx.select_font_face(FONT_FACE, cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
        ctx.set_font_size(self.font_size)

    @property
    def size_in_pixels(self) -> tuple[int, int]:
        cols, rows = self.companion.animations.max_bounds
        return int(cols * self.cell_width) + 1, int(rows * self.cell_height) + 1

    def columns(self, width: int) -> int:
        return max(1, int(width // self.cell_width))

    def draw(self, ctx: cairo.Context, width: int, floor_y: float) -> None:
        """Draw the current frame so its last row sits on ``floor_y``.

        Position (0, 0) is the centre column of a ``width`` pixel room.
        """
        frame = self.companion.current_frame()
        x, y = self.companion.pos
        col = self.columns(width) // 2 + x
        top = floor_y + y * self.cell_height - len(frame.lines) * self.cell_height

        ctx.save()
        self._select_font(ctx)
        r, g, b = self.colour
        ctx.set_source_rgba(r, g, b, 1.0)
        for row, line in enumerate(frame.lines):
            ctx.move_to(col * self.cell_width, top + row * self.cell_height + self._ascent)
            ctx.show_text(line)
        ctx.restore()
