from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageChops, ImageGrab

from board.Core import COPIES_PER_RANK, DEALT_PER_STACK, STACK_COUNT, Card, Layout, Stack, UnreadableBoardError
from screen.geometry import ScreenGeometry

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, Image.Image, None]


def load_templates(template_dir: Union[str, Path], geometry: ScreenGeometry) -> dict[Card, Image.Image]:
    """One reference crop per rank, read from ``<rank char>.png``."""
    template_dir = Path(template_dir)
    templates = {}
    for card in Card:
        path = template_dir / f"{card.to_char()}.png"
        with Image.open(path) as image:
            templates[card] = image.convert("RGB").crop((0, 0, geometry.box_width, geometry.box_height))
    return templates


class TemplateBoardReader:
    """Reads a dealt layout from a screenshot by exact per-cell template matching."""

    def __init__(
        self,
        templates: dict[Card, Image.Image],
        geometry: ScreenGeometry = ScreenGeometry(),
    ):
        self.templates = templates
        self.geometry = geometry

    @staticmethod
    def from_directory(template_dir: Union[str, Path], geometry: ScreenGeometry = ScreenGeometry()):
        return TemplateBoardReader(load_templates(template_dir, geometry), geometry)

    def _screenshot(self, source: ImageSource) -> Image.Image:
        try:
            if source is None:
                return ImageGrab.grab().convert("RGB")
            if isinstance(source, Image.Image):
                return source.convert("RGB")
            with Image.open(source) as image:
                return image.convert("RGB")
        except OSError as e:
            raise UnreadableBoardError(f"screen capture failed: {e}") from e

    def match_cell(self, cell: Image.Image) -> Optional[Card]:
        for card, template in self.templates.items():
            if template.size != cell.size:
                continue
            if ImageChops.difference(cell, template).getbbox() is None:
                return card
        return None

    def read(self, source: ImageSource = None) -> Layout:
        """
        Read the six dealt columns from ``source`` (a path, an image, or a live
        capture when None). Raises UnreadableBoardError when any cell matches
        no rank, which usually means an animation was still running.
        """
        screenshot = self._screenshot(source)
        stacks = [Stack() for _ in range(STACK_COUNT)]
        for column in range(STACK_COUNT):
            for row in range(DEALT_PER_STACK):
                cell = screenshot.crop(self.geometry.cell_box(column, row))
                card = self.match_cell(cell)
                if card is None:
                    raise UnreadableBoardError(f"no rank matches cell column={column} row={row}")
                stacks[column].cards.append(card)

        layout = Layout(stacks)
        counts = layout.card_counts()
        if any(counts[card] != COPIES_PER_RANK for card in Card):
            raise UnreadableBoardError(f"read an impossible deal {layout.canonical()}")
        logger.debug("read layout %s", layout.canonical())
        return layout

    def __call__(self) -> Layout:
        return self.read()
