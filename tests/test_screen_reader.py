import random
import tempfile
import unittest
from pathlib import Path

from PIL import Image

from board.Core import Card, Layout, UnreadableBoardError
from screen.geometry import ScreenGeometry
from screen.reader import TemplateBoardReader, load_templates

GEOMETRY = ScreenGeometry(
    offset_h=2,
    offset_v=3,
    space_h=10,
    space_v=6,
    box_width=4,
    box_height=3,
    monitor_offset=0,
)


def rank_color(card: Card):
    return (20 + card * 25, 230 - card * 20, 60 + card * 10)


def write_templates(directory: Path):
    for card in Card:
        Image.new("RGB", (GEOMETRY.box_width, GEOMETRY.box_height), rank_color(card)).save(
            directory / f"{card.to_char()}.png"
        )


def draw_layout(layout: Layout) -> Image.Image:
    image = Image.new("RGB", (60, 40), (0, 0, 0))
    for column, stack in enumerate(layout.stacks):
        for row, card in enumerate(stack.cards):
            image.paste(rank_color(card), GEOMETRY.cell_box(column, row))
    return image


class ScreenReaderTestCase(unittest.TestCase):
    def setUp(self):
        self._dir = tempfile.TemporaryDirectory()
        self.template_dir = Path(self._dir.name)
        write_templates(self.template_dir)
        self.reader = TemplateBoardReader.from_directory(self.template_dir, GEOMETRY)

    def tearDown(self):
        self._dir.cleanup()

    def test_templates_cover_every_rank(self):
        templates = load_templates(self.template_dir, GEOMETRY)
        self.assertEqual(set(Card), set(templates))
        self.assertEqual((4, 3), templates[Card.ACE].size)

    def test_reads_dealt_layout(self):
        layout = Layout.deal(random.Random(3))
        self.assertEqual(layout, self.reader.read(draw_layout(layout)))

    def test_reads_from_file(self):
        layout = Layout.deal(random.Random(4))
        path = self.template_dir / "screen.png"
        draw_layout(layout).save(path)
        self.assertEqual(layout, self.reader.read(path))

    def test_unknown_cell_is_unreadable(self):
        image = draw_layout(Layout.deal(random.Random(5)))
        image.paste((255, 255, 255), GEOMETRY.cell_box(2, 4))
        with self.assertRaises(UnreadableBoardError) as ctx:
            self.reader.read(image)
        self.assertIn("column=2 row=4", str(ctx.exception))

    def test_impossible_deal_is_unreadable(self):
        image = Image.new("RGB", (60, 40), rank_color(Card.SIX))
        with self.assertRaises(UnreadableBoardError):
            self.reader.read(image)

    def test_missing_screenshot_is_unreadable(self):
        with self.assertRaises(UnreadableBoardError):
            self.reader.read(self.template_dir / "missing.png")


if __name__ == "__main__":
    unittest.main()
