from dataclasses import dataclass


@dataclass(frozen=True)
class ScreenGeometry:
    """Pixel placement of the card grid on the captured screen."""

    offset_h: int = 488
    offset_v: int = 298
    space_h: int = 164
    space_v: int = 32
    box_width: int = 22
    box_height: int = 18
    # Horizontal position of the game monitor when clicking on a multi-monitor desktop.
    monitor_offset: int = 1920

    def cell_box(self, column: int, row: int) -> tuple[int, int, int, int]:
        """Crop box (left, top, right, bottom) of the rank marker at a grid cell."""
        left = self.offset_h + column * self.space_h
        top = self.offset_v + row * self.space_v
        return left, top, left + self.box_width, top + self.box_height

    def click_point(self, column: int, row: int) -> tuple[int, int]:
        return (
            self.monitor_offset + self.offset_h + column * self.space_h,
            self.offset_v + row * self.space_v,
        )
