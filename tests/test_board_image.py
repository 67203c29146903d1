import io

from PIL import Image

from death_draft.domain.board import group_by_seat
from death_draft.domain.roster import DEFAULT_ROSTER
from death_draft.services.board_image import (
    CANVAS_HEIGHT,
    CANVAS_SCALE,
    CANVAS_WIDTH,
    export_board_png,
    letterbox,
    render_board,
)


def test_png_is_full_frame(make_row):
    rows = [make_row(1, 1, "Betty White", 99), make_row(2, 2, "A Very Long Celebrity Name That Will Not Fit", 88)]
    data = export_board_png(group_by_seat(rows, DEFAULT_ROSTER), DEFAULT_ROSTER, 2)

    image = Image.open(io.BytesIO(data))
    assert image.format == "PNG"
    assert image.size == (CANVAS_WIDTH * CANVAS_SCALE, CANVAS_HEIGHT * CANVAS_SCALE)


def test_empty_board_renders():
    image = render_board(group_by_seat([], DEFAULT_ROSTER), DEFAULT_ROSTER, None)
    assert image.width > image.height


def test_letterbox_keeps_aspect_ratio():
    tall = Image.new("RGB", (100, 400), (0, 0, 0))
    frame = letterbox(tall)
    assert frame.size == (3840, 2160)
    # Bars on both sides, content in the middle.
    assert frame.getpixel((0, 1080)) == (255, 255, 255)
    assert frame.getpixel((1920, 1080)) == (0, 0, 0)
