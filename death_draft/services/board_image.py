"""PNG snapshot of the board.

The board is drawn offscreen in a fixed column layout that does not depend on
any screen, then scaled uniformly onto a 1920x1080 frame rendered at 2x and
centred, leaving letterbox bars where the aspect ratios differ.
"""

import io
from typing import Dict, List, Optional

from PIL import Image, ImageDraw, ImageFont

from death_draft.domain.board import sort_seat_rows
from death_draft.domain.roster import Roster
from death_draft.models.schema_models import BoardRowSchema

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080
CANVAS_SCALE = 2

COLUMN_WIDTH = 220
COLUMN_GAP = 24
PADDING = 32
TITLE_HEIGHT = 48
HEADER_HEIGHT = 32
ROW_HEIGHT = 20
AGE_WIDTH = 36

BACKGROUND = (255, 255, 255)
TEXT = (23, 23, 23)
MUTED = (82, 82, 82)
RULE = (229, 229, 229)
HIGHLIGHT = (254, 243, 199)


def _fit_text(draw: ImageDraw.ImageDraw, text: str, font, width: int) -> str:
    if draw.textlength(text, font=font) <= width:
        return text
    while text and draw.textlength(text + "...", font=font) > width:
        text = text[:-1]
    return text + "..."


def render_board(
    by_seat: Dict[int, List[BoardRowSchema]],
    roster: Roster,
    last_pick_number: Optional[int],
    title: str = "Draft Board",
) -> Image.Image:
    """Draw the grouped board at its natural size.

    Args:
        by_seat (Dict[int, List[BoardRowSchema]]): Rows grouped by seat
        roster (Roster): Players in draft order, one column each
        last_pick_number (Optional[int]): Pick to highlight
        title (str): Heading drawn above the columns

    Returns:
        Image.Image: The board snapshot
    """
    font = ImageFont.load_default()
    columns = {player.seat: sort_seat_rows(by_seat.get(player.seat, [])) for player in roster}
    max_rows = max([1] + [len(rows) for rows in columns.values()])

    width = PADDING * 2 + len(roster) * COLUMN_WIDTH + (len(roster) - 1) * COLUMN_GAP
    height = PADDING * 2 + TITLE_HEIGHT + HEADER_HEIGHT + max_rows * ROW_HEIGHT

    image = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(image)
    draw.text((PADDING, PADDING), title, fill=TEXT, font=font)

    top = PADDING + TITLE_HEIGHT
    for index, player in enumerate(roster):
        left = PADDING + index * (COLUMN_WIDTH + COLUMN_GAP)
        header = _fit_text(draw, player.name, font, COLUMN_WIDTH)
        header_width = draw.textlength(header, font=font)
        draw.text((left + (COLUMN_WIDTH - header_width) / 2, top + 8), header, fill=TEXT, font=font)
        draw.line(
            [(left, top + HEADER_HEIGHT - 1), (left + COLUMN_WIDTH, top + HEADER_HEIGHT - 1)],
            fill=RULE,
        )

        rows = columns[player.seat]
        if not rows:
            draw.text((left, top + HEADER_HEIGHT + 4), "No picks yet", fill=MUTED, font=font)
            continue

        for i, row in enumerate(rows):
            y = top + HEADER_HEIGHT + i * ROW_HEIGHT
            if last_pick_number is not None and row.pick_number == last_pick_number:
                draw.rectangle(
                    [(left, y), (left + COLUMN_WIDTH, y + ROW_HEIGHT - 2)], fill=HIGHLIGHT
                )
            name = _fit_text(draw, row.celebrity_name, font, COLUMN_WIDTH - AGE_WIDTH - 4)
            draw.text((left + 2, y + 4), name, fill=TEXT, font=font)
            age = str(row.celebrity_age)
            age_width = draw.textlength(age, font=font)
            draw.text((left + COLUMN_WIDTH - age_width - 2, y + 4), age, fill=MUTED, font=font)
            draw.line([(left, y + ROW_HEIGHT - 1), (left + COLUMN_WIDTH, y + ROW_HEIGHT - 1)], fill=RULE)

    return image


def letterbox(image: Image.Image) -> Image.Image:
    """Scale uniformly onto the 2x 1920x1080 frame and centre it."""
    frame_width = CANVAS_WIDTH * CANVAS_SCALE
    frame_height = CANVAS_HEIGHT * CANVAS_SCALE
    ratio = min(frame_width / image.width, frame_height / image.height)
    size = (max(1, round(image.width * ratio)), max(1, round(image.height * ratio)))
    scaled = image.resize(size, Image.Resampling.LANCZOS)

    frame = Image.new("RGB", (frame_width, frame_height), BACKGROUND)
    frame.paste(scaled, ((frame_width - size[0]) // 2, (frame_height - size[1]) // 2))
    return frame


def export_board_png(
    by_seat: Dict[int, List[BoardRowSchema]],
    roster: Roster,
    last_pick_number: Optional[int],
) -> bytes:
    frame = letterbox(render_board(by_seat, roster, last_pick_number))
    buffer = io.BytesIO()
    frame.save(buffer, "PNG")
    return buffer.getvalue()
