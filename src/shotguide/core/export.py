"""Contact-sheet export of a rendered gallery as PNG or PDF.

The gallery is laid out as a grid of cards: the sketch (or an "image
unavailable" placeholder), the plan title underneath, and a ratio badge in
the corner.  The sheet is rendered with Pillow and then encoded:

- PNG, lossless.
- PDF, one page sized from the pixel dimensions at 96 dpi
  (1 px = 0.264583 mm), so the page matches what was on screen.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from .models import LANDSCAPE, PORTRAIT

logger = logging.getLogger(__name__)

EXPORT_DPI = 96.0
EXPORT_FORMATS = ("png", "pdf")

CARD_WIDTH = 360
PORTRAIT_HEIGHT = 640
LANDSCAPE_HEIGHT = 203
TITLE_BAND = 44
GUTTER = 24
COLUMNS = 3

CARD_FILL = (28, 28, 28)
PLACEHOLDER_FILL = (48, 48, 48)
TEXT_FILL = (235, 235, 235)
MUTED_FILL = (140, 140, 140)
PLACEHOLDER_TEXT = "image unavailable"


@dataclass(frozen=True)
class SheetEntry:
    """One card of the contact sheet.

    Attributes:
        title: Plan title.
        aspect_ratio: ``"9:16"`` or ``"16:9"``.
        image: Sketch as a ``data:`` URI, or ``None``.
    """

    title: str
    aspect_ratio: str = PORTRAIT
    image: str | None = None


def decode_data_uri(uri: str | None) -> Image.Image | None:
    """Decode a base64 ``data:`` URI into an image, or ``None`` if unusable."""
    if not uri or not uri.startswith("data:") or "," not in uri:
        return None
    header, payload = uri.split(",", 1)
    if ";base64" not in header:
        return None
    try:
        image = Image.open(io.BytesIO(base64.b64decode(payload, validate=True)))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not decode sketch for export: {e}")
        return None
    return image


def _box_height(aspect_ratio: str) -> int:
    return LANDSCAPE_HEIGHT if aspect_ratio == LANDSCAPE else PORTRAIT_HEIGHT


def _fit_title(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "...", font=font) > max_width:
        text = text[:-1]
    return text + "..."


def _draw_centered(draw: ImageDraw.ImageDraw, box: tuple[int, int, int, int], text: str, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = box[0] + (box[2] - box[0] - (right - left)) // 2
    y = box[1] + (box[3] - box[1] - (bottom - top)) // 2
    draw.text((x, y), text, fill=fill, font=font)


def _paste_sketch(sheet: Image.Image, sketch: Image.Image, box: tuple[int, int, int, int]) -> None:
    width, height = box[2] - box[0], box[3] - box[1]
    sketch = sketch.convert("RGB")
    sketch.thumbnail((width, height))
    x = box[0] + (width - sketch.width) // 2
    y = box[1] + (height - sketch.height) // 2
    sheet.paste(sketch, (x, y))


def render_contact_sheet(cards: Iterable[SheetEntry], background: str = "#0a0a0a") -> Image.Image:
    """Lay *cards* out on a grid and return the rendered sheet.

    Rows are as tall as their tallest card.  An empty gallery still yields a
    valid (gutter-only) image.
    """
    entries = list(cards)
    rows = [entries[i : i + COLUMNS] for i in range(0, len(entries), COLUMNS)]
    row_heights = [max(_box_height(e.aspect_ratio) for e in row) + TITLE_BAND for row in rows]

    columns = min(COLUMNS, len(entries)) or 1
    width = GUTTER + columns * (CARD_WIDTH + GUTTER)
    height = GUTTER + sum(h + GUTTER for h in row_heights)

    sheet = Image.new("RGB", (width, height), color=background)
    draw = ImageDraw.Draw(sheet)
    font = ImageFont.load_default()

    y = GUTTER
    for row, row_height in zip(rows, row_heights):
        x = GUTTER
        for entry in row:
            draw.rectangle((x, y, x + CARD_WIDTH, y + row_height), fill=CARD_FILL)
            image_box = (x, y, x + CARD_WIDTH, y + _box_height(entry.aspect_ratio))

            sketch = decode_data_uri(entry.image)
            if sketch is None:
                draw.rectangle(image_box, fill=PLACEHOLDER_FILL)
                _draw_centered(draw, image_box, PLACEHOLDER_TEXT, font, MUTED_FILL)
            else:
                _paste_sketch(sheet, sketch, image_box)

            draw.text((x + 8, y + 8), entry.aspect_ratio, fill=TEXT_FILL, font=font)
            title_box = (x + 8, y + row_height - TITLE_BAND, x + CARD_WIDTH - 8, y + row_height)
            title = _fit_title(draw, entry.title, font, CARD_WIDTH - 16)
            _draw_centered(draw, title_box, title, font, TEXT_FILL)
            x += CARD_WIDTH + GUTTER
        y += row_height + GUTTER

    logger.info(f"Rendered contact sheet {width}x{height} with {len(entries)} card(s)")
    return sheet


def export_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def export_pdf(image: Image.Image) -> bytes:
    """Encode *image* as a single-page PDF at 96 dpi."""
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="PDF", resolution=EXPORT_DPI)
    return buffer.getvalue()


def export_filename(prefix: str, kind: str, today: date | None = None) -> str:
    """Return ``<prefix>_YYYY-MM-DD.<kind>``.

    Raises:
        ValueError: If *kind* is not ``"png"`` or ``"pdf"``.
    """
    if kind not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {kind!r}")
    today = today or date.today()
    return f"{prefix}_{today.isoformat()}.{kind}"
