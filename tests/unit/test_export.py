"""Tests for shotguide.core.export: PNG/PDF contact sheets."""

from __future__ import annotations

import io
import re
from datetime import date

import pytest
from PIL import Image

from shotguide.core.export import (
    CARD_WIDTH,
    GUTTER,
    LANDSCAPE_HEIGHT,
    PORTRAIT_HEIGHT,
    TITLE_BAND,
    SheetEntry,
    decode_data_uri,
    export_filename,
    export_pdf,
    export_png,
    render_contact_sheet,
)


class TestDecodeDataUri:
    def test_valid_png(self, sketch_data_uri):
        image = decode_data_uri(sketch_data_uri)
        assert image is not None
        assert image.size == (9, 16)

    @pytest.mark.parametrize(
        "uri",
        [None, "", "https://example.com/a.png", "data:image/png,notbase64", "data:image/png;base64,@@@"],
    )
    def test_unusable_uri(self, uri):
        assert decode_data_uri(uri) is None

    def test_valid_base64_but_not_an_image(self):
        assert decode_data_uri("data:image/png;base64,aGVsbG8=") is None


class TestRenderContactSheet:
    def test_grid_dimensions(self, sketch_data_uri):
        """Four cards lay out as three columns and two rows."""
        cards = [
            SheetEntry("A", "9:16", sketch_data_uri),
            SheetEntry("B", "9:16", None),
            SheetEntry("C", "16:9", sketch_data_uri),
            SheetEntry("D", "16:9", None),
        ]
        sheet = render_contact_sheet(cards)

        expected_width = GUTTER + 3 * (CARD_WIDTH + GUTTER)
        expected_height = GUTTER + (PORTRAIT_HEIGHT + TITLE_BAND + GUTTER) + (
            LANDSCAPE_HEIGHT + TITLE_BAND + GUTTER
        )
        assert sheet.size == (expected_width, expected_height)

    def test_background_colour(self):
        sheet = render_contact_sheet([SheetEntry("A")], background="#102030")
        assert sheet.getpixel((1, 1)) == (0x10, 0x20, 0x30)

    def test_missing_sketch_draws_placeholder(self):
        """A card without a sketch still renders instead of failing the export."""
        sheet = render_contact_sheet([SheetEntry("Only card", "9:16", None)])
        centre = (GUTTER + CARD_WIDTH // 2, GUTTER + 20)
        assert sheet.getpixel(centre) == (48, 48, 48)

    def test_empty_gallery(self):
        sheet = render_contact_sheet([])
        assert sheet.size == (GUTTER + CARD_WIDTH + GUTTER, GUTTER)

    def test_long_title_does_not_fail(self):
        render_contact_sheet([SheetEntry("x" * 500)])


class TestEncoding:
    def test_png_bytes(self):
        data = export_png(Image.new("RGB", (10, 20)))
        assert data.startswith(b"\x89PNG")
        assert Image.open(io.BytesIO(data)).size == (10, 20)

    def test_pdf_page_matches_pixels_at_96_dpi(self):
        """1 px = 0.264583 mm, i.e. 0.75 pt."""
        data = export_pdf(Image.new("RGB", (960, 480)))
        assert data.startswith(b"%PDF")
        match = re.search(rb"/MediaBox \[\s*0 0 ([\d.]+) ([\d.]+)\s*\]", data)
        assert match is not None
        assert float(match.group(1)) == pytest.approx(720)
        assert float(match.group(2)) == pytest.approx(360)


class TestExportFilename:
    def test_png(self):
        assert export_filename("ShotGuide", "png", date(2024, 3, 9)) == "ShotGuide_2024-03-09.png"

    def test_pdf(self):
        assert export_filename("A7R3_Guide", "pdf", date(2025, 12, 31)) == "A7R3_Guide_2025-12-31.pdf"

    def test_defaults_to_today(self):
        assert export_filename("X", "png").endswith(f"{date.today().isoformat()}.png")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            export_filename("X", "gif")
