"""Tests for the storybook PDF renderer."""

from io import BytesIO
from unittest.mock import MagicMock

import pytest
from PIL import Image

from storybook.core.modules.pdf_builder import (
    StorybookPDFBuilder,
    _image_reader,
    build_storybook_pdf,
    personalize,
)

STORYBOOK = {
    "title": "Maya's Animals",
    "childName": "Maya",
    "pages": [
        {"pageNumber": 1, "text": "Hello, my name is {{childName}}."},
        {"pageNumber": 2, "text": "If I were a lion...", "animal": "🦁", "lesson": "Courage"},
    ],
}


def _png() -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (40, 30), (255, 0, 0, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


def _drawn_text(pdf: MagicMock) -> list[str]:
    return [call.args[2] for call in pdf.drawCentredString.call_args_list]


class TestBuildPdf:
    @pytest.mark.slow
    def test_renders_pdf(self):
        data = build_storybook_pdf(STORYBOOK, {1: _png()})

        assert data.startswith(b"%PDF")

    def test_undecodable_image_becomes_placeholder(self):
        data = build_storybook_pdf(STORYBOOK, {1: b"not an image"})

        assert data.startswith(b"%PDF")

    def test_image_reader(self):
        assert _image_reader(None) is None
        assert _image_reader(b"garbage") is None
        assert _image_reader(_png()) is not None

    def test_personalize(self):
        assert personalize("Hi {{childName}}!", "Leo") == "Hi Leo!"
        assert personalize(None, "Leo") == ""


class TestDrawPage:
    def test_page_with_animal_and_lesson(self):
        builder = StorybookPDFBuilder()
        pdf = MagicMock()

        builder.draw_page(pdf, STORYBOOK["pages"][1], "Maya", None)

        text = _drawn_text(pdf)
        assert "🦁" in text
        assert "If I were a lion..." in text
        assert "Lesson: Courage" in text
        assert "Page 2" in text
        assert "Image Loading..." in text
        pdf.rect.assert_called_once()

    def test_page_with_image(self):
        builder = StorybookPDFBuilder()
        pdf = MagicMock()

        builder.draw_page(pdf, STORYBOOK["pages"][0], "Maya", _image_reader(_png()))

        pdf.drawImage.assert_called_once()
        assert "Hello, my name is Maya." in _drawn_text(pdf)
        assert "Image Loading..." not in _drawn_text(pdf)

    def test_cover(self):
        pdf = MagicMock()

        StorybookPDFBuilder().draw_cover(pdf, "Maya's Animals", "Maya")

        assert _drawn_text(pdf) == ["Maya's Animals", "A Story for Maya", "A Magical Adventure"]
