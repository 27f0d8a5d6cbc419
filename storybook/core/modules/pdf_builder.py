"""
Render a storybook into a printable landscape PDF with reportlab.

Layout per page: the illustration fills the top 60% of the page, the text
sits below it, and a page number is centered in the footer. Pages without
image bytes get a grey placeholder box instead.
"""

import logging
from io import BytesIO
from typing import Mapping, Optional

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "If I Were an Animal..."
CHILD_NAME_PLACEHOLDER = "{{childName}}"

PAGE_SIZE = landscape(A4)
MARGIN = 20 * mm
IMAGE_HEIGHT_RATIO = 0.6
LINE_HEIGHT = 7 * mm

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
ITALIC_FONT = "Helvetica-Oblique"

PLACEHOLDER_FILL = colors.HexColor("#F0F0F0")
PLACEHOLDER_TEXT = colors.HexColor("#969696")


def personalize(text: str, child_name: str) -> str:
    return (text or "").replace(CHILD_NAME_PLACEHOLDER, child_name)


def _image_reader(data: Optional[bytes]) -> Optional[ImageReader]:
    """Decode image bytes with Pillow. Undecodable bytes return None."""
    if not data:
        return None
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Skipping undecodable page image: {e}")
        return None
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return ImageReader(image)


class StorybookPDFBuilder:
    """
    Draw a storybook onto a reportlab canvas.

    Coordinates below are measured from the top edge and flipped on draw,
    since reportlab's origin is the bottom-left corner.
    """

    def __init__(self, page_size: tuple[float, float] = PAGE_SIZE, margin: float = MARGIN):
        self.page_width, self.page_height = page_size
        self.margin = margin
        self.image_height = self.page_height * IMAGE_HEIGHT_RATIO
        self.content_width = self.page_width - 2 * margin

    def _y(self, top: float) -> float:
        return self.page_height - top

    def _centered(self, pdf: canvas.Canvas, text: str, top: float, font: str, size: int) -> None:
        pdf.setFont(font, size)
        pdf.drawCentredString(self.page_width / 2, self._y(top), text)

    def draw_cover(self, pdf: canvas.Canvas, title: str, child_name: str) -> None:
        middle = self.page_height / 2
        pdf.setFillColor(colors.black)
        self._centered(pdf, title, middle - 20 * mm, BOLD_FONT, 32)
        self._centered(pdf, f"A Story for {child_name}", middle + 10 * mm, BODY_FONT, 20)
        self._centered(pdf, "A Magical Adventure", middle + 30 * mm, BODY_FONT, 14)

    def draw_image(self, pdf: canvas.Canvas, reader: Optional[ImageReader]) -> None:
        top = self.margin
        if reader is not None:
            pdf.drawImage(
                reader,
                self.margin,
                self._y(top + self.image_height),
                width=self.content_width,
                height=self.image_height,
                preserveAspectRatio=True,
                anchor="c",
            )
            return

        pdf.setFillColor(PLACEHOLDER_FILL)
        pdf.rect(
            self.margin,
            self._y(top + self.image_height),
            self.content_width,
            self.image_height,
            stroke=0,
            fill=1,
        )
        pdf.setFillColor(PLACEHOLDER_TEXT)
        self._centered(pdf, "Image Loading...", top + self.image_height / 2, BODY_FONT, 12)
        pdf.setFillColor(colors.black)

    def draw_page(self, pdf: canvas.Canvas, page: Mapping, child_name: str, reader: Optional[ImageReader]) -> None:
        self.draw_image(pdf, reader)

        text_top = self.margin + self.image_height + 15 * mm
        animal = page.get("animal")
        if animal:
            self._centered(pdf, str(animal), text_top, BODY_FONT, 24)

        pdf.setFont(BODY_FONT, 14)
        current = text_top + (15 * mm if animal else 5 * mm)
        for paragraph in personalize(page.get("text", ""), child_name).split("\n"):
            for line in simpleSplit(paragraph, BODY_FONT, 14, self.content_width) or [""]:
                pdf.drawCentredString(self.page_width / 2, self._y(current), line)
                current += LINE_HEIGHT

        lesson = page.get("lesson")
        if lesson:
            self._centered(pdf, f"Lesson: {lesson}", current + 5 * mm, ITALIC_FONT, 11)

        self._centered(pdf, f"Page {page.get('pageNumber', '')}", self.page_height - 10 * mm, BODY_FONT, 10)

    def build(self, storybook: Mapping, images: Mapping[int, Optional[bytes]]) -> bytes:
        buffer = BytesIO()
        child_name = storybook.get("childName", "")
        title = storybook.get("title") or DEFAULT_TITLE

        pdf = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        pdf.setTitle(title)
        pdf.setAuthor("StoryTime")
        self.draw_cover(pdf, title, child_name)

        for page in storybook.get("pages", []):
            pdf.showPage()
            reader = _image_reader(images.get(page.get("pageNumber")))
            self.draw_page(pdf, page, child_name, reader)

        pdf.save()
        return buffer.getvalue()


def build_storybook_pdf(storybook: Mapping, images: Optional[Mapping[int, Optional[bytes]]] = None) -> bytes:
    """
    Render `storybook` (`title`, `childName`, `pages`) to PDF bytes.

    `images` maps page numbers to raw image bytes; missing entries are drawn
    as placeholders.
    """
    return StorybookPDFBuilder().build(storybook, images or {})
