"""
PDF rendering of table-tent cards.

The front document carries one redemption card per box, each with its own
code and QR code. The back document is a single page of instructions that
is printed on the reverse side of every front page.
"""

import io
import logging
import os
from typing import List, Optional, Sequence, Tuple

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .layout import LayoutConfig

logger = logging.getLogger(__name__)

FONT_NAME = "Helvetica"
FONT_NAME_BOLD = "Helvetica-Bold"
QR_MARGIN = 5  # mm from the box band's top-left corner
LINE_SPACING = 7  # mm between instruction lines


class _Page:
    """Top-left, millimetre based drawing helpers over a ReportLab canvas."""

    def __init__(self, c: canvas.Canvas, layout: LayoutConfig):
        self.c = c
        self.layout = layout

    def y(self, top_mm: float) -> float:
        return (self.layout.page_height - top_mm) * mm

    def line(self, x1, y1, x2, y2):
        self.c.line(x1 * mm, self.y(y1), x2 * mm, self.y(y2))

    def rounded_rect(self, x, top, width, height, radius_pt):
        self.c.roundRect(
            x * mm, self.y(top + height), width * mm, height * mm, radius_pt
        )

    def text(self, value: str, x, baseline, size, font=FONT_NAME):
        max_width = (self.layout.page_width - self.layout.page_content_padding - x) * mm
        size = fit_font_size(value, font, size, max_width)
        self.c.setFont(font, size)
        self.c.drawString(x * mm, self.y(baseline), value)

    def image(self, reader: ImageReader, x, top, width, height):
        self.c.drawImage(
            reader,
            x * mm,
            self.y(top + height),
            width * mm,
            height * mm,
            preserveAspectRatio=True,
            mask="auto",
        )


def fit_font_size(value: str, font: str, size: float, max_width: float) -> float:
    """Shrink `size` until `value` fits in `max_width` points."""
    if max_width <= 0:
        return size
    width = stringWidth(value, font, size)
    if width <= max_width:
        return size
    return size * max_width / width


def qr_image(data: str) -> ImageReader:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=1)
    qr.add_data(data)
    qr.make(fit=True)
    buf = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buf)
    buf.seek(0)
    return ImageReader(buf)


def _new_canvas(buf, layout: LayoutConfig) -> canvas.Canvas:
    # invariant mode drops creation dates and random IDs from the output
    c = canvas.Canvas(
        buf,
        pagesize=(layout.page_width * mm, layout.page_height * mm),
        invariant=1,
    )
    c.setTitle("Table tent cards")
    return c


def _draw_box_border(page: _Page, offset: float):
    layout = page.layout
    padding = layout.page_content_padding
    page.rounded_rect(
        padding,
        offset + padding,
        layout.page_width - padding * 2,
        layout.box_height - padding * 2,
        layout.border_radius,
    )


def _draw_dividing_line(page: _Page, offset: float):
    page.line(0, offset, page.layout.page_width, offset)


def _draw_brand_marks(page: _Page, offset: float, logos: List[ImageReader]):
    layout = page.layout
    inner_right = layout.page_width - layout.page_content_padding - QR_MARGIN
    bottom = offset + layout.box_height - layout.page_content_padding

    if logos:
        size = layout.text_top_margin * 2
        x = inner_right - size
        for logo in reversed(logos):
            page.image(logo, x, bottom - size - QR_MARGIN, size, size)
            x -= size + QR_MARGIN
        return

    page.text(
        " | ".join(layout.brands),
        layout.box_content_padding,
        bottom - QR_MARGIN,
        layout.small_font_size,
    )


def _draw_thank_you_box(page: _Page, offset: float, code: str, logos):
    layout = page.layout
    _draw_box_border(page, offset)

    if code:
        size = layout.qr_code_size
        page.image(qr_image(code), QR_MARGIN, QR_MARGIN + offset, size, size)

    _draw_brand_marks(page, offset, logos)

    headline_y = offset + layout.box_height / 2
    page.text(
        layout.headline,
        layout.box_content_padding,
        headline_y,
        layout.title_font_size,
        font=FONT_NAME_BOLD,
    )

    text_y = headline_y + layout.text_top_margin
    page.text(
        f"Your unique code is: {code}",
        layout.box_content_padding,
        text_y,
        layout.body_font_size,
    )
    page.text(
        f"Collect {layout.num_codes_to_collect} codes to win a FREE meal :)",
        layout.box_content_padding,
        text_y + layout.text_top_margin,
        layout.body_font_size,
    )


def instruction_lines(layout: LayoutConfig) -> List[str]:
    n = layout.num_codes_to_collect
    brands = list(layout.brands)
    if len(brands) > 1:
        brand_text = ", ".join(brands[:-1]) + ", or " + brands[-1]
    else:
        brand_text = "".join(brands)
    first_brand = brands[0] if brands else "our"
    return [
        "Receive a unique code each time you order from:",
        f"{brand_text}.",
        "",
        f"{n} unique codes can be redeemed for:",
        " OR ".join(layout.freebies) + ".",
        "",
        "Codes once used cannot be redeemed again.",
        "",
        f"1. Open {first_brand} menu in Zomato app.",
        '2. Add 1 "Cake Pop" to Cart. It will cost you Rs. 20.',
        "3. You may also add other items to cart.",
        '4. Click on "View Cart" button.',
        '5. On the Cart page, click on "Add cooking instructions" link.',
        f"6. Enter your {n} unique codes (separated by comma).",
        f"7. Also enter your FREE meal choice from above {len(layout.freebies)} options.",
        '8. Click the "Place Order" button to finalize your order.',
        "9. Sit back and relax. You will receive your FREE meal along with ordered items.",
    ]


def _draw_instructions_box(page: _Page, offset: float):
    layout = page.layout
    _draw_box_border(page, offset)

    y = offset + layout.box_content_padding
    for line in instruction_lines(layout):
        if line:
            page.text(line, layout.box_content_padding, y, layout.small_font_size)
        y += LINE_SPACING


def _load_logos(layout: LayoutConfig) -> List[ImageReader]:
    logos = []
    for path in layout.brand_logos:
        if not os.path.exists(path):
            logger.warning(f"Brand logo not found, skipping: {path}")
            continue
        try:
            logo = ImageReader(path)
            logo.getSize()
        except (OSError, ValueError) as e:
            logger.warning(f"Brand logo is not a readable image, skipping: {path}: {e}")
            continue
        logos.append(logo)
    return logos


def render_front(codes: Sequence[str], layout: LayoutConfig) -> bytes:
    """
    Render `layout.num_pages` pages of redemption cards.

    Codes are used in order, one per box. When there are fewer codes than
    boxes the remaining boxes get an empty code and no QR code.
    """
    buf = io.BytesIO()
    c = _new_canvas(buf, layout)
    page = _Page(c, layout)
    logos = _load_logos(layout)
    remaining = iter(codes)

    for _ in range(layout.num_pages):
        for i in range(layout.num_boxes_per_page):
            offset = i * layout.box_height
            if i:
                _draw_dividing_line(page, offset)
            _draw_thank_you_box(page, offset, next(remaining, ""), logos)
        c.showPage()

    c.save()
    logger.debug(f"Rendered front document with {layout.num_pages} pages")
    return buf.getvalue()


def render_back(layout: LayoutConfig) -> bytes:
    buf = io.BytesIO()
    c = _new_canvas(buf, layout)
    page = _Page(c, layout)

    for i in range(layout.num_boxes_per_page):
        offset = i * layout.box_height
        if i:
            _draw_dividing_line(page, offset)
        _draw_instructions_box(page, offset)
    c.showPage()

    c.save()
    return buf.getvalue()


def render_documents(
    codes: Sequence[str], layout: Optional[LayoutConfig] = None
) -> Tuple[bytes, bytes]:
    """Return (front, back) PDF documents for `codes`."""
    layout = layout or LayoutConfig()
    return render_front(codes, layout), render_back(layout)
