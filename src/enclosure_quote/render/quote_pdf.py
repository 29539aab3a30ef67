"""
Quote PDF - renders a stored quote as an A4 document with reportlab.
"""
from io import BytesIO
from pathlib import Path
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..services.quote_service import Quote
from .formatting import (
    INSTALLATION_LABELS,
    configuration_highlights,
    format_date,
    format_mm,
    format_price,
)

# DejaVu covers Czech diacritics, the PDF base fonts do not
FONTS_DIR = Path(__file__).parent / "fonts"
BASE_FONT = "DejaVuSans"
BOLD_FONT = "DejaVuSans-Bold"

pdfmetrics.registerFont(TTFont(BASE_FONT, str(FONTS_DIR / "DejaVuSans.ttf")))
pdfmetrics.registerFont(TTFont(BOLD_FONT, str(FONTS_DIR / "DejaVuSans-Bold.ttf")))

LEFT = 50
RIGHT = 545
TOP = 800
BOTTOM = 70
LINE = 16

COMPANY = "ALUPOL"
COMPANY_SUBTITLE = "Pool and terrace enclosures"


def _price(amount: float) -> str:
    return format_price(amount)


class _Page:
    """Canvas wrapper that tracks the cursor and breaks pages."""

    def __init__(self, c: canvas.Canvas, footer: str):
        self.c = c
        self.footer = footer
        self.y = TOP

    def ensure(self, height: float):
        if self.y - height < BOTTOM:
            self.finish_page()
            self.c.showPage()
            self.y = TOP

    def finish_page(self):
        self.c.setFont(BASE_FONT, 8)
        self.c.line(LEFT, BOTTOM - 10, RIGHT, BOTTOM - 10)
        self.c.drawCentredString((LEFT + RIGHT) / 2, BOTTOM - 25, self.footer)

    def heading(self, text: str):
        self.ensure(LINE * 2)
        self.y -= 8
        self.c.setFont(BOLD_FONT, 12)
        self.c.drawString(LEFT, self.y, text)
        self.y -= 4
        self.c.line(LEFT, self.y, RIGHT, self.y)
        self.y -= LINE

    def text(self, text: str, indent: float = 0, bold: bool = False, size: int = 10):
        self.ensure(LINE)
        self.c.setFont(BOLD_FONT if bold else BASE_FONT, size)
        self.c.drawString(LEFT + indent, self.y, text)
        self.y -= LINE

    def row(self, label: str, value: str, bold: bool = False, middle: Optional[str] = None):
        self.ensure(LINE)
        self.c.setFont(BOLD_FONT if bold else BASE_FONT, 10)
        self.c.drawString(LEFT, self.y, label)
        if middle:
            self.c.drawCentredString(390, self.y, middle)
        self.c.drawRightString(RIGHT, self.y, value)
        self.y -= LINE


def generate_pdf(quote: Quote) -> bytes:
    """Return PDF bytes for the given quote."""
    config = quote.configuration
    result = quote.result

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(quote.number)

    footer = f"{COMPANY} | This quote is valid until {format_date(quote.valid_until)}"
    if quote.prepared_by:
        footer = f"Prepared by: {quote.prepared_by} | {footer}"
    page = _Page(c, footer)

    # Header
    c.setFont(BOLD_FONT, 22)
    c.drawString(LEFT, page.y, COMPANY)
    c.setFont(BOLD_FONT, 14)
    c.drawRightString(RIGHT, page.y, quote.number)
    page.y -= LINE
    c.setFont(BASE_FONT, 10)
    c.drawString(LEFT, page.y, COMPANY_SUBTITLE)
    c.drawRightString(RIGHT, page.y, f"Issued: {format_date(quote.created_at)}")
    page.y -= LINE
    c.drawRightString(RIGHT, page.y, f"Valid until: {format_date(quote.valid_until)}")
    page.y -= LINE

    # Customer / dealer
    page.heading("Customer")
    page.text(quote.customer.name, bold=True)
    for detail in (quote.customer.email, quote.customer.phone, quote.customer.address):
        if detail:
            page.text(detail)
    if quote.dealer:
        page.heading("Dealer")
        page.text(quote.dealer.name, bold=True)
        if quote.dealer.contact:
            page.text(quote.dealer.contact)

    # Configuration
    page.heading("Roof configuration")
    page.row("Roof type", quote.roof_type_name or quote.roof_type_code or config.roof_type_code)
    page.row("Width", format_mm(config.width))
    page.row("Modules", str(config.modules))
    if not config.use_standard_length and config.custom_length:
        page.row("Length", format_mm(config.custom_length))
    else:
        page.row("Length", f"{format_mm(result.standard_length)} (std.)")
    if not config.use_standard_height and config.custom_height:
        page.row("Height", format_mm(config.custom_height))
    else:
        page.row("Height", f"{format_mm(result.standard_height)} (std.)")

    highlights = configuration_highlights(config)
    if highlights:
        page.text("Options and modifications:")
        for item in highlights:
            page.text(f"- {item}", indent=10)

    # Items
    if result.items:
        page.heading("Surcharges and options")
        for item in result.items:
            quantity = f"{item.quantity:g} {item.unit or ''}".strip() if item.quantity is not None else None
            page.row(item.name, _price(item.price), middle=quantity)
            if item.description:
                page.text(item.description, indent=10, size=8)

    # Price summary
    page.heading("Price calculation")
    page.row("Base price", _price(result.base_price))
    if result.surcharges_total != 0:
        page.row("Surcharges and options", _price(result.surcharges_total))
    page.row("Roof price", _price(result.roof_price), bold=True)
    if result.transport_price > 0:
        label = "Transport"
        if config.transport_km:
            label = f"Transport ({config.transport_km:g} km)"
        page.row(label, _price(result.transport_price))
    if result.install_price > 0:
        page.row(
            f"Installation ({INSTALLATION_LABELS.get(config.installation_type, config.installation_type)})",
            _price(result.install_price),
        )
    if result.discount_amount > 0:
        page.row(f"Discount {config.discount_percent:g} %", f"-{_price(result.discount_amount)}")

    page.ensure(LINE * 2)
    page.y -= 4
    c.setLineWidth(2)
    c.line(LEFT, page.y + LINE - 4, RIGHT, page.y + LINE - 4)
    c.setLineWidth(1)
    page.row("TOTAL", f"{_price(result.final_price)} excl. VAT", bold=True)

    if quote.notes:
        page.heading("Notes")
        for line in quote.notes.splitlines():
            page.text(line, size=9)

    page.finish_page()
    c.showPage()
    c.save()
    buffer.seek(0)
    return buffer.read()
