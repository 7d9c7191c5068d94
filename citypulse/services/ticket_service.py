"""
Ticket documents: QR payloads and the PDF attached to confirmation emails.
"""

import io
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import qrcode
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..utils.clock import as_utc, utcnow

# Portrait ticket, in points.
TICKET_SIZE = (400, 700)


@dataclass
class TicketDetails:
    """Everything the ticket and its emails show, detached from the ORM session."""

    booking_id: UUID
    number_of_tickets: int
    total_amount: Decimal
    qr_code: str
    event_title: str
    event_category: str
    event_start: datetime
    venue_city: str
    venue_address: Optional[str]
    user_name: Optional[str]
    user_email: Optional[str]
    organizer_name: Optional[str]
    organizer_email: Optional[str]


def build_qr_payload(event_id: UUID, user_id: UUID, now: Optional[datetime] = None) -> str:
    """Payload printed on the ticket: event, holder and booking instant in ms."""
    moment = now or utcnow()
    return f"{event_id}-{user_id}-{int(moment.timestamp() * 1000)}"


def ticket_filename(event_title: str) -> str:
    safe_title = re.sub(r"[^a-zA-Z0-9]", "_", event_title)
    return f"CityPulse-Ticket-{safe_title}.pdf"


def _qr_image(payload: str) -> ImageReader:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return ImageReader(buffer)


def generate_ticket_pdf(details: TicketDetails) -> bytes:
    """
    Render a single-page ticket.

    The page carries the event, venue, attendee and booking id, with the
    booking's QR payload as a scannable code at the bottom.
    """
    width, height = TICKET_SIZE
    output = io.BytesIO()
    c = canvas.Canvas(output, pagesize=TICKET_SIZE)
    start = as_utc(details.event_start)

    # Banner
    c.setFillColor(colors.HexColor("#2563eb"))
    c.rect(0, height - 250, width, 250, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 8)
    c.drawString(24, height - 186, (details.event_category or "EVENT").upper())
    c.setFont("Helvetica-Bold", 22)
    c.drawString(24, height - 220, details.event_title[:28])

    # Details
    label_color = colors.HexColor("#9ca3af")
    value_color = colors.HexColor("#111827")
    y = height - 290
    for label, value, x in (
        ("DATE", start.strftime("%a %b %d %Y"), 24),
        ("TIME (UTC)", start.strftime("%H:%M"), 200),
    ):
        c.setFillColor(label_color)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x, y, label)
        c.setFillColor(value_color)
        c.setFont("Helvetica", 10)
        c.drawString(x, y - 14, value)

    y -= 50
    venue = ", ".join(part for part in (details.venue_address, details.venue_city) if part)
    c.setFillColor(label_color)
    c.setFont("Helvetica-Bold", 8)
    c.drawString(24, y, "VENUE")
    c.setFillColor(value_color)
    c.setFont("Helvetica", 10)
    c.drawString(24, y - 14, venue)

    y -= 50
    c.setStrokeColor(label_color)
    c.setDash(4, 4)
    c.line(24, y, width - 24, y)
    c.setDash()

    y -= 30
    c.setFillColor(label_color)
    c.setFont("Helvetica-Bold", 8)
    c.drawString(24, y, "ATTENDEE")
    c.drawRightString(width - 24, y, "TICKETS")
    c.setFillColor(value_color)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(24, y - 16, details.user_name or "GUEST")
    c.drawRightString(width - 24, y - 16, str(details.number_of_tickets))

    # Footer with QR code
    c.setFillColor(colors.HexColor("#0f172a"))
    c.rect(0, 0, width, 140, stroke=0, fill=1)
    c.drawImage(_qr_image(details.qr_code), 24, 20, width=100, height=100)
    c.setFillColor(colors.white)
    c.setFont("Helvetica", 8)
    c.drawString(140, 90, "BOOKING ID")
    c.setFont("Helvetica-Bold", 9)
    c.drawString(140, 76, str(details.booking_id))
    c.setFont("Helvetica", 8)
    c.drawString(140, 50, "Show this code at the entrance.")

    c.showPage()
    c.save()
    return output.getvalue()
