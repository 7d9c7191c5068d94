"""
Email sender and message templates for booking side effects.
"""

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List, Optional

from ..config import Settings, get_settings
from ..utils.clock import as_utc
from ..utils.exceptions import EmailServiceError
from .ticket_service import TicketDetails, generate_ticket_pdf, ticket_filename

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class EmailService:
    """SMTP sender. Runs inside Celery workers, never on the request path."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.smtp_server and self.settings.smtp_username)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        attachments: Optional[List[Attachment]] = None,
    ) -> bool:
        """
        Send an HTML email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body
            attachments: Optional files to attach

        Returns:
            True if the message was handed to the SMTP server, False if
            sending is not configured

        Raises:
            EmailServiceError: If the SMTP exchange fails
        """
        if not self.is_configured:
            logger.warning("Email configuration not available, skipping email send")
            return False

        msg = MIMEMultipart("mixed")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.settings.email_from_name, self.settings.smtp_username))
        msg["To"] = to_email
        msg.attach(MIMEText(html_content, "html"))

        for attachment in attachments or []:
            subtype = attachment.content_type.split("/", 1)[-1]
            part = MIMEApplication(attachment.content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)

        try:
            with smtplib.SMTP(self.settings.smtp_server, self.settings.smtp_port) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                server.login(self.settings.smtp_username, self.settings.smtp_password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailServiceError(f"Failed to send email to {to_email}: {e}") from e

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def send_ticket_confirmation(self, details: TicketDetails) -> bool:
        """Send the attendee their confirmation with the PDF ticket attached."""
        if not details.user_email:
            logger.warning(f"No email address for booking {details.booking_id}, skipping ticket")
            return False

        attachment = Attachment(
            filename=ticket_filename(details.event_title),
            content=generate_ticket_pdf(details),
        )
        return self.send_email(
            to_email=details.user_email,
            subject=f"Ticket Confirmation for {details.event_title}",
            html_content=render_ticket_confirmation(details),
            attachments=[attachment],
        )

    def send_organizer_sale(self, details: TicketDetails) -> bool:
        """Tell the organizer about a new registration."""
        if not details.organizer_email:
            return False
        return self.send_email(
            to_email=details.organizer_email,
            subject=f"New Registration: {details.event_title}",
            html_content=render_organizer_sale(details),
        )

    def send_organizer_cancellation(self, details: TicketDetails) -> bool:
        """Tell the organizer a booking was cancelled."""
        if not details.organizer_email:
            return False
        return self.send_email(
            to_email=details.organizer_email,
            subject=f"Ticket Cancellation - {details.event_title}",
            html_content=render_organizer_cancellation(details),
        )


def render_ticket_confirmation(details: TicketDetails) -> str:
    start = as_utc(details.event_start)
    title = html.escape(details.event_title)
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h1>Booking Confirmed!</h1>
        <p>Dear {html.escape(details.user_name or "Guest")},</p>
        <p>Your tickets for <strong>{title}</strong> have been successfully booked.</p>
        <p>Your official ticket is attached to this email.</p>
        <ul>
            <li><strong>Event:</strong> {title}</li>
            <li><strong>Date:</strong> {start.strftime("%B %d, %Y at %H:%M UTC")}</li>
            <li><strong>Venue:</strong> {html.escape(details.venue_city)}</li>
            <li><strong>Tickets:</strong> {details.number_of_tickets}</li>
            <li><strong>Total Amount:</strong> ${details.total_amount:.2f}</li>
            <li><strong>Booking ID:</strong> {details.booking_id}</li>
        </ul>
        <p>Please show the attached ticket QR code at the entrance.</p>
        <p>Enjoy the event!</p>
    </body>
    </html>
    """


def render_organizer_sale(details: TicketDetails) -> str:
    title = html.escape(details.event_title)
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h1 style="color: #4ade80;">New Registration!</h1>
        <p>Hello <strong>{html.escape(details.organizer_name or "Organizer")}</strong>,</p>
        <p><strong>{html.escape(details.user_name or "A user")}</strong> has registered for your event
        <strong>"{title}"</strong>.</p>
        <p><strong>Tickets Sold:</strong> {details.number_of_tickets}</p>
        <p><strong>Total Revenue:</strong> ${details.total_amount:.2f}</p>
        <hr />
        <p>Check your dashboard for full details.</p>
    </body>
    </html>
    """


def render_organizer_cancellation(details: TicketDetails) -> str:
    title = html.escape(details.event_title)
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; color: #333;">
        <h1>Booking Cancelled</h1>
        <p>Hello {html.escape(details.organizer_name or "Organizer")},</p>
        <p>A user has cancelled their booking for your event <strong>{title}</strong>.</p>
        <ul>
            <li><strong>User:</strong> {html.escape(details.user_name or "Unknown")} ({html.escape(details.user_email or "n/a")})</li>
            <li><strong>Tickets Cancelled:</strong> {details.number_of_tickets}</li>
            <li><strong>Refund Amount (if applicable):</strong> ${details.total_amount:.2f}</li>
        </ul>
    </body>
    </html>
    """
