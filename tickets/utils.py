import io

from django.conf import settings
from django.utils import timezone

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader

import qrcode

from core.utils import format_amount

_FONT_REGULAR = "Helvetica"
_FONT_BOLD = "Helvetica-Bold"


def _format_dt(dt):
    if not dt:
        return ""
    dt = timezone.localtime(dt)
    return dt.strftime("%d %b %Y, %H:%M")


def qr_payload(ticket) -> str:
    # то же значение вводится вручную на входе (tickets:check_in)
    return f"TICKET:{ticket.confirmation_code}|EVENT:{ticket.event_id}"


def _qr_png(data: str) -> io.BytesIO:
    qr = qrcode.QRCode(version=1, box_size=8, border=2)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image()
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def build_ticket_pdf(ticket) -> bytes:
    """
    PDF-билет: реквизиты события, участник, тариф и QR-код с кодом подтверждения.
    """
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    event = ticket.event

    margin_left = 20 * mm
    margin_top = height - 20 * mm

    c.setFont(_FONT_BOLD, 20)
    c.drawString(margin_left, margin_top, f"{settings.SITE_NAME} e-ticket")

    y = margin_top - 15 * mm
    c.setFont(_FONT_BOLD, 14)
    c.drawString(margin_left, y, event.title)
    y -= 7 * mm

    c.setFont(_FONT_REGULAR, 11)
    c.drawString(margin_left, y, f"Date: {_format_dt(event.starts_at)}")
    y -= 6 * mm
    if event.ends_at:
        c.drawString(margin_left, y, f"Ends: {_format_dt(event.ends_at)}")
        y -= 6 * mm
    place = f"{event.venue}, {event.location}" if event.venue else event.location
    c.drawString(margin_left, y, f"Venue: {place}")
    y -= 10 * mm

    c.setFont(_FONT_BOLD, 12)
    c.drawString(margin_left, y, "Ticket details")
    y -= 7 * mm

    c.setFont(_FONT_REGULAR, 11)
    c.drawString(margin_left, y, f"Confirmation code: {ticket.confirmation_code}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Attendee: {ticket.attendee_name}")
    y -= 6 * mm
    c.drawString(margin_left, y, f"Ticket type: {ticket.tier.name}")
    y -= 6 * mm
    price = format_amount(ticket.price) if ticket.price else "Free"
    c.drawString(margin_left, y, f"Price: {price}")

    qr_size = 50 * mm
    c.drawImage(
        ImageReader(_qr_png(qr_payload(ticket))),
        width - qr_size - 20 * mm,
        margin_top - qr_size,
        qr_size,
        qr_size,
        mask='auto'
    )

    c.setFont(_FONT_REGULAR, 9)
    footer_y = 15 * mm
    c.drawString(margin_left, footer_y, "Show this QR code at the entrance. One code admits one person.")

    c.showPage()
    c.save()
    pdf = buffer.getvalue()
    buffer.close()
    return pdf
