# tickets/services.py
import logging
import secrets
from functools import partial

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import IntegrityError, transaction
from django.template.loader import render_to_string
from django.utils import timezone

from events.models import SEAT_HOLDING_TICKET_STATUSES, Event, TicketTier

from .models import Ticket
from .utils import build_ticket_pdf

logger = logging.getLogger('mail')

# без 0/O и 1/I, чтобы код можно было продиктовать
CONFIRMATION_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CONFIRMATION_CODE_LENGTH = 8


class ConfirmationCodeError(Exception):
    """Не удалось подобрать уникальные коды за отведённое число попыток."""


class BookingError(Exception):
    def __init__(self, message, status=400):
        super().__init__(message)
        self.status = status


def generate_confirmation_code() -> str:
    return ''.join(secrets.choice(CONFIRMATION_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH))


def generate_confirmation_codes(count: int) -> list[str]:
    """
    count кодов, уникальных внутри пачки и не занятых в таблице на момент проверки.
    Окончательную уникальность гарантирует индекс (см. issue_tickets).
    """
    codes: list[str] = []
    seen: set[str] = set()
    while len(codes) < count:
        batch = {generate_confirmation_code() for _ in range(count - len(codes))} - seen
        taken = set(Ticket.objects.filter(confirmation_code__in=batch).values_list('confirmation_code', flat=True))
        for code in batch - taken:
            seen.add(code)
            codes.append(code)
        seen |= taken
    return codes


def issue_tickets(tickets: list[Ticket]) -> list[Ticket]:
    """
    Сохраняет подготовленные билеты одной пачкой, присваивая коды.
    Вставка идёт в savepoint: при коллизии кода пачка откатывается
    и повторяется с новыми кодами. Вызывать внутри transaction.atomic().
    """
    if not tickets:
        return []
    attempts = settings.CONFIRMATION_CODE_ATTEMPTS
    for attempt in range(1, attempts + 1):
        for ticket, code in zip(tickets, generate_confirmation_codes(len(tickets))):
            ticket.confirmation_code = code
        try:
            with transaction.atomic():
                return Ticket.objects.bulk_create(tickets)
        except IntegrityError as e:
            logger.warning("Confirmation code collision (attempt %s/%s): %s", attempt, attempts, e)
    raise ConfirmationCodeError(f"Could not allocate {len(tickets)} unique confirmation codes")


def group_tickets_by_email(tickets) -> dict[str, list[Ticket]]:
    groups: dict[str, list[Ticket]] = {}
    for t in tickets:
        groups.setdefault(t.attendee_email.strip().lower(), []).append(t)
    return groups


def send_ticket_confirmation(email: str, tickets: list[Ticket], attach_pdfs: bool = True) -> bool:
    """
    Одно письмо на адрес со всеми его билетами.
    Ошибки логируются и не пробрасываются наружу.
    """
    event = tickets[0].event
    tier_names = list(dict.fromkeys(t.tier.name for t in tickets))
    ctx = {
        'attendee_name': tickets[0].attendee_name,
        'event': event,
        'location': event.venue or event.location,
        'tickets': tickets,
        'tier_names': ', '.join(tier_names),
        'codes': ', '.join(t.confirmation_code for t in tickets),
        'site_name': settings.SITE_NAME,
        'site_url': settings.SITE_URL,
    }
    msg = EmailMultiAlternatives(
        subject=f"{settings.SITE_NAME}: your tickets for {event.title}",
        body=render_to_string('email/ticket_confirmation.txt', ctx),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[email],
    )
    html = render_to_string('email/ticket_confirmation.html', ctx)
    if html:
        msg.attach_alternative(html, 'text/html')

    if attach_pdfs:
        for t in tickets:
            try:
                msg.attach(f"ticket-{t.confirmation_code}.pdf", build_ticket_pdf(t), 'application/pdf')
            except Exception as e:
                logger.exception("PDF build failed for ticket %s: %s", t.confirmation_code, e)

    try:
        sent_count = msg.send(fail_silently=False)
        logger.info("Tickets email sent: event=%s to=%s tickets=%s result=%s",
                    event.pk, email, len(tickets), sent_count)
        return True
    except Exception as e:
        # выдача билетов уже зафиксирована, письмо не влияет на результат
        logger.exception("Tickets email FAILED: event=%s to=%s: %s", event.pk, email, e)
        return False


def notify_ticket_holders(codes: list[str], attach_pdfs: bool = True) -> int:
    """Рассылка после коммита. Возвращает число успешно отправленных писем."""
    tickets = list(Ticket.objects
                   .select_related('event', 'tier')
                   .filter(confirmation_code__in=codes)
                   .order_by('id'))
    if not tickets:
        logger.error("notify_ticket_holders: no tickets found for %s codes", len(codes))
        return 0
    sent = 0
    for email, group in group_tickets_by_email(tickets).items():
        if send_ticket_confirmation(email, group, attach_pdfs=attach_pdfs):
            sent += 1
    return sent


def notify_on_commit(tickets: list[Ticket]) -> None:
    codes = [t.confirmation_code for t in tickets]
    transaction.on_commit(partial(notify_ticket_holders, codes), robust=True)


@transaction.atomic
def book_free_tickets(event_id: int, lines: list[dict], user=None) -> list[Ticket]:
    """
    Бронирование бесплатного события: по одному билету на email,
    с учётом вместимости тарифа и события.
    """
    # блокировка строки события сериализует проверки вместимости
    event = Event.objects.select_for_update().filter(pk=event_id).first()
    if event is None:
        raise BookingError("Event not found", status=404)
    if not event.is_free:
        raise BookingError("This is not a free event")
    if not event.is_bookable:
        raise BookingError("This event is not open for booking")

    tiers = {t.pk: t for t in TicketTier.objects.filter(event=event)}
    booked = Ticket.objects.filter(event=event, status__in=SEAT_HOLDING_TICKET_STATUSES)

    emails = [line['attendee_email'] for line in lines]
    if len(set(emails)) != len(emails):
        raise BookingError("Only 1 free ticket allowed per person")

    per_tier: dict[int, int] = {}
    for line in lines:
        tier = tiers.get(line['ticket_tier_id'])
        if tier is None:
            raise BookingError(f"Ticket type not found: {line['ticket_tier_id']}")
        if tier.price != 0:
            raise BookingError(f"Ticket type {tier.name} is not free")
        if line['quantity'] > 1:
            raise BookingError("Only 1 free ticket allowed per person")
        if booked.filter(attendee_email__iexact=line['attendee_email']).exists():
            raise BookingError("You already have a ticket for this event")
        per_tier[tier.pk] = per_tier.get(tier.pk, 0) + 1

    for tier_id, qty in per_tier.items():
        if not tiers[tier_id].has_room_for(qty):
            raise BookingError(f"No more tickets available for {tiers[tier_id].name}")
    if event.max_attendees is not None and booked.count() + len(lines) > event.max_attendees:
        raise BookingError("This event is fully booked")

    units = [
        Ticket(
            event=event,
            tier=tiers[line['ticket_tier_id']],
            user=user if user is not None and user.is_authenticated else None,
            price=0,
            attendee_name=line['attendee_name'],
            attendee_email=line['attendee_email'],
            attendee_phone=line.get('attendee_phone') or '',
            status=Ticket.Status.ACTIVE,
        )
        for line in lines
    ]
    created = issue_tickets(units)
    notify_on_commit(created)
    return created


def check_in_ticket(ticket: Ticket, mark_used: bool) -> tuple[bool, str]:
    """
    Проверка билета на входе. Возвращает (ok, сообщение).
    Повторная отметка USED не проходит.
    """
    if ticket.status == Ticket.Status.USED:
        return False, "Ticket has already been used"
    if ticket.status != Ticket.Status.ACTIVE:
        return False, f"Ticket is {ticket.status.lower()}"
    if not mark_used:
        return True, "Ticket is valid"
    updated = (Ticket.objects
               .filter(pk=ticket.pk, status=Ticket.Status.ACTIVE)
               .update(status=Ticket.Status.USED, used_at=timezone.now()))
    if not updated:
        return False, "Ticket has already been used"
    ticket.refresh_from_db(fields=['status', 'used_at', 'updated_at'])
    return True, "Entry granted. Ticket marked as used"
