"""
Оплата билетов: расчёт комиссий, создание платежа и выдача билетов
после подтверждения оплаты (вебхук или опрос статуса покупателем).
"""
import logging
import secrets
import time
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from events.models import Event, TicketTier
from tickets.models import Ticket
from tickets.services import BookingError, ConfirmationCodeError, issue_tickets, notify_on_commit

from . import paystack
from .metadata import MalformedOrderMetadata, OrderLine, OrderMetadata, PaymentBreakdown
from .models import Payment

logger = logging.getLogger('payments')

# Результаты fulfill_payment
FULFILLED = 'fulfilled'
ALREADY_COMPLETED = 'already_completed'
NOT_PENDING = 'not_pending'
UNKNOWN_REFERENCE = 'unknown_reference'
FAILED = 'failed'

# комиссия Paystack (в kobo)
GATEWAY_FEE_RATE = Decimal('0.015')
GATEWAY_FLAT_FEE = 10000
GATEWAY_FLAT_FEE_THRESHOLD = 250000
GATEWAY_FEE_CAP = 200000


class FulfillmentError(Exception):
    """Заказ нельзя выполнить: платёж помечается FAILED и не повторяется."""


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def calculate_gateway_fee(subtotal: int) -> int:
    # 1.5%, с ₦2,500 плюс ₦100, но не больше ₦2,000
    fee = _round_half_up(Decimal(subtotal) * GATEWAY_FEE_RATE)
    if subtotal >= GATEWAY_FLAT_FEE_THRESHOLD:
        fee += GATEWAY_FLAT_FEE
    return min(fee, GATEWAY_FEE_CAP)


def calculate_payment_breakdown(subtotal: int) -> PaymentBreakdown:
    """Покупатель платит билеты + комиссию шлюза; платформа берёт процент с билетов."""
    gateway_fee = calculate_gateway_fee(subtotal)
    platform_amount = _round_half_up(Decimal(subtotal) * Decimal(settings.PLATFORM_FEE_PERCENT) / 100)
    return PaymentBreakdown(
        ticket_subtotal=subtotal,
        gateway_fee=gateway_fee,
        total_amount=subtotal + gateway_fee,
        organizer_amount=subtotal - platform_amount,
        platform_amount=platform_amount,
    )


def generate_reference() -> str:
    return f"TKT_{int(time.time() * 1000)}_{secrets.token_hex(4).upper()}"


def create_payment(event_id: int, lines: list[dict], customer_email: str, client_amount: int, user=None):
    """
    Оформление заказа: проверяет тарифы, остатки и сумму,
    создаёт PENDING-платёж с составом заказа и инициализирует оплату в шлюзе.
    Возвращает (payment, данные шлюза с authorization_url).
    """
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise BookingError("Event not found", status=404)
    if event.is_free:
        raise BookingError("This is a free event, use free booking")
    if not event.is_bookable:
        raise BookingError("This event is not open for booking")

    tiers = {t.pk: t for t in TicketTier.objects.filter(event=event)}
    per_tier: dict[int, int] = {}
    subtotal = 0
    for line in lines:
        tier = tiers.get(line['ticket_tier_id'])
        if tier is None:
            raise BookingError(f"Ticket type not found: {line['ticket_tier_id']}")
        per_tier[tier.pk] = per_tier.get(tier.pk, 0) + line['quantity']
        subtotal += tier.price * line['quantity']
    for tier_id, qty in per_tier.items():
        if not tiers[tier_id].has_room_for(qty):
            raise BookingError(f"Not enough tickets left for {tiers[tier_id].name}")
    if subtotal <= 0:
        raise BookingError("Order total must be positive")

    breakdown = calculate_payment_breakdown(subtotal)
    if abs(client_amount - breakdown.total_amount) > settings.PAYMENT_AMOUNT_TOLERANCE:
        logger.warning("Amount mismatch for event %s: client=%s expected=%s",
                       event.pk, client_amount, breakdown.total_amount)
        raise BookingError("Payment amount mismatch")

    metadata = OrderMetadata(
        tickets=[OrderLine(
            ticket_tier_id=line['ticket_tier_id'],
            quantity=line['quantity'],
            attendee_name=line['attendee_name'],
            attendee_email=line['attendee_email'],
            attendee_phone=line.get('attendee_phone') or '',
        ) for line in lines],
        event={"title": event.title, "date": event.starts_at.isoformat(),
               "location": event.venue or event.location},
        payment_breakdown=breakdown,
    )
    payment = Payment.objects.create(
        reference=generate_reference(),
        event=event,
        user=user if user is not None and user.is_authenticated else None,
        customer_email=customer_email,
        amount=breakdown.total_amount,
        currency=settings.DEFAULT_CURRENCY,
        platform_fee=breakdown.platform_amount,
        organizer_amount=breakdown.organizer_amount,
        gateway_fee=breakdown.gateway_fee,
        metadata=metadata.to_dict(),
    )

    try:
        gateway = paystack.initialize_transaction(
            email=customer_email,
            amount=payment.amount,
            reference=payment.reference,
            metadata={"event_id": event.pk, "payment_id": payment.pk},
        )
    except paystack.PaystackError as e:
        mark_payment_failed(payment, f"Gateway initialization failed: {e}")
        raise
    logger.info("Payment initialized: ref=%s event=%s amount=%s", payment.reference, event.pk, payment.amount)
    return payment, gateway


def mark_payment_failed(payment: Payment, reason: str) -> bool:
    updated = (Payment.objects
               .filter(pk=payment.pk, status=Payment.Status.PENDING)
               .update(status=Payment.Status.FAILED, failure_reason=reason[:255], updated_at=timezone.now()))
    if updated:
        payment.status = Payment.Status.FAILED
        payment.failure_reason = reason[:255]
        logger.error("Payment %s marked FAILED: %s", payment.reference, reason)
    return bool(updated)


def _build_tickets(payment: Payment) -> list[Ticket]:
    try:
        order = OrderMetadata.from_dict(payment.metadata)
    except MalformedOrderMetadata as e:
        raise FulfillmentError(f"Malformed order metadata: {e}") from e

    tiers = {t.pk: t for t in TicketTier.objects.filter(event_id=payment.event_id)}
    units = []
    for line in order.tickets:
        if not line.is_complete:
            logger.warning("Payment %s: incomplete ticket line skipped: %s", payment.reference, line)
            continue
        tier = tiers.get(line.ticket_tier_id)
        if tier is None:
            if settings.FULFILLMENT_STRICT_TIERS:
                raise FulfillmentError(f"Ticket tier {line.ticket_tier_id} not found")
            logger.warning("Payment %s: ticket tier %s not found, line skipped",
                           payment.reference, line.ticket_tier_id)
            continue
        for _ in range(line.quantity):
            units.append(Ticket(
                event_id=payment.event_id,
                tier=tier,
                payment=payment,
                user_id=payment.user_id,
                price=tier.price,
                attendee_name=line.attendee_name.strip(),
                attendee_email=line.attendee_email.strip(),
                attendee_phone=line.attendee_phone.strip(),
                status=Ticket.Status.ACTIVE,
            ))
    if not units:
        raise FulfillmentError("No valid tickets to create")
    return units


def fulfill_payment(reference: str, gateway_data: dict | None = None) -> str:
    """
    Подтверждённая оплата -> PENDING становится COMPLETED и выпускаются билеты.

    Безопасно вызывать повторно с теми же данными: переход статуса делается
    условным UPDATE ... WHERE status='PENDING', и выпускает билеты только тот
    вызов, который его выполнил. Письма уходят после коммита.
    ConfirmationCodeError пробрасывается: транзакция откатывается,
    платёж остаётся PENDING и шлюз повторит доставку.
    """
    payment = Payment.objects.filter(reference=reference).first()
    if payment is None:
        logger.warning("Fulfillment: unknown payment reference %s", reference)
        return UNKNOWN_REFERENCE
    if payment.status == Payment.Status.COMPLETED:
        logger.info("Fulfillment: payment %s already completed", reference)
        return ALREADY_COMPLETED
    if payment.status != Payment.Status.PENDING:
        logger.warning("Fulfillment: payment %s is %s, ignoring", reference, payment.status)
        return NOT_PENDING

    paid_amount = (gateway_data or {}).get("amount")
    if paid_amount is not None and paid_amount != payment.amount:
        logger.warning("Fulfillment: payment %s amount differs: gateway=%s stored=%s",
                       reference, paid_amount, payment.amount)
        # недоплата: билеты по полной цене не выдаём
        if isinstance(paid_amount, int) and paid_amount < payment.amount:
            mark_payment_failed(payment, f"Underpaid: received {paid_amount}, expected {payment.amount}")
            return FAILED

    try:
        with transaction.atomic():
            now = timezone.now()
            claimed = (Payment.objects
                       .filter(pk=payment.pk, status=Payment.Status.PENDING)
                       .update(status=Payment.Status.COMPLETED, paid_at=now,
                               webhook_payload=gateway_data, updated_at=now))
            if not claimed:
                logger.info("Fulfillment: payment %s claimed by a concurrent delivery", reference)
                return ALREADY_COMPLETED
            tickets = issue_tickets(_build_tickets(payment))
            notify_on_commit(tickets)
    except FulfillmentError as e:
        mark_payment_failed(payment, str(e))
        return FAILED

    logger.info("Fulfillment: payment %s completed, %s tickets issued", reference, len(tickets))
    return FULFILLED


def refresh_payment_status(payment: Payment) -> Payment:
    """
    Опрос со страницы возврата: если вебхук ещё не пришёл,
    спрашиваем шлюз и выполняем ту же выдачу билетов.
    """
    if payment.status != Payment.Status.PENDING:
        return payment
    try:
        data = paystack.verify_transaction(payment.reference)
    except paystack.PaystackError as e:
        logger.warning("Verify %s: gateway unavailable: %s", payment.reference, e)
        return payment

    gateway_status = (data or {}).get("status")
    if gateway_status == "success":
        try:
            fulfill_payment(payment.reference, data)
        except ConfirmationCodeError:
            # платёж остался PENDING, билеты выдаст следующий вебхук или опрос
            logger.exception("Verify %s: could not issue tickets", payment.reference)
            return payment
    elif gateway_status in ("failed", "reversed"):
        mark_payment_failed(payment, f"Gateway reported {gateway_status}")
    payment.refresh_from_db()
    return payment
