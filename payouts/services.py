"""
Выводы средств организаторов.

Жизненный цикл заявки:
    PENDING --approve--> PROCESSING | COMPLETED
    PENDING --reject---> CANCELLED
    PROCESSING --transfer.success / transfer.failed--> COMPLETED | FAILED

Каждый переход делается условным UPDATE по ожидаемому статусу,
поэтому два администратора не могут обработать одну заявку дважды.
"""
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import TruncMonth
from django.template.loader import render_to_string
from django.utils import timezone

from core.utils import format_amount
from payments import paystack
from payments.models import Payment
from users.models import User

from .models import Payout

logger = logging.getLogger('payouts')
mail_logger = logging.getLogger('mail')


class PayoutError(Exception):
    status = 400

    def __init__(self, message, status=None):
        super().__init__(message)
        if status is not None:
            self.status = status


class InsufficientBalance(PayoutError):
    pass


class BankVerificationError(PayoutError):
    pass


class InvalidPayoutState(PayoutError):
    pass


# ---------- баланс ----------

def _completed_payments(organizer):
    return Payment.objects.filter(event__organizer=organizer, status=Payment.Status.COMPLETED)


def _payout_sum(organizer, statuses) -> int:
    return (Payout.objects
            .filter(organizer=organizer, status__in=statuses)
            .aggregate(total=Sum('amount'))['total'] or 0)


def available_balance(organizer) -> int:
    earned = _completed_payments(organizer).aggregate(total=Sum('organizer_amount'))['total'] or 0
    return earned - _payout_sum(organizer, Payout.RESERVING_STATUSES)


def organizer_earnings(organizer) -> dict:
    payments = _completed_payments(organizer)
    totals = payments.aggregate(revenue=Sum('amount'), earnings=Sum('organizer_amount'),
                                platform_fees=Sum('platform_fee'))
    earnings = totals['earnings'] or 0
    reserved = _payout_sum(organizer, (Payout.Status.PENDING, Payout.Status.PROCESSING))
    withdrawn = _payout_sum(organizer, (Payout.Status.COMPLETED,))

    now = timezone.now()
    recent = (payments.filter(paid_at__gte=now - timedelta(days=30))
              .aggregate(total=Sum('organizer_amount'))['total'] or 0)
    monthly = (payments
               .filter(paid_at__gte=now - timedelta(days=180))
               .annotate(month=TruncMonth('paid_at'))
               .values('month')
               .annotate(total=Sum('organizer_amount'))
               .order_by('month'))

    return {
        "total_revenue": totals['revenue'] or 0,
        "total_earnings": earnings,
        "total_platform_fees": totals['platform_fees'] or 0,
        "pending_withdrawals": reserved,
        "withdrawn": withdrawn,
        "available_balance": earnings - reserved - withdrawn,
        "recent_earnings": recent,
        "monthly": {row['month'].strftime('%Y-%m'): row['total'] for row in monthly if row['month']},
        "currency": settings.DEFAULT_CURRENCY,
    }


# ---------- заявка организатора ----------

def verify_bank_account(account_number: str, bank_code: str) -> dict:
    try:
        return paystack.resolve_account(account_number, bank_code)
    except paystack.PaystackError as e:
        logger.info("Bank account %s/%s could not be resolved: %s", bank_code, account_number, e)
        raise BankVerificationError("Invalid bank account details") from e


def request_withdrawal(organizer, *, amount: int, account_number: str, bank_code: str,
                       account_name: str, reason: str = '') -> Payout:
    """
    Проверка баланса идёт до обращения к шлюзу; после сверки счёта
    баланс перепроверяется под блокировкой строки организатора.
    """
    if amount > available_balance(organizer):
        raise InsufficientBalance("Insufficient balance")

    resolved = verify_bank_account(account_number, bank_code)
    bank_name = str((resolved or {}).get('account_name') or '')
    if bank_name.strip().casefold() != account_name.strip().casefold():
        raise BankVerificationError("Account name does not match bank records")

    with transaction.atomic():
        # заявки одного организатора создаются последовательно
        User.objects.select_for_update().filter(pk=organizer.pk).first()
        if amount > available_balance(organizer):
            raise InsufficientBalance("Insufficient balance")
        payout = Payout.objects.create(
            organizer=organizer,
            amount=amount,
            bank_account=account_number,
            bank_code=bank_code,
            account_name=bank_name,
            reason=reason or "Withdrawal request",
        )
    logger.info("Withdrawal requested: payout=%s organizer=%s amount=%s", payout.pk, organizer.pk, amount)
    return payout


# ---------- решения администратора ----------

def _get_payout(payout_id) -> Payout:
    payout = Payout.objects.select_related('organizer').filter(pk=payout_id).first()
    if payout is None:
        raise PayoutError("Withdrawal not found", status=404)
    return payout


def _transition(payout: Payout, expected: str, **changes) -> bool:
    changes.setdefault('updated_at', timezone.now())
    updated = Payout.objects.filter(pk=payout.pk, status=expected).update(**changes)
    if updated:
        for field, value in changes.items():
            setattr(payout, field, value)
    return bool(updated)


def approve_payout(payout_id, admin=None) -> Payout:
    """
    Одобрение: заявка захватывается переводом PENDING -> PROCESSING,
    затем в шлюзе создаются получатель и перевод. Ошибка шлюза оставляет
    заявку в PROCESSING с причиной для ручного разбора.
    """
    payout = _get_payout(payout_id)
    if payout.status != Payout.Status.PENDING:
        raise InvalidPayoutState("Withdrawal is not in pending status")
    if not payout.has_bank_details:
        raise PayoutError("Missing required bank account information")

    now = timezone.now()
    if not _transition(payout, Payout.Status.PENDING, status=Payout.Status.PROCESSING,
                       processed_by=admin, processed_at=now):
        raise InvalidPayoutState("Withdrawal is not in pending status")

    reference = f"PO_{payout.pk}_{secrets.token_hex(6)}"
    try:
        recipient = paystack.create_transfer_recipient(
            name=payout.account_name, account_number=payout.bank_account, bank_code=payout.bank_code,
        )
        transfer = paystack.initiate_transfer(
            amount=payout.amount,
            recipient_code=recipient['recipient_code'],
            reference=reference,
            reason=payout.reason or "Event ticket sales withdrawal",
        )
    except (paystack.PaystackError, KeyError, TypeError) as e:
        logger.error("Transfer for payout %s failed, left for manual processing: %s", payout.pk, e)
        _transition(payout, Payout.Status.PROCESSING, transfer_reference=reference,
                    failure_reason=f"Transfer initiation failed: {e}"[:255])
        send_payout_email(payout, 'approved')
        return payout

    transfer = transfer or {}
    new_status = Payout.Status.COMPLETED if transfer.get('status') == 'success' else Payout.Status.PROCESSING
    _transition(payout, Payout.Status.PROCESSING, status=new_status,
                transfer_reference=transfer.get('reference') or reference,
                transfer_code=transfer.get('transfer_code') or '')
    logger.info("Payout %s approved by %s: transfer %s -> %s",
                payout.pk, getattr(admin, 'pk', None), payout.transfer_reference, new_status)

    send_payout_email(payout, 'approved')
    if new_status == Payout.Status.COMPLETED:
        send_payout_email(payout, 'completed')
    return payout


def reject_payout(payout_id, admin=None, reason: str = '') -> Payout:
    payout = _get_payout(payout_id)
    reason = (reason or "Rejected by admin")[:255]
    if not _transition(payout, Payout.Status.PENDING, status=Payout.Status.CANCELLED, reason=reason,
                       processed_by=admin, processed_at=timezone.now()):
        raise InvalidPayoutState("Withdrawal is not in pending status")
    logger.info("Payout %s rejected by %s", payout.pk, getattr(admin, 'pk', None))
    send_payout_email(payout, 'rejected')
    return payout


def bulk_process(action: str, payout_ids, admin=None, reason: str = '') -> list[dict]:
    """Все заявки должны существовать и быть PENDING, иначе ничего не делается."""
    if action not in ('approve', 'reject'):
        raise PayoutError("Invalid action")
    ids = list(dict.fromkeys(payout_ids))
    if not ids:
        raise PayoutError("No withdrawals selected")

    found = dict(Payout.objects.filter(pk__in=ids).values_list('pk', 'status'))
    missing = [i for i in ids if i not in found]
    if missing:
        raise PayoutError(f"Withdrawals not found: {missing}", status=404)
    not_pending = [i for i in ids if found[i] != Payout.Status.PENDING]
    if not_pending:
        raise InvalidPayoutState(f"Withdrawals are not pending: {not_pending}")

    results = []
    for payout_id in ids:
        try:
            if action == 'approve':
                payout = approve_payout(payout_id, admin)
            else:
                payout = reject_payout(payout_id, admin, reason)
            results.append({"id": payout.pk, "status": payout.status})
        except PayoutError as e:
            # заявку успели обработать параллельно
            results.append({"id": payout_id, "error": str(e)})
    return results


# ---------- сверка перевода ----------

def settle_payout(payout: Payout, success: bool, reason: str = '') -> bool:
    """PROCESSING -> COMPLETED/FAILED. False, если заявка уже не в обработке."""
    if success:
        changed = _transition(payout, Payout.Status.PROCESSING, status=Payout.Status.COMPLETED,
                              failure_reason='', processed_at=timezone.now())
    else:
        changed = _transition(payout, Payout.Status.PROCESSING, status=Payout.Status.FAILED,
                              failure_reason=(reason or "Transfer failed")[:255])
    if changed:
        logger.info("Payout %s settled: %s", payout.pk, payout.status)
        send_payout_email(payout, 'completed' if success else 'failed')
    return changed


def reconcile_transfer(event_name: str, data: dict) -> str:
    reference = data.get('reference')
    code = data.get('transfer_code')
    payout = None
    if reference:
        payout = Payout.objects.select_related('organizer').filter(transfer_reference=reference).first()
    if payout is None and code:
        payout = Payout.objects.select_related('organizer').filter(transfer_code=code).first()
    if payout is None:
        logger.warning("Transfer webhook %s for unknown transfer ref=%s code=%s", event_name, reference, code)
        return 'unknown_transfer'

    success = event_name == 'transfer.success'
    reason = '' if success else f"Gateway reported {event_name.split('.', 1)[1]}"
    if not settle_payout(payout, success, reason):
        logger.info("Transfer webhook %s for payout %s in status %s ignored", event_name, payout.pk, payout.status)
        return 'ignored'
    return 'settled'


# ---------- уведомления ----------

_SUBJECTS = {
    'approved': "your withdrawal has been approved",
    'rejected': "your withdrawal request was declined",
    'completed': "your withdrawal has been paid",
    'failed': "your withdrawal transfer failed",
}


def send_payout_email(payout: Payout, kind: str) -> bool:
    """Письмо организатору. Ошибки логируются и не пробрасываются."""
    organizer = payout.organizer
    ctx = {
        'payout': payout,
        'organizer_name': organizer.display_name,
        'amount': format_amount(payout.amount),
        'site_name': settings.SITE_NAME,
        'site_url': settings.SITE_URL,
    }
    try:
        msg = EmailMultiAlternatives(
            subject=f"{settings.SITE_NAME}: {_SUBJECTS[kind]}",
            body=render_to_string(f'email/payout_{kind}.txt', ctx),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[organizer.email],
        )
        msg.send(fail_silently=False)
        mail_logger.info("Payout email sent: payout=%s kind=%s to=%s", payout.pk, kind, organizer.email)
        return True
    except Exception as e:
        mail_logger.exception("Payout email FAILED: payout=%s kind=%s to=%s: %s", payout.pk, kind, organizer.email, e)
        return False
