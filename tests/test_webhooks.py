import pytest

from payments import services as payment_services
from payments.models import Payment
from payouts.models import Payout
from tickets import services as ticket_services
from tickets.models import Ticket
from tickets.services import CONFIRMATION_ALPHABET, CONFIRMATION_CODE_LENGTH

from .helpers import order_line

pytestmark = pytest.mark.django_db


def charge_success(reference='PSK_REF_123', amount=1200000, **data):
    return {"event": "charge.success",
            "data": {"reference": reference, "amount": amount, "status": "success", **data}}


@pytest.fixture
def vip_order(make_payment, vip_tier, regular_tier):
    return make_payment(tickets=[
        order_line(vip_tier, quantity=2),
        order_line(regular_tier, quantity=1),
    ])


def test_invalid_signature_is_rejected(post_webhook, vip_order):
    response = post_webhook(charge_success(), signature='deadbeef')

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid signature"}
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING
    assert Ticket.objects.count() == 0


def test_missing_signature_is_rejected(post_webhook, vip_order):
    response = post_webhook(charge_success(), signature=False)

    assert response.status_code == 401
    assert Ticket.objects.count() == 0


def test_non_ascii_signature_is_rejected(post_webhook, vip_order):
    response = post_webhook(charge_success(), signature='é' * 128)

    assert response.status_code == 401
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING


def test_signature_from_another_secret_is_rejected(post_webhook, vip_order, settings):
    settings.PAYSTACK_SECRET_KEY = 'sk_live_other'
    response = post_webhook(charge_success())

    assert response.status_code == 401


def test_charge_success_issues_tickets_and_sends_one_email(
        post_webhook, vip_order, vip_tier, regular_tier, django_capture_on_commit_callbacks, mailoutbox):
    with django_capture_on_commit_callbacks(execute=True):
        response = post_webhook(charge_success())

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook processed"}

    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.COMPLETED
    assert vip_order.paid_at is not None
    assert vip_order.webhook_payload["reference"] == 'PSK_REF_123'

    tickets = list(Ticket.objects.filter(payment=vip_order).order_by('price', 'id'))
    assert len(tickets) == 3
    assert [t.tier_id for t in tickets] == [regular_tier.pk, vip_tier.pk, vip_tier.pk]
    assert [t.price for t in tickets] == [200000, 500000, 500000]
    assert all(t.status == Ticket.Status.ACTIVE for t in tickets)
    assert all(t.attendee_email == 'chioma@example.com' for t in tickets)

    assert len(mailoutbox) == 1
    message = mailoutbox[0]
    assert message.to == ['chioma@example.com']
    for t in tickets:
        assert t.confirmation_code in message.body
    assert len(message.attachments) == 3


def test_tickets_are_grouped_by_attendee_email(
        post_webhook, make_payment, vip_tier, django_capture_on_commit_callbacks, mailoutbox):
    make_payment(tickets=[
        order_line(vip_tier, quantity=1, email='a@example.com'),
        order_line(vip_tier, quantity=1, email='b@example.com'),
        order_line(vip_tier, quantity=1, email='A@example.com'),
    ])
    with django_capture_on_commit_callbacks(execute=True):
        post_webhook(charge_success())

    assert Ticket.objects.count() == 3
    assert sorted(m.to[0] for m in mailoutbox) == ['a@example.com', 'b@example.com']


def test_duplicate_delivery_does_not_issue_more_tickets(
        post_webhook, vip_order, django_capture_on_commit_callbacks, mailoutbox):
    with django_capture_on_commit_callbacks(execute=True):
        first = post_webhook(charge_success())
    with django_capture_on_commit_callbacks(execute=True):
        second = post_webhook(charge_success())

    assert first.status_code == 200
    assert second.status_code == 200
    assert Ticket.objects.filter(payment=vip_order).count() == 3
    assert len(mailoutbox) == 1


def test_payment_claimed_by_concurrent_delivery_is_left_alone(
        vip_order, monkeypatch, django_capture_on_commit_callbacks, mailoutbox):
    stale = Payment.objects.get(pk=vip_order.pk)
    # другой обработчик успел завершить платёж после нашего чтения
    Payment.objects.filter(pk=vip_order.pk).update(status=Payment.Status.COMPLETED)
    manager = Payment.objects

    class StaleRead:
        def filter(self, **kwargs):
            qs = manager.filter(**kwargs)
            if "reference" in kwargs:
                qs.first = lambda: stale
            return qs

    monkeypatch.setattr(Payment, "objects", StaleRead())

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        result = payment_services.fulfill_payment("PSK_REF_123", charge_success()["data"])

    assert result == payment_services.ALREADY_COMPLETED
    assert Ticket.objects.count() == 0
    assert callbacks == []
    assert mailoutbox == []


def test_underpaid_charge_fails_payment(post_webhook, vip_order):
    response = post_webhook(charge_success(amount=1000000))

    assert response.status_code == 200
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.FAILED
    assert vip_order.failure_reason == "Underpaid: received 1000000, expected 1200000"
    assert Ticket.objects.count() == 0


def test_overpaid_charge_is_still_fulfilled(post_webhook, vip_order):
    post_webhook(charge_success(amount=1300000))

    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.COMPLETED
    assert Ticket.objects.count() == 3


def test_confirmation_codes_use_unambiguous_alphabet(post_webhook, vip_order):
    post_webhook(charge_success())

    codes = list(Ticket.objects.values_list('confirmation_code', flat=True))
    assert len(set(codes)) == len(codes) == 3
    for code in codes:
        assert len(code) == CONFIRMATION_CODE_LENGTH
        assert set(code) <= set(CONFIRMATION_ALPHABET)


def test_malformed_metadata_fails_payment(post_webhook, make_payment):
    payment = make_payment(metadata={"tickets": "two VIP please"})

    response = post_webhook(charge_success())

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.status == Payment.Status.FAILED
    assert payment.failure_reason.startswith("Malformed order metadata")
    assert Ticket.objects.count() == 0


def test_metadata_stored_as_json_string_is_accepted(post_webhook, make_payment, vip_tier):
    payment = make_payment(metadata='{"tickets": [{"ticket_tier_id": %d, "quantity": 1, '
                                    '"attendee_name": "Tunde", "attendee_email": "tunde@example.com"}]}'
                                    % vip_tier.pk)

    post_webhook(charge_success())

    payment.refresh_from_db()
    assert payment.status == Payment.Status.COMPLETED
    assert Ticket.objects.get(payment=payment).attendee_name == 'Tunde'


def test_unknown_reference_is_acknowledged(post_webhook, vip_order):
    response = post_webhook(charge_success(reference='PSK_UNKNOWN'))

    assert response.status_code == 200
    assert Ticket.objects.count() == 0
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING


def test_failed_payment_is_not_fulfilled_later(post_webhook, make_payment, vip_tier):
    payment = make_payment(tickets=[order_line(vip_tier)], status=Payment.Status.FAILED)

    response = post_webhook(charge_success())

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.status == Payment.Status.FAILED
    assert Ticket.objects.count() == 0


def test_unknown_tier_line_is_skipped(post_webhook, make_payment, vip_tier):
    payment = make_payment(tickets=[
        order_line(vip_tier, quantity=1),
        {"ticket_tier_id": 999999, "quantity": 2, "attendee_name": "Ghost", "attendee_email": "g@example.com"},
    ])

    post_webhook(charge_success())

    payment.refresh_from_db()
    assert payment.status == Payment.Status.COMPLETED
    assert list(Ticket.objects.values_list('tier_id', flat=True)) == [vip_tier.pk]


def test_unknown_tier_fails_payment_in_strict_mode(post_webhook, make_payment, vip_tier, settings):
    settings.FULFILLMENT_STRICT_TIERS = True
    payment = make_payment(tickets=[
        order_line(vip_tier, quantity=1),
        {"ticket_tier_id": 999999, "quantity": 1, "attendee_name": "Ghost", "attendee_email": "g@example.com"},
    ])

    post_webhook(charge_success())

    payment.refresh_from_db()
    assert payment.status == Payment.Status.FAILED
    assert Ticket.objects.count() == 0


def test_incomplete_lines_only_fail_payment(post_webhook, make_payment, vip_tier):
    payment = make_payment(tickets=[
        {"ticket_tier_id": vip_tier.pk, "quantity": 1, "attendee_name": "", "attendee_email": ""},
    ])

    post_webhook(charge_success())

    payment.refresh_from_db()
    assert payment.status == Payment.Status.FAILED
    assert payment.failure_reason == "No valid tickets to create"


def test_non_success_charge_status_is_ignored(post_webhook, vip_order):
    response = post_webhook(charge_success(status='failed'))

    assert response.status_code == 200
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING
    assert Ticket.objects.count() == 0


def test_charge_without_status_is_fulfilled(post_webhook, vip_order):
    payload = charge_success()
    del payload["data"]["status"]

    post_webhook(payload)

    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.COMPLETED


def test_unrelated_event_is_ignored(post_webhook, vip_order):
    response = post_webhook({"event": "subscription.create", "data": {"reference": "PSK_REF_123"}})

    assert response.status_code == 200
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING


def test_code_collision_is_retried(post_webhook, vip_order, vip_tier, monkeypatch):
    Ticket.objects.create(event=vip_tier.event, tier=vip_tier, price=0, attendee_name='Old',
                          attendee_email='old@example.com', confirmation_code='TAKEN222')
    batches = iter([
        ['TAKEN222', 'FRESH222', 'FRESH333'],
        ['NEWAAA22', 'NEWBBB22', 'NEWCCC22'],
    ])
    monkeypatch.setattr(ticket_services, 'generate_confirmation_codes', lambda count: next(batches))

    response = post_webhook(charge_success())

    assert response.status_code == 200
    codes = set(Ticket.objects.filter(payment=vip_order).values_list('confirmation_code', flat=True))
    assert codes == {'NEWAAA22', 'NEWBBB22', 'NEWCCC22'}


def test_exhausted_code_attempts_leave_payment_pending(post_webhook, vip_order, vip_tier, monkeypatch, settings):
    settings.CONFIRMATION_CODE_ATTEMPTS = 2
    Ticket.objects.create(event=vip_tier.event, tier=vip_tier, price=0, attendee_name='Old',
                          attendee_email='old@example.com', confirmation_code='TAKEN222')
    monkeypatch.setattr(ticket_services, 'generate_confirmation_codes',
                        lambda count: ['TAKEN222'] + [f'FREE{i:04d}' for i in range(count - 1)])

    response = post_webhook(charge_success())

    # шлюз повторит доставку
    assert response.status_code == 500
    assert response.json() == {"message": "Webhook processing failed"}
    vip_order.refresh_from_db()
    assert vip_order.status == Payment.Status.PENDING
    assert Ticket.objects.filter(payment=vip_order).count() == 0


def test_transfer_success_settles_payout(post_webhook, organizer, mailoutbox):
    payout = Payout.objects.create(organizer=organizer, amount=100000, bank_account='0123456789',
                                   bank_code='058', account_name='ADA OBI', status=Payout.Status.PROCESSING,
                                   transfer_reference='PO_1_abc', transfer_code='TRF_1')

    response = post_webhook({"event": "transfer.success",
                             "data": {"reference": "PO_1_abc", "transfer_code": "TRF_1"}})

    assert response.status_code == 200
    payout.refresh_from_db()
    assert payout.status == Payout.Status.COMPLETED
    assert len(mailoutbox) == 1


def test_transfer_failed_marks_payout_failed(post_webhook, organizer):
    payout = Payout.objects.create(organizer=organizer, amount=100000, bank_account='0123456789',
                                   bank_code='058', account_name='ADA OBI', status=Payout.Status.PROCESSING,
                                   transfer_reference='PO_2_abc', transfer_code='TRF_2')

    post_webhook({"event": "transfer.failed", "data": {"transfer_code": "TRF_2"}})

    payout.refresh_from_db()
    assert payout.status == Payout.Status.FAILED
    assert payout.failure_reason == "Gateway reported failed"
