import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from core.utils import read_json
from tickets.forms import clean_ticket_lines
from tickets.services import BookingError

from . import paystack
from .models import Payment
from .services import create_payment, refresh_payment_status
from .webhooks import handle_webhook_event

logger = logging.getLogger('payments')


@require_POST
def initialize(request):
    """Оформление заказа на платное событие и переход к оплате в Paystack."""
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        event_id = int(data.get("event_id"))
        amount = int(data.get("amount"))
    except (TypeError, ValueError):
        return JsonResponse({"error": "event_id and amount are required"}, status=400)
    customer_email = str(data.get("customer_email") or "").strip().lower()
    if not customer_email and request.user.is_authenticated:
        customer_email = request.user.email
    if not customer_email:
        return JsonResponse({"error": "customer_email is required"}, status=400)

    lines, errors = clean_ticket_lines(data.get("tickets"))
    if errors:
        return JsonResponse({"error": "Invalid input data", "errors": errors}, status=400)

    try:
        payment, gateway = create_payment(event_id, lines, customer_email, amount, user=request.user)
    except BookingError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    except paystack.PaystackError:
        return JsonResponse({"error": "Payment gateway is unavailable, please try again"}, status=502)

    return JsonResponse({
        "reference": payment.reference,
        "authorization_url": gateway.get("authorization_url"),
        "access_code": gateway.get("access_code"),
        "amount": payment.amount,
        "breakdown": payment.metadata.get("payment_breakdown"),
    }, status=201)


@csrf_exempt
@require_POST
def webhook(request):
    """
    Вебхук Paystack. Подпись проверяется по сырому телу до разбора JSON.
    200: событие обработано или пропущено, 500: шлюз повторит доставку.
    """
    raw = request.body
    if not paystack.verify_webhook_signature(raw, request.headers.get("X-Paystack-Signature")):
        logger.warning("Webhook with invalid signature rejected")
        return JsonResponse({"message": "Invalid signature"}, status=401)

    try:
        event = json.loads(raw.decode("utf-8"))
        if not isinstance(event, dict):
            raise ValueError("webhook body must be an object")
        outcome = handle_webhook_event(event)
    except Exception:
        logger.exception("Webhook processing failed")
        return JsonResponse({"message": "Webhook processing failed"}, status=500)

    logger.info("Webhook %s processed: %s", event.get("event"), outcome)
    return JsonResponse({"message": "Webhook processed"})


@require_GET
def verify(request):
    reference = (request.GET.get("reference") or "").strip()
    if not reference:
        return JsonResponse({"error": "Reference is required"}, status=400)

    payment = Payment.objects.select_related('event').filter(reference=reference).first()
    if payment is None:
        return JsonResponse({"error": "Payment record not found"}, status=404)

    payment = refresh_payment_status(payment)
    if payment.status == Payment.Status.COMPLETED:
        state = "success"
    elif payment.status == Payment.Status.PENDING:
        state = "processing"
    else:
        state = "failed"

    return JsonResponse({
        "status": state,
        "reference": payment.reference,
        "event": {"id": payment.event_id, "title": payment.event.title, "slug": payment.event.slug},
        "amount": payment.amount,
        "confirmation_codes": list(payment.tickets.values_list("confirmation_code", flat=True)),
    })
