import re

from django.db.models import Q
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from core.decorators import api_login_required, role_required
from core.utils import read_json
from events.models import Event
from users.models import User

from .forms import clean_ticket_lines
from .models import Ticket
from .services import BookingError, ConfirmationCodeError, book_free_tickets, check_in_ticket
from .utils import build_ticket_pdf


def ticket_payload(t: Ticket) -> dict:
    return {
        "confirmation_code": t.confirmation_code,
        "event": {"id": t.event_id, "title": t.event.title, "slug": t.event.slug,
                  "starts_at": t.event.starts_at.isoformat(), "location": t.event.location},
        "tier": t.tier.name,
        "price": t.price,
        "attendee_name": t.attendee_name,
        "attendee_email": t.attendee_email,
        "status": t.status,
        "used_at": t.used_at.isoformat() if t.used_at else None,
        "created_at": t.created_at.isoformat(),
    }


@require_POST
def book_free(request):
    """Бронирование бесплатного события, вход не обязателен."""
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    try:
        event_id = int(data.get("event_id"))
    except (TypeError, ValueError):
        return JsonResponse({"error": "event_id is required"}, status=400)
    lines, errors = clean_ticket_lines(data.get("tickets"))
    if errors:
        return JsonResponse({"error": "Invalid input data", "errors": errors}, status=400)

    try:
        tickets = book_free_tickets(event_id, lines, user=request.user)
    except BookingError as e:
        return JsonResponse({"error": str(e)}, status=e.status)
    except ConfirmationCodeError:
        return JsonResponse({"error": "Could not issue tickets, please try again"}, status=503)

    return JsonResponse({
        "message": "Tickets booked",
        "confirmation_codes": [t.confirmation_code for t in tickets],
    }, status=201)


@api_login_required
@require_GET
def my_tickets(request):
    # билеты, купленные из аккаунта, и выписанные на его email
    tickets = (Ticket.objects
               .select_related('event', 'tier')
               .filter(Q(user=request.user) | Q(attendee_email__iexact=request.user.email))
               .order_by('-created_at'))
    return JsonResponse({"results": [ticket_payload(t) for t in tickets]})


def _can_manage_ticket(user, ticket: Ticket) -> bool:
    return user.is_platform_admin or (user.is_organizer and ticket.event.organizer_id == user.id)


@api_login_required
@require_GET
def ticket_pdf(request, code: str):
    ticket = get_object_or_404(
        Ticket.objects.select_related('event', 'tier', 'event__organizer'),
        confirmation_code=code.upper(),
    )
    is_owner = (ticket.user_id == request.user.id
                or ticket.attendee_email.lower() == request.user.email.lower())
    if not (is_owner or _can_manage_ticket(request.user, ticket)):
        return JsonResponse({"error": "Forbidden"}, status=403)

    response = HttpResponse(build_ticket_pdf(ticket), content_type="application/pdf")
    response["Content-Disposition"] = f'attachment; filename="ticket-{ticket.confirmation_code}.pdf"'
    return response


# --- разбор кода, введённого вручную или считанного с QR ---
PAYLOAD_RE = re.compile(r'^TICKET:(?P<code>[A-Z0-9]{8})\|EVENT:(?P<event>\d+)$')


def _parse_code(code: str) -> dict:
    """
    Поддерживаем 2 формата:
      1) Полный payload из QR: TICKET:ABCD2345|EVENT:5
      2) Только код подтверждения: ABCD2345
    """
    code = (code or '').strip().upper()
    m = PAYLOAD_RE.match(code)
    if m:
        return {"code": m.group("code"), "event_id": int(m.group("event"))}
    if re.fullmatch(r'[A-Z0-9]{8}', code):
        return {"code": code}
    return {}


@role_required(User.Role.ORGANIZER)
@require_POST
def check_in(request):
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    parsed = _parse_code(str(data.get("code") or ""))
    if not parsed:
        return JsonResponse({"error": "Invalid ticket code"}, status=400)

    ticket = (Ticket.objects.select_related('event', 'tier')
              .filter(confirmation_code=parsed["code"]).first())
    if ticket is None:
        return JsonResponse({"error": "Ticket not found"}, status=404)

    event_id = parsed.get("event_id") or data.get("event_id")
    if event_id and str(ticket.event_id) != str(event_id):
        return JsonResponse({"error": "This ticket belongs to another event"}, status=400)
    if not _can_manage_ticket(request.user, ticket):
        return JsonResponse({"error": "Forbidden"}, status=403)
    if ticket.event.status == Event.Status.CANCELLED:
        return JsonResponse({"error": "Event has been cancelled"}, status=400)

    ok, message = check_in_ticket(ticket, mark_used=(data.get("action") == "use"))
    return JsonResponse({"valid": ok, "message": message, "ticket": ticket_payload(ticket)},
                        status=200 if ok else 409)
