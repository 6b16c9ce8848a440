import csv
import logging

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Case, F, IntegerField, Min, Q, Value, When
from django.forms.models import model_to_dict
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from core.decorators import role_required
from core.utils import read_json
from favorites.models import Favorite
from tickets.models import Ticket
from users.models import User

from .forms import EventForm, TicketTierForm
from .models import SEAT_HOLDING_TICKET_STATUSES, Category, Event
from .serializers import event_payload, tier_payload

logger = logging.getLogger('events')

organizer_required = role_required(User.Role.ORGANIZER)


def _own_event(request, pk: int) -> Event:
    # администратор видит любые события, организатор только свои
    qs = Event.objects.select_related('category', 'organizer')
    if request.user.is_platform_admin:
        return get_object_or_404(qs, pk=pk)
    return get_object_or_404(qs, pk=pk, organizer=request.user)


@require_GET
def event_list(request, slug=None):
    """
    Публичный список мероприятий: поиск, фильтры, сортировка, пагинация.
    """
    qs = (Event.objects
          .filter(status=Event.Status.ACTIVE, is_public=True)
          .select_related('category', 'organizer'))
    now = timezone.now()

    if request.GET.get('past') == '1':
        qs = qs.filter(starts_at__lt=now)
    else:
        qs = qs.filter(starts_at__gte=now)

    q = (request.GET.get('q') or '').strip()
    category_slug = (slug or request.GET.get('category') or '').strip()
    city = (request.GET.get('city') or request.GET.get('location') or '').strip()
    event_type = (request.GET.get('type') or '').strip().upper()
    date_from = request.GET.get('date_from') or ''
    date_to = request.GET.get('date_to') or ''
    sort = (request.GET.get('sort') or 'soon').strip()

    if category_slug:
        qs = qs.filter(category__slug=category_slug)
    if city:
        qs = qs.filter(Q(location__icontains=city) | Q(venue__icontains=city))
    if event_type in Event.EventType.values:
        qs = qs.filter(event_type=event_type)
    if date_from:
        df = parse_date(date_from)
        if df:
            qs = qs.filter(starts_at__date__gte=df)
    if date_to:
        dt = parse_date(date_to)
        if dt:
            qs = qs.filter(starts_at__date__lte=dt)

    # Поиск: сначала совпадения в названии, затем в описании
    rank_applied = False
    if q:
        words = [w for w in q.replace(',', ' ').split() if w]
        q_title = Q()
        q_desc = Q()
        for w in words:
            q_title |= Q(title__icontains=w)
            q_desc |= Q(description__icontains=w)
        qs = qs.filter(q_title | q_desc).annotate(
            _rank=Case(
                When(q_title, then=Value(0)),
                When(q_desc, then=Value(1)),
                default=Value(2),
                output_field=IntegerField(),
            )
        )
        rank_applied = True

    if sort == 'cheap':
        qs = qs.annotate(min_price=Min('ticket_tiers__price'))
        primary_order = 'min_price'
    elif sort == 'popular':
        primary_order = '-views_count'
    else:
        sort = 'soon'
        primary_order = 'starts_at'

    if rank_applied:
        qs = qs.order_by('_rank', primary_order, 'id')
    else:
        qs = qs.order_by(primary_order, 'id')

    paginator = Paginator(qs, 12)
    events_page = paginator.get_page(request.GET.get('page'))

    favorite_ids = set()
    if request.user.is_authenticated:
        ids_on_page = [e.id for e in events_page.object_list]
        favorite_ids = set(
            Favorite.objects
                    .filter(user=request.user, event_id__in=ids_on_page)
                    .values_list('event_id', flat=True)
        )

    results = []
    for e in events_page.object_list:
        item = event_payload(e)
        item["is_favorite"] = e.id in favorite_ids
        results.append(item)

    return JsonResponse({
        "results": results,
        "page": events_page.number,
        "num_pages": paginator.num_pages,
        "count": paginator.count,
        "sort": sort,
        "categories": [{"slug": c.slug, "name": c.name} for c in Category.objects.all()],
    })


@require_GET
def event_detail(request, slug: str):
    event = get_object_or_404(
        Event.objects.select_related('category', 'organizer'),
        slug=slug,
        status=Event.Status.ACTIVE,
    )
    Event.objects.filter(pk=event.pk).update(views_count=F("views_count") + 1)
    event.refresh_from_db(fields=["views_count"])

    data = event_payload(event, with_tiers=True)
    data["is_bookable"] = event.is_bookable
    data["is_favorite"] = (
        request.user.is_authenticated
        and Favorite.objects.filter(user=request.user, event=event).exists()
    )
    return JsonResponse({"event": data})


# ---------- КАБИНЕТ ОРГАНИЗАТОРА ----------

@organizer_required
@require_GET
def my_events(request):
    qs = (Event.objects
          .filter(organizer=request.user)
          .select_related('category', 'organizer')
          .prefetch_related('ticket_tiers'))
    return JsonResponse({"results": [event_payload(e, with_tiers=True) for e in qs]})


@organizer_required
@require_POST
def event_create(request):
    """
    Создание события вместе с тарифами одним запросом.
    Платное событие нельзя опубликовать без тарифов.
    """
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    form = EventForm(data)
    tiers_data = data.get("ticket_tiers") or []
    if not isinstance(tiers_data, list):
        return JsonResponse({"error": "ticket_tiers must be a list"}, status=400)
    tier_forms = [TicketTierForm(t if isinstance(t, dict) else {}) for t in tiers_data]

    errors = {}
    if not form.is_valid():
        errors.update(form.errors)
    tier_errors = {i: f.errors for i, f in enumerate(tier_forms) if not f.is_valid()}
    if tier_errors:
        errors["ticket_tiers"] = tier_errors
    if errors:
        return JsonResponse({"error": "Invalid input data", "errors": errors}, status=400)

    cleaned = form.cleaned_data
    if (cleaned["event_type"] == Event.EventType.PAID and cleaned["status"] == Event.Status.ACTIVE
            and not tier_forms):
        return JsonResponse({"error": "A paid event needs at least one ticket tier"}, status=400)

    with transaction.atomic():
        event = form.save(organizer=request.user)
        for tf in tier_forms:
            tier = tf.save(commit=False)
            tier.event = event
            # у бесплатного события цена всегда 0
            if event.is_free:
                tier.price = 0
            tier.save()

    logger.info("Event created: id=%s organizer=%s", event.pk, request.user.pk)
    return JsonResponse({"event": event_payload(event, with_tiers=True)}, status=201)


def _tier_forms_for_edit(event, tiers_data):
    """Тариф с id обновляется, без id создаётся новый. None, если id чужой."""
    fields = TicketTierForm._meta.fields
    existing = {t.pk: t for t in event.ticket_tiers.all()}
    tier_forms = []
    for item in tiers_data:
        item = item if isinstance(item, dict) else {}
        tier_id = item.get("id")
        if tier_id is None:
            tier_forms.append(TicketTierForm(item))
            continue
        tier = existing.get(tier_id)
        if tier is None:
            return None
        tier_forms.append(TicketTierForm({**model_to_dict(tier, fields=fields), **item}, instance=tier))
    return tier_forms


@organizer_required
@require_POST
def event_edit(request, pk: int):
    """
    Изменение события и его тарифов. В JSON передаются только изменяемые поля.
    Тип события нельзя поменять, если билеты уже выданы.
    """
    event = _own_event(request, pk)
    if event.status not in (Event.Status.DRAFT, Event.Status.ACTIVE):
        return JsonResponse({"error": "This event can no longer be edited"}, status=400)

    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)
    tiers_data = data.pop("ticket_tiers", None) or []
    if not isinstance(tiers_data, list):
        return JsonResponse({"error": "ticket_tiers must be a list"}, status=400)

    tier_forms = _tier_forms_for_edit(event, tiers_data)
    if tier_forms is None:
        return JsonResponse({"error": "Ticket type not found"}, status=400)

    old_type = event.event_type
    has_sales = Ticket.objects.filter(event=event, status__in=SEAT_HOLDING_TICKET_STATUSES).exists()
    # форма дополняет переданные поля текущими значениями
    form = EventForm({**model_to_dict(event, fields=EventForm._meta.fields), **data}, instance=event)

    errors = {}
    if not form.is_valid():
        errors.update(form.errors)
    tier_errors = {i: f.errors for i, f in enumerate(tier_forms) if not f.is_valid()}
    for i, tf in enumerate(tier_forms):
        tier = tf.instance
        if i not in tier_errors and tier.pk and tier.capacity is not None and tier.capacity < tier.sold_count:
            tier_errors[i] = {"capacity": ["Capacity cannot be below tickets already issued."]}
    if tier_errors:
        errors["ticket_tiers"] = tier_errors
    if errors:
        return JsonResponse({"error": "Invalid input data", "errors": errors}, status=400)

    cleaned = form.cleaned_data
    if "starts_at" in data and cleaned["starts_at"] < timezone.now():
        return JsonResponse({"error": "Event date cannot be in the past"}, status=400)
    if cleaned["event_type"] != old_type and has_sales:
        return JsonResponse({"error": "Cannot change event type when tickets have been sold"}, status=400)
    new_tiers = sum(1 for tf in tier_forms if not tf.instance.pk)
    if (cleaned["event_type"] == Event.EventType.PAID and cleaned["status"] == Event.Status.ACTIVE
            and not event.ticket_tiers.exists() and not new_tiers):
        return JsonResponse({"error": "A paid event needs at least one ticket tier"}, status=400)

    with transaction.atomic():
        event = form.save(organizer=request.user)
        for tf in tier_forms:
            tier = tf.save(commit=False)
            tier.event = event
            if event.is_free:
                tier.price = 0
            tier.save()
        if event.is_free:
            event.ticket_tiers.exclude(price=0).update(price=0)

    logger.info("Event updated: id=%s by user=%s", event.pk, request.user.pk)
    return JsonResponse({"event": event_payload(event, with_tiers=True)})


@organizer_required
@require_POST
def ticket_tier_create(request, pk: int):
    event = _own_event(request, pk)
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    form = TicketTierForm(data)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)
    tier = form.save(commit=False)
    tier.event = event
    if event.is_free:
        tier.price = 0
    tier.save()
    return JsonResponse({"ticket_tier": tier_payload(tier)}, status=201)


def _attendee_tickets(event):
    return (Ticket.objects
            .select_related('tier')
            .filter(event=event)
            .order_by('created_at', 'id'))


@organizer_required
@require_GET
def event_attendees(request, pk: int):
    event = _own_event(request, pk)
    tickets = _attendee_tickets(event)
    return JsonResponse({
        "event": {"id": event.pk, "title": event.title},
        "count": len(tickets),
        "attendees": [
            {
                "confirmation_code": t.confirmation_code,
                "attendee_name": t.attendee_name,
                "attendee_email": t.attendee_email,
                "attendee_phone": t.attendee_phone,
                "tier": t.tier.name,
                "status": t.status,
                "created_at": t.created_at.isoformat(),
            }
            for t in tickets
        ],
    })


@organizer_required
@require_GET
def event_attendees_export(request, pk: int):
    """Экспорт списка участников в CSV."""
    event = _own_event(request, pk)

    # BOM, чтобы Excel корректно открывал UTF-8
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="attendees-event-{event.id}.csv"'
    response.write('\ufeff')

    writer = csv.writer(response)
    writer.writerow(['Code', 'Name', 'Email', 'Phone', 'Tier', 'Price', 'Status', 'Purchased at'])
    for t in _attendee_tickets(event):
        created = timezone.localtime(t.created_at).strftime('%Y-%m-%d %H:%M')
        writer.writerow([t.confirmation_code, t.attendee_name, t.attendee_email, t.attendee_phone,
                         t.tier.name, t.price, t.status, created])
    return response
