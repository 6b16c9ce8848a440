import datetime

from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

from core.decorators import role_required
from events.models import SEAT_HOLDING_TICKET_STATUSES, Event, TicketTier
from payments.models import Payment
from payouts.models import Payout
from tickets.models import Ticket
from users.models import User


@role_required(User.Role.ORGANIZER)
@require_GET
def dashboard_index(request):
    """
    Сводка продаж: организатор видит свои события, администратор видит всю платформу.
    """
    user = request.user
    is_admin = user.is_platform_admin

    events_qs = Event.objects.select_related('category')
    payments_qs = Payment.objects.filter(status=Payment.Status.COMPLETED)
    tickets_qs = Ticket.objects.all()
    if not is_admin:
        events_qs = events_qs.filter(organizer=user)
        payments_qs = payments_qs.filter(event__organizer=user)
        tickets_qs = tickets_qs.filter(event__organizer=user)

    # --- Карточки ---
    agg = payments_qs.aggregate(
        revenue=Sum('amount'),
        organizer=Sum('organizer_amount'),
        platform=Sum('platform_fee'),
        gateway=Sum('gateway_fee'),
        orders=Count('id'),
    )
    sold_total = tickets_qs.filter(status__in=SEAT_HOLDING_TICKET_STATUSES).count()
    checkins_total = tickets_qs.filter(status=Ticket.Status.USED).count()

    # --- Временной ряд (последние 30 дней) ---
    today = timezone.localdate()
    start_date = today - datetime.timedelta(days=29)
    ts_qs = (payments_qs
             .filter(paid_at__date__gte=start_date, paid_at__date__lte=today)
             .annotate(d=TruncDate('paid_at'))
             .values('d')
             .annotate(revenue=Sum('amount'), orders=Count('id'))
             .order_by('d'))
    by_date = {row['d']: row for row in ts_qs}
    timeseries = []
    for i in range(30):
        d = start_date + datetime.timedelta(days=i)
        row = by_date.get(d) or {}
        timeseries.append({"date": d.isoformat(), "revenue": row.get('revenue') or 0,
                           "orders": row.get('orders') or 0})

    # --- Топ событий по выручке ---
    top_events = list(payments_qs
                      .values('event__id', 'event__title', 'event__slug')
                      .annotate(revenue=Sum('amount'), orders=Count('id'))
                      .order_by('-revenue')[:10])

    # --- Сводка по событиям (продано/остаток) ---
    sold_per_event = dict(
        tickets_qs.filter(status__in=SEAT_HOLDING_TICKET_STATUSES)
        .values('event_id').annotate(n=Count('id')).values_list('event_id', 'n')
    )
    capacity_per_event = dict(
        TicketTier.objects.filter(event__in=events_qs, capacity__isnull=False)
        .values('event_id').annotate(cap=Sum('capacity')).values_list('event_id', 'cap')
    )
    events_summary = []
    for e in events_qs.order_by('-starts_at')[:50]:
        sold = sold_per_event.get(e.id, 0)
        cap = capacity_per_event.get(e.id)
        events_summary.append({
            'id': e.id,
            'title': e.title,
            'slug': e.slug,
            'status': e.status,
            'starts_at': e.starts_at.isoformat(),
            'sold': sold,
            'remaining': max(cap - sold, 0) if cap is not None else None,
        })

    data = {
        'is_admin': is_admin,
        'cards': {
            'revenue_total': agg['revenue'] or 0,
            'organizer_total': agg['organizer'] or 0,
            'orders_total': agg['orders'] or 0,
            'sold_total': sold_total,
            'checkins_total': checkins_total,
        },
        'timeseries': timeseries,
        'top_events': top_events,
        'events_summary': events_summary,
    }
    if is_admin:
        # доход платформы и очередь на выплату
        data['platform'] = {
            'platform_fees': agg['platform'] or 0,
            'gateway_fees': agg['gateway'] or 0,
            'pending_payouts': Payout.objects.filter(status=Payout.Status.PENDING).count(),
            'processing_payouts': Payout.objects.filter(status=Payout.Status.PROCESSING).count(),
            'organizers': User.objects.filter(role=User.Role.ORGANIZER).count(),
            'active_events': Event.objects.filter(status=Event.Status.ACTIVE).count(),
        }
    return JsonResponse(data)
