from django.core.paginator import Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from core.decorators import api_login_required
from events.models import Event
from events.serializers import event_payload

from .models import Favorite


@api_login_required
@require_GET
def favorites_list(request):
    """Избранные мероприятия пользователя."""
    qs = (Favorite.objects
          .filter(user=request.user)
          .select_related('event', 'event__category', 'event__organizer')
          .order_by('-created_at'))
    page_obj = Paginator(qs, 12).get_page(request.GET.get('page'))
    return JsonResponse({
        "results": [event_payload(f.event) for f in page_obj.object_list],
        "page": page_obj.number,
        "num_pages": page_obj.paginator.num_pages,
    })


@api_login_required
@require_POST
def favorite_add(request, event_id: int):
    event = get_object_or_404(Event, pk=event_id, status=Event.Status.ACTIVE)
    _, created = Favorite.objects.get_or_create(user=request.user, event=event)
    return JsonResponse({"message": "Added to favorites", "event_id": event.pk},
                        status=201 if created else 200)


@api_login_required
@require_POST
def favorite_remove(request, event_id: int):
    Favorite.objects.filter(user=request.user, event_id=event_id).delete()
    return JsonResponse({"message": "Removed from favorites", "event_id": event_id})
