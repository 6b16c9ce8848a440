from core.utils import format_amount

from .models import Event, TicketTier


def tier_payload(tier: TicketTier) -> dict:
    return {
        "id": tier.pk,
        "name": tier.name,
        "description": tier.description,
        "price": tier.price,
        "price_display": format_amount(tier.price),
        "capacity": tier.capacity,
        "remaining": tier.remaining,
    }


def event_payload(event: Event, with_tiers: bool = False) -> dict:
    data = {
        "id": event.pk,
        "title": event.title,
        "slug": event.slug,
        "category": event.category.slug if event.category_id else None,
        "organizer": event.organizer.display_name,
        "description": event.description,
        "event_type": event.event_type,
        "starts_at": event.starts_at.isoformat(),
        "ends_at": event.ends_at.isoformat() if event.ends_at else None,
        "location": event.location,
        "venue": event.venue,
        "status": event.status,
        "is_public": event.is_public,
        "max_attendees": event.max_attendees,
        "image": event.image.url if event.image else None,
        "views_count": event.views_count,
    }
    if with_tiers:
        data["ticket_tiers"] = [tier_payload(t) for t in event.ticket_tiers.all()]
    return data
