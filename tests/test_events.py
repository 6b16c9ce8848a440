from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from events.models import Event, TicketTier
from favorites.models import Favorite
from tickets.models import Ticket

from .helpers import json_post

pytestmark = pytest.mark.django_db


def event_data(category, **overrides):
    data = {
        "title": "Afrobeats Live",
        "category": category.pk,
        "description": "Open air concert",
        "event_type": "PAID",
        "starts_at": (timezone.now() + timedelta(days=30)).isoformat(),
        "location": "Lagos",
        "venue": "Tafawa Balewa Square",
        "status": "ACTIVE",
        "ticket_tiers": [
            {"name": "VIP", "price": 1500000, "capacity": 100},
            {"name": "Regular", "price": 500000},
        ],
    }
    data.update(overrides)
    return data


class TestCreate:
    url = '/events/create/'

    def test_organizer_creates_event_with_tiers(self, client, organizer, category):
        client.force_login(organizer)

        response = json_post(client, self.url, event_data(category))

        assert response.status_code == 201
        body = response.json()["event"]
        assert body["slug"] == 'afrobeats-live'
        assert [t["name"] for t in body["ticket_tiers"]] == ['Regular', 'VIP']
        event = Event.objects.get()
        assert event.organizer == organizer
        assert event.is_public

    def test_buyer_cannot_create(self, client, buyer, category):
        client.force_login(buyer)
        assert json_post(client, self.url, event_data(category)).status_code == 403

    def test_paid_active_event_needs_tiers(self, client, organizer, category):
        client.force_login(organizer)

        response = json_post(client, self.url, event_data(category, ticket_tiers=[]))

        assert response.status_code == 400
        assert not Event.objects.exists()

    def test_paid_draft_without_tiers(self, client, organizer, category):
        client.force_login(organizer)
        response = json_post(client, self.url, event_data(category, ticket_tiers=[], status="DRAFT"))
        assert response.status_code == 201

    def test_free_event_tiers_are_zero_priced(self, client, organizer, category):
        client.force_login(organizer)

        json_post(client, self.url, event_data(category, event_type="FREE"))

        assert set(TicketTier.objects.values_list('price', flat=True)) == {0}

    def test_end_before_start(self, client, organizer, category):
        client.force_login(organizer)
        data = event_data(category, ends_at=(timezone.now() + timedelta(days=1)).isoformat())

        response = json_post(client, self.url, data)

        assert response.status_code == 400
        assert "ends_at" in response.json()["errors"]

    def test_organizer_cannot_suspend(self, client, organizer, category):
        client.force_login(organizer)
        response = json_post(client, self.url, event_data(category, status="SUSPENDED"))
        assert response.status_code == 400

    def test_reserved_slug_is_avoided(self, client, organizer, category):
        client.force_login(organizer)
        json_post(client, self.url, event_data(category, title="Create"))
        assert Event.objects.get().slug == 'create-event'

    def test_invalid_tier(self, client, organizer, category):
        client.force_login(organizer)
        data = event_data(category, ticket_tiers=[{"name": "Broken", "price": 100, "capacity": 0}])

        response = json_post(client, self.url, data)

        assert response.status_code == 400
        assert "ticket_tiers" in response.json()["errors"]


class TestPublicList:

    def test_only_upcoming_public_active_events(self, client, paid_event, organizer, category):
        Event.objects.create(title='Draft', category=category, organizer=organizer, location='Lagos',
                             starts_at=timezone.now() + timedelta(days=3))
        Event.objects.create(title='Hidden', category=category, organizer=organizer, location='Lagos',
                             starts_at=timezone.now() + timedelta(days=3), status=Event.Status.ACTIVE,
                             is_public=False)
        Event.objects.create(title='Yesterday', category=category, organizer=organizer, location='Lagos',
                             starts_at=timezone.now() - timedelta(days=1), status=Event.Status.ACTIVE)

        body = client.get('/events/').json()

        assert [e["title"] for e in body["results"]] == ['Lagos Jazz Night']
        past = client.get('/events/', {"past": "1"}).json()
        assert [e["title"] for e in past["results"]] == ['Yesterday']

    def test_search_and_filters(self, client, paid_event, free_event):
        assert client.get('/events/', {"q": "jazz"}).json()["count"] == 1
        assert client.get('/events/', {"city": "abuja"}).json()["results"][0]["title"] == 'Open Mic'
        assert client.get('/events/', {"type": "free"}).json()["count"] == 1
        assert client.get('/events/category/music/').json()["count"] == 2
        assert client.get('/events/category/sport/').json()["count"] == 0

    def test_cheap_sort(self, client, paid_event, vip_tier, free_event, free_tier):
        body = client.get('/events/', {"sort": "cheap"}).json()
        assert [e["title"] for e in body["results"]] == ['Open Mic', 'Lagos Jazz Night']

    def test_favorites_are_marked(self, client, buyer, paid_event, free_event):
        Favorite.objects.create(user=buyer, event=paid_event)
        client.force_login(buyer)

        results = client.get('/events/').json()["results"]

        assert {e["title"]: e["is_favorite"] for e in results} == {'Lagos Jazz Night': True, 'Open Mic': False}


def test_detail_counts_views(client, paid_event, vip_tier):
    body = client.get(f'/events/{paid_event.slug}/').json()["event"]

    assert body["views_count"] == 1
    assert body["is_bookable"] is True
    assert body["ticket_tiers"][0]["remaining"] == 50


def test_detail_of_draft_is_404(client, paid_event):
    Event.objects.filter(pk=paid_event.pk).update(status=Event.Status.DRAFT)
    assert client.get(f'/events/{paid_event.slug}/').status_code == 404


class TestAttendees:

    @pytest.fixture
    def tickets(self, paid_event, vip_tier):
        return [Ticket.objects.create(event=paid_event, tier=vip_tier, price=500000, attendee_name=name,
                                      attendee_email=f'{name.lower()}@example.com', confirmation_code=code)
                for name, code in (('Emeka', 'EMEKA234'), ('Zainab', 'ZAINA234'))]

    def test_list(self, client, organizer, paid_event, tickets):
        client.force_login(organizer)

        body = client.get(f'/events/{paid_event.pk}/attendees/').json()

        assert body["count"] == 2
        assert [a["attendee_name"] for a in body["attendees"]] == ['Emeka', 'Zainab']

    def test_csv_export(self, client, organizer, paid_event, tickets):
        client.force_login(organizer)

        response = client.get(f'/events/{paid_event.pk}/attendees/export/')

        text = response.content.decode('utf-8-sig')
        assert response['Content-Type'].startswith('text/csv')
        assert text.splitlines()[0].startswith('Code,Name,Email')
        assert 'EMEKA234' in text

    def test_other_organizer_gets_404(self, client, paid_event, tickets, django_user_model):
        other = django_user_model.objects.create_user(username='other', email='other@example.com',
                                                      password='x', role='ORGANIZER')
        client.force_login(other)
        assert client.get(f'/events/{paid_event.pk}/attendees/').status_code == 404


def test_tier_remaining_counts_seat_holding_tickets(paid_event, vip_tier):
    for i, status in enumerate((Ticket.Status.ACTIVE, Ticket.Status.USED, Ticket.Status.CANCELLED)):
        Ticket.objects.create(event=paid_event, tier=vip_tier, price=500000, attendee_name='A',
                              attendee_email='a@example.com', confirmation_code=f'CODE{i}234', status=status)

    assert vip_tier.sold_count == 2
    assert vip_tier.remaining == 48
    assert vip_tier.has_room_for(48)
    assert not vip_tier.has_room_for(49)


class TestEdit:

    def url(self, event):
        return f'/events/{event.pk}/edit/'

    def test_partial_update_with_tiers(self, client, organizer, paid_event, vip_tier):
        client.force_login(organizer)
        slug = paid_event.slug

        response = json_post(client, self.url(paid_event), {
            "title": "Lagos Jazz Night II",
            "ticket_tiers": [
                {"id": vip_tier.pk, "price": 600000},
                {"name": "Student", "price": 100000, "capacity": 20},
            ],
        })

        assert response.status_code == 200
        paid_event.refresh_from_db()
        assert paid_event.title == 'Lagos Jazz Night II'
        assert paid_event.slug == slug
        assert paid_event.venue == 'Eko Hotel'
        vip_tier.refresh_from_db()
        assert vip_tier.price == 600000
        assert vip_tier.name == 'VIP'
        assert sorted(t["name"] for t in response.json()["event"]["ticket_tiers"]) == ['Student', 'VIP']

    def test_buyer_is_forbidden(self, client, buyer, paid_event):
        client.force_login(buyer)
        assert json_post(client, self.url(paid_event), {"title": "Mine"}).status_code == 403

    def test_other_organizer_gets_404(self, client, paid_event, django_user_model):
        other = django_user_model.objects.create_user(username='other', email='other@example.com',
                                                      password='x', role='ORGANIZER')
        client.force_login(other)

        assert json_post(client, self.url(paid_event), {"title": "Mine"}).status_code == 404
        paid_event.refresh_from_db()
        assert paid_event.title == 'Lagos Jazz Night'

    def test_type_is_locked_after_sales(self, client, organizer, paid_event, vip_tier):
        Ticket.objects.create(event=paid_event, tier=vip_tier, price=500000, attendee_name='A',
                              attendee_email='a@example.com', confirmation_code='SOLD2345')
        client.force_login(organizer)

        response = json_post(client, self.url(paid_event), {"event_type": "FREE"})

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot change event type when tickets have been sold"
        paid_event.refresh_from_db()
        assert paid_event.event_type == Event.EventType.PAID

    def test_switch_to_free_zeroes_prices(self, client, organizer, paid_event, vip_tier):
        client.force_login(organizer)

        assert json_post(client, self.url(paid_event), {"event_type": "FREE"}).status_code == 200
        vip_tier.refresh_from_db()
        assert vip_tier.price == 0

    def test_start_in_the_past(self, client, organizer, paid_event):
        client.force_login(organizer)

        response = json_post(client, self.url(paid_event),
                             {"starts_at": (timezone.now() - timedelta(days=1)).isoformat()})

        assert response.status_code == 400
        assert response.json()["error"] == "Event date cannot be in the past"

    def test_capacity_below_issued_tickets(self, client, organizer, paid_event, vip_tier):
        for code in ('SOLD2345', 'SOLD3456'):
            Ticket.objects.create(event=paid_event, tier=vip_tier, price=500000, attendee_name='A',
                                  attendee_email='a@example.com', confirmation_code=code)
        client.force_login(organizer)

        response = json_post(client, self.url(paid_event), {"ticket_tiers": [{"id": vip_tier.pk, "capacity": 1}]})

        assert response.status_code == 400
        assert "ticket_tiers" in response.json()["errors"]
        vip_tier.refresh_from_db()
        assert vip_tier.capacity == 50

    def test_tier_of_another_event(self, client, organizer, paid_event, free_tier):
        client.force_login(organizer)

        response = json_post(client, self.url(paid_event), {"ticket_tiers": [{"id": free_tier.pk, "price": 1}]})

        assert response.status_code == 400
        assert response.json()["error"] == "Ticket type not found"

    def test_completed_event_is_locked(self, client, organizer, paid_event):
        Event.objects.filter(pk=paid_event.pk).update(status=Event.Status.COMPLETED)
        client.force_login(organizer)

        assert json_post(client, self.url(paid_event), {"title": "Again"}).status_code == 400


class TestCompletePastEvents:

    @pytest.fixture
    def events(self, organizer, category, paid_event):
        now = timezone.now()

        def make(title, status, starts_at, ends_at=None):
            return Event.objects.create(title=title, category=category, organizer=organizer,
                                        starts_at=starts_at, ends_at=ends_at, location='Lagos', status=status)

        return {
            "ended": make('Ended', Event.Status.ACTIVE, now - timedelta(days=2)),
            "ended_draft": make('Old draft', Event.Status.DRAFT, now - timedelta(days=3),
                                now - timedelta(days=2)),
            "running": make('Festival', Event.Status.ACTIVE, now - timedelta(days=1), now + timedelta(days=1)),
            "cancelled": make('Called off', Event.Status.CANCELLED, now - timedelta(days=2)),
            "upcoming": paid_event,
        }

    def statuses(self, events):
        return {key: Event.objects.get(pk=e.pk).status for key, e in events.items()}

    def test_completes_only_ended_events(self, events):
        out = StringIO()

        call_command('complete_past_events', stdout=out)

        assert self.statuses(events) == {
            "ended": Event.Status.COMPLETED,
            "ended_draft": Event.Status.COMPLETED,
            "running": Event.Status.ACTIVE,
            "cancelled": Event.Status.CANCELLED,
            "upcoming": Event.Status.ACTIVE,
        }
        assert "Completed 2 event(s)" in out.getvalue()

    def test_dry_run_changes_nothing(self, events):
        out = StringIO()

        call_command('complete_past_events', '--dry-run', stdout=out)

        assert "2 event(s) ready to complete" in out.getvalue()
        assert self.statuses(events)["ended"] == Event.Status.ACTIVE
