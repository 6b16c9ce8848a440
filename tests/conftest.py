import json
from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone

from core.ratelimit import get_rate_limiter
from events.models import Category, Event, TicketTier
from payments.models import Payment
from users.models import User

from .helpers import PAYSTACK_TEST_SECRET, sign


@pytest.fixture(autouse=True)
def _test_settings(settings):
    settings.PAYSTACK_SECRET_KEY = PAYSTACK_TEST_SECRET
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.RATE_LIMITER_CLASS = 'core.ratelimit.CacheRateLimiter'
    settings.FULFILLMENT_STRICT_TIERS = False
    settings.PLATFORM_FEE_PERCENT = '7'
    cache.clear()
    get_rate_limiter.cache_clear()
    yield settings
    get_rate_limiter.cache_clear()


@pytest.fixture
def buyer(db):
    return User.objects.create_user(username='buyer', email='buyer@example.com', password='pass12345!')


@pytest.fixture
def organizer(db):
    return User.objects.create_user(username='organizer', email='org@example.com', password='pass12345!',
                                    first_name='Ada', last_name='Obi', role=User.Role.ORGANIZER)


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin', email='admin@example.com', password='pass12345!',
                                    role=User.Role.ADMIN)


@pytest.fixture
def category(db):
    return Category.objects.create(name='Music', slug='music')


@pytest.fixture
def paid_event(organizer, category):
    return Event.objects.create(
        title='Lagos Jazz Night',
        category=category,
        organizer=organizer,
        event_type=Event.EventType.PAID,
        starts_at=timezone.now() + timedelta(days=10),
        location='Lagos',
        venue='Eko Hotel',
        status=Event.Status.ACTIVE,
    )


@pytest.fixture
def vip_tier(paid_event):
    return TicketTier.objects.create(event=paid_event, name='VIP', price=500000, capacity=50)


@pytest.fixture
def regular_tier(paid_event):
    return TicketTier.objects.create(event=paid_event, name='Regular', price=200000)


@pytest.fixture
def free_event(organizer, category):
    return Event.objects.create(
        title='Open Mic',
        category=category,
        organizer=organizer,
        event_type=Event.EventType.FREE,
        starts_at=timezone.now() + timedelta(days=5),
        location='Abuja',
        status=Event.Status.ACTIVE,
        max_attendees=3,
    )


@pytest.fixture
def free_tier(free_event):
    return TicketTier.objects.create(event=free_event, name='General', price=0, capacity=2)


@pytest.fixture
def make_payment(paid_event):
    def factory(reference='PSK_REF_123', tickets=None, metadata=None, amount=1200000, **kwargs):
        if metadata is None:
            metadata = {"tickets": tickets or []}
        return Payment.objects.create(
            reference=reference,
            event=kwargs.pop('event', paid_event),
            customer_email=kwargs.pop('customer_email', 'buyer@example.com'),
            amount=amount,
            organizer_amount=kwargs.pop('organizer_amount', 0),
            metadata=metadata,
            **kwargs,
        )
    return factory


@pytest.fixture
def post_webhook(client):
    def send(payload, signature=None):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode('utf-8')
        extra = {}
        if signature is not False:
            extra['HTTP_X_PAYSTACK_SIGNATURE'] = signature or sign(body)
        return client.post('/payments/webhook/', data=body, content_type='application/json', **extra)
    return send
