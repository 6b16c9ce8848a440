import json
from decimal import Decimal

from django.conf import settings


def client_ip(request) -> str:
    # за прокси берём первый адрес из X-Forwarded-For
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or 'unknown'


def read_json(request):
    """Тело запроса как dict; None, если это не JSON-объект."""
    try:
        body = json.loads(request.body.decode('utf-8') or '{}')
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return body if isinstance(body, dict) else None


def from_kobo(amount: int) -> Decimal:
    return (Decimal(amount or 0) / 100).quantize(Decimal('0.01'))


def format_amount(amount: int, currency: str | None = None) -> str:
    # 500000 -> "NGN 5,000.00"
    currency = currency or settings.DEFAULT_CURRENCY
    return f"{currency} {from_kobo(amount):,.2f}"
