"""
Клиент Paystack REST API (https://paystack.com/docs/api/).
Все суммы в kobo. Любая ошибка сети или ответа приводит к PaystackError.
"""
import hashlib
import hmac
import logging

import requests
from django.conf import settings

logger = logging.getLogger('payments')


class PaystackError(Exception):
    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def verify_webhook_signature(raw_body: bytes, signature: str | None) -> bool:
    """
    HMAC-SHA512 от сырого тела запроса, ключ: секретный ключ Paystack.
    Проверяется до разбора JSON.
    """
    secret = settings.PAYSTACK_SECRET_KEY
    if not secret or not signature:
        return False
    expected = hmac.new(secret.encode('utf-8'), raw_body, hashlib.sha512).hexdigest()
    # заголовок может содержать что угодно, сравниваем байты
    return hmac.compare_digest(expected.encode('ascii'), signature.strip().encode('utf-8', 'replace'))


def _request(method: str, path: str, *, json=None, params=None) -> dict:
    secret = settings.PAYSTACK_SECRET_KEY
    if not secret:
        raise PaystackError("PAYSTACK_SECRET_KEY is not configured")

    url = f"{settings.PAYSTACK_BASE_URL.rstrip('/')}{path}"
    headers = {
        "Authorization": f"Bearer {secret}",
        "Content-Type": "application/json",
    }
    try:
        resp = requests.request(method, url, headers=headers, json=json, params=params,
                                timeout=settings.PAYSTACK_TIMEOUT)
    except requests.RequestException as e:
        raise PaystackError(f"Network error: {e}") from e

    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.status_code >= 400 or not isinstance(body, dict) or not body.get("status"):
        message = body.get("message") if isinstance(body, dict) else resp.text[:200]
        logger.warning("Paystack %s %s failed: %s %s", method, path, resp.status_code, message)
        raise PaystackError(f"API error {resp.status_code}: {message}",
                            status_code=resp.status_code, payload=body)
    return body.get("data")


def initialize_transaction(*, email: str, amount: int, reference: str, metadata: dict | None = None,
                           callback_url: str | None = None) -> dict:
    """Возвращает {authorization_url, access_code, reference}."""
    payload = {
        "email": email,
        "amount": amount,
        "reference": reference,
        "currency": settings.DEFAULT_CURRENCY,
        "callback_url": callback_url or settings.PAYSTACK_CALLBACK_URL,
    }
    if metadata:
        payload["metadata"] = metadata
    return _request("POST", "/transaction/initialize", json=payload)


def verify_transaction(reference: str) -> dict:
    return _request("GET", f"/transaction/verify/{reference}")


def list_banks(country: str = "nigeria") -> list[dict]:
    data = _request("GET", "/bank", params={"country": country, "perPage": 100})
    return data or []


def resolve_account(account_number: str, bank_code: str) -> dict:
    """Возвращает {account_number, account_name, bank_id}."""
    return _request("GET", "/bank/resolve",
                    params={"account_number": account_number, "bank_code": bank_code})


def create_transfer_recipient(*, name: str, account_number: str, bank_code: str) -> dict:
    return _request("POST", "/transferrecipient", json={
        "type": "nuban",
        "name": name,
        "account_number": account_number,
        "bank_code": bank_code,
        "currency": settings.DEFAULT_CURRENCY,
    })


def initiate_transfer(*, amount: int, recipient_code: str, reference: str, reason: str = "") -> dict:
    """Возвращает {transfer_code, reference, status, ...}; status: success/pending/otp/failed."""
    return _request("POST", "/transfer", json={
        "source": "balance",
        "amount": amount,
        "recipient": recipient_code,
        "reference": reference,
        "reason": reason,
    })
