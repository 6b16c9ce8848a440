import hashlib
import hmac
import json

PAYSTACK_TEST_SECRET = 'sk_test_secret'


def sign(body: bytes, secret: str = PAYSTACK_TEST_SECRET) -> str:
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha512).hexdigest()


def json_post(client, url, data):
    return client.post(url, data=json.dumps(data), content_type='application/json')


def order_line(tier, quantity=1, name='Chioma Okafor', email='chioma@example.com', phone='08031234567'):
    return {
        "ticket_tier_id": tier.pk,
        "quantity": quantity,
        "attendee_name": name,
        "attendee_email": email,
        "attendee_phone": phone,
    }
