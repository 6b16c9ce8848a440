import pytest
from django.utils import timezone

from users.models import User
from users.services import confirm_email, make_verification_token

from .helpers import json_post

pytestmark = pytest.mark.django_db


def test_register_sends_verification_email(client, mailoutbox):
    response = json_post(client, '/users/register/', {
        "username": "kemi",
        "email": "Kemi@Example.com",
        "password1": "Sup3r-secret-pass",
        "password2": "Sup3r-secret-pass",
    })

    assert response.status_code == 201
    user = User.objects.get(username='kemi')
    assert user.email == 'kemi@example.com'
    assert user.role == User.Role.USER
    assert user.email_verified_at is None
    assert len(mailoutbox) == 1
    assert '/users/verify-email/?token=' in mailoutbox[0].body


def test_register_duplicate_email(client, buyer):
    response = json_post(client, '/users/register/', {
        "username": "another",
        "email": buyer.email,
        "password1": "Sup3r-secret-pass",
        "password2": "Sup3r-secret-pass",
    })

    assert response.status_code == 400
    assert "email" in response.json()["errors"]


def test_verify_email(client, buyer):
    response = client.get('/users/verify-email/', {"token": make_verification_token(buyer)})

    assert response.status_code == 200
    buyer.refresh_from_db()
    assert buyer.email_verified_at is not None


def test_token_is_void_after_email_change(buyer):
    token = make_verification_token(buyer)
    buyer.email = 'new@example.com'
    buyer.save()

    assert confirm_email(token) is None
    assert confirm_email('garbage') is None


def test_login_by_email(client, buyer):
    response = json_post(client, '/users/login/', {"email": "buyer@example.com", "password": "pass12345!"})

    assert response.status_code == 200
    assert response.json()["user"]["username"] == 'buyer'
    assert client.get('/users/profile/').status_code == 200


def test_profile_requires_login(client):
    assert client.get('/users/profile/').status_code == 401


def test_resend_verification_hides_unknown_emails(client, buyer, mailoutbox):
    known = json_post(client, '/users/resend-verification/', {"email": buyer.email})
    unknown = json_post(client, '/users/resend-verification/', {"email": "ghost@example.com"})

    assert known.json() == unknown.json()
    assert len(mailoutbox) == 1


def test_profile_update(client, buyer):
    client.force_login(buyer)

    response = json_post(client, '/users/profile/', {"first_name": "Tolu", "phone": "08031234567"})

    assert response.status_code == 200
    buyer.refresh_from_db()
    assert buyer.first_name == 'Tolu'
    assert buyer.email == 'buyer@example.com'


def test_profile_rejects_bad_phone(client, buyer):
    client.force_login(buyer)

    response = json_post(client, '/users/profile/', {"phone": "555-0100"})

    assert response.status_code == 400
    assert "phone" in response.json()["errors"]


def test_email_change_requires_new_verification(client, buyer):
    buyer.email_verified_at = timezone.now()
    buyer.save()
    client.force_login(buyer)

    json_post(client, '/users/profile/', {"email": "fresh@example.com"})

    buyer.refresh_from_db()
    assert buyer.email == 'fresh@example.com'
    assert buyer.email_verified_at is None
