# users/views.py
import logging

from django.contrib.auth import authenticate, login, logout
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from core.decorators import api_login_required
from core.ratelimit import ratelimit
from core.utils import client_ip, read_json

from .forms import UserRegisterForm, UserUpdateForm
from .models import User
from .services import confirm_email, send_verification_email

logger = logging.getLogger('auth')


def _user_payload(user: User) -> dict:
    return {
        "id": user.pk,
        "username": user.username,
        "email": user.email,
        "name": user.display_name,
        "phone": user.phone,
        "role": user.role,
        "email_verified": user.email_verified_at is not None,
    }


def _resend_key(request) -> str:
    # лимит на пару IP + email, чтобы нельзя было заспамить один адрес
    body = read_json(request) or {}
    email = str(body.get("email") or "").strip().lower()
    return f"{client_ip(request)}:{email}"


@require_POST
@ratelimit('register')
def register(request):
    """Регистрация нового пользователя."""
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    form = UserRegisterForm(data)
    if not form.is_valid():
        return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)

    user = form.save()
    logger.info("User registered: id=%s email=%s", user.pk, user.email)
    send_verification_email(user)
    return JsonResponse({"message": "Registration successful. Check your email to verify your account.",
                         "user": _user_payload(user)}, status=201)


@require_POST
@ratelimit('login')
def login_view(request):
    data = read_json(request)
    if data is None:
        return JsonResponse({"error": "Invalid JSON"}, status=400)

    # входить можно по username или по email
    identifier = str(data.get("username") or data.get("email") or "").strip()
    password = str(data.get("password") or "")
    if "@" in identifier:
        found = User.objects.filter(email=identifier.lower()).first()
        identifier = found.username if found else identifier

    user = authenticate(request, username=identifier, password=password)
    if user is None:
        logger.info("Failed login for %s from %s", identifier, client_ip(request))
        return JsonResponse({"error": "Invalid credentials"}, status=401)

    login(request, user)
    return JsonResponse({"user": _user_payload(user)})


@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({"message": "Logged out"})


@require_GET
def verify_email(request):
    user = confirm_email(request.GET.get("token", ""))
    if user is None:
        return JsonResponse({"error": "Invalid or expired verification link"}, status=400)
    return JsonResponse({"message": "Email verified", "user": _user_payload(user)})


@require_POST
@ratelimit('resend_verification', key=_resend_key)
def resend_verification(request):
    data = read_json(request) or {}
    email = str(data.get("email") or "").strip().lower()
    if not email:
        return JsonResponse({"error": "Email is required"}, status=400)

    user = User.objects.filter(email=email).first()
    if user is not None and user.email_verified_at is None:
        send_verification_email(user)
    # одинаковый ответ, чтобы не раскрывать, есть ли такой адрес
    return JsonResponse({"message": "If the account exists and is not verified, a new link has been sent."})


@api_login_required
@require_http_methods(["GET", "POST"])
def profile(request):
    """Профиль: GET отдаёт данные, POST изменяет."""
    if request.method == "POST":
        data = read_json(request)
        if data is None:
            return JsonResponse({"error": "Invalid JSON"}, status=400)
        # незаполненные поля берём из текущего профиля
        merged = {**_user_payload(request.user), **data}
        merged.setdefault("first_name", request.user.first_name)
        merged.setdefault("last_name", request.user.last_name)
        form = UserUpdateForm(merged, instance=request.user)
        if not form.is_valid():
            return JsonResponse({"error": "Invalid input data", "errors": form.errors}, status=400)
        user = form.save()
        return JsonResponse({"user": _user_payload(user)})

    return JsonResponse({"user": _user_payload(request.user)})
