import logging

from django.conf import settings
from django.core import signing
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils import timezone

from .models import User

logger = logging.getLogger('mail')

_VERIFY_SALT = 'users.email-verification'


def make_verification_token(user: User) -> str:
    return signing.dumps({'uid': user.pk, 'email': user.email}, salt=_VERIFY_SALT)


def send_verification_email(user: User) -> bool:
    """
    Письмо со ссылкой подтверждения. Ошибки логируются и не пробрасываются.
    """
    link = f"{settings.SITE_URL}{reverse('users:verify_email')}?token={make_verification_token(user)}"
    ctx = {'user': user, 'link': link, 'site_name': settings.SITE_NAME}
    msg = EmailMultiAlternatives(
        subject=f"{settings.SITE_NAME}: confirm your email",
        body=render_to_string('email/verify_email.txt', ctx),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[user.email],
    )
    try:
        msg.send(fail_silently=False)
        logger.info("Verification email sent: user=%s to=%s", user.pk, user.email)
        return True
    except Exception as e:
        logger.exception("Verification email FAILED: user=%s to=%s: %s", user.pk, user.email, e)
        return False


def confirm_email(token: str) -> User | None:
    """Возвращает пользователя, если токен валиден и email не менялся."""
    try:
        data = signing.loads(token, salt=_VERIFY_SALT, max_age=settings.EMAIL_VERIFICATION_MAX_AGE)
    except signing.BadSignature:
        return None

    user = User.objects.filter(pk=data.get('uid'), email=data.get('email')).first()
    if user is None:
        return None
    if user.email_verified_at is None:
        user.email_verified_at = timezone.now()
        user.save(update_fields=['email_verified_at'])
    return user
