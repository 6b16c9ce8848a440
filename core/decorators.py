import functools

from django.http import JsonResponse


def api_login_required(view):
    """Как login_required, но для JSON API: 401 вместо редиректа."""
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"error": "Unauthorized"}, status=401)
        return view(request, *args, **kwargs)
    return wrapper


def role_required(*roles):
    """
    Проверка роли на границе API. Администратор платформы проходит всегда.
    """
    def decorator(view):
        @functools.wraps(view)
        @api_login_required
        def wrapper(request, *args, **kwargs):
            user = request.user
            if not (user.is_platform_admin or user.role in roles):
                return JsonResponse({"error": "Forbidden"}, status=403)
            return view(request, *args, **kwargs)
        return wrapper
    return decorator


def admin_required(view):
    return role_required()(view)
