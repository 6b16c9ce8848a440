"""
Ограничение частоты запросов (регистрация, вход, повторная отправка письма).

Лимитер: интерфейс с одной операцией hit(key): проверить и засчитать
попытку. Реализация выбирается настройкой RATE_LIMITER_CLASS:

* CacheRateLimiter: фиксированное окно в кэше Django. С Redis в CACHES
  счётчики общие для всех инстансов, с LocMem только для процесса.
* MemoryRateLimiter: словарь в памяти процесса, окно отсчитывается от
  первой попытки. Сбрасывается при перезапуске.
"""
import functools
import threading
import time
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import caches
from django.http import JsonResponse
from django.utils.module_loading import import_string

from .utils import client_ip


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # unix time, когда окно сбросится

    def retry_after(self, now: float | None = None) -> int:
        now = time.time() if now is None else now
        return max(int(self.reset_at - now + 0.999), 0)


class RateLimiter:
    def __init__(self, scope: str, limit: int, window: int, clock=time.time):
        self.scope = scope
        self.limit = limit
        self.window = window
        self.clock = clock

    def hit(self, key: str) -> RateLimitResult:
        raise NotImplementedError


class CacheRateLimiter(RateLimiter):
    cache_alias = 'default'

    def hit(self, key: str) -> RateLimitResult:
        now = self.clock()
        window_start = int(now // self.window) * self.window
        reset_at = window_start + self.window
        cache = caches[self.cache_alias]
        cache_key = f"rl:{self.scope}:{key}:{window_start}"

        # add атомарен: первый запрос в окне создаёт счётчик
        if cache.add(cache_key, 1, timeout=self.window):
            count = 1
        else:
            try:
                count = cache.incr(cache_key)
            except ValueError:
                # ключ успел истечь между add и incr
                cache.set(cache_key, 1, timeout=self.window)
                count = 1

        if count > self.limit:
            return RateLimitResult(False, 0, reset_at)
        return RateLimitResult(True, self.limit - count, reset_at)


class MemoryRateLimiter(RateLimiter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._lock = threading.Lock()
        self._entries: dict[str, list] = {}  # key -> [count, reset_at]

    def hit(self, key: str) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now > entry[1]:
                entry = [1, now + self.window]
                self._entries[key] = entry
                return RateLimitResult(True, self.limit - 1, entry[1])

            if entry[0] >= self.limit:
                return RateLimitResult(False, 0, entry[1])

            entry[0] += 1
            return RateLimitResult(True, self.limit - entry[0], entry[1])

    def reset(self):
        with self._lock:
            self._entries.clear()


@functools.lru_cache(maxsize=None)
def get_rate_limiter(scope: str) -> RateLimiter:
    limit, window = settings.RATE_LIMITS[scope]
    limiter_class = import_string(settings.RATE_LIMITER_CLASS)
    return limiter_class(scope, limit, window)


def ratelimit(scope: str, key=None):
    """
    Декоратор для view. key(request) -> строка-ключ; по умолчанию IP клиента.
    При превышении отвечает 429 с заголовками Retry-After и X-RateLimit-*.
    """
    key_func = key or client_ip

    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            result = get_rate_limiter(scope).hit(key_func(request))
            if not result.allowed:
                retry_after = result.retry_after()
                response = JsonResponse({
                    "error": f"Too many attempts. Try again in {max(retry_after // 60, 1)} minute(s).",
                    "code": "RATE_LIMITED",
                    "retry_after": retry_after,
                }, status=429)
                response["Retry-After"] = str(retry_after)
            else:
                response = view(request, *args, **kwargs)
            response["X-RateLimit-Remaining"] = str(result.remaining)
            response["X-RateLimit-Reset"] = str(int(result.reset_at))
            return response
        return wrapper
    return decorator
