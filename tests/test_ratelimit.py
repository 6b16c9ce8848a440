import pytest

from core.ratelimit import CacheRateLimiter, MemoryRateLimiter, RateLimitResult, get_rate_limiter

from .helpers import json_post


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.parametrize('limiter_class', [MemoryRateLimiter, CacheRateLimiter])
def test_limit_within_window(limiter_class):
    clock = FakeClock()
    limiter = limiter_class('login', 3, 60, clock=clock)

    results = [limiter.hit('1.2.3.4') for _ in range(4)]

    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    # другие ключи считаются отдельно
    assert limiter.hit('5.6.7.8').allowed


@pytest.mark.parametrize('limiter_class', [MemoryRateLimiter, CacheRateLimiter])
def test_window_resets(limiter_class):
    clock = FakeClock()
    limiter = limiter_class('login', 1, 60, clock=clock)
    assert limiter.hit('k').allowed
    assert not limiter.hit('k').allowed

    clock.now += 61

    assert limiter.hit('k').allowed


def test_memory_limiter_reset():
    limiter = MemoryRateLimiter('login', 1, 60)
    limiter.hit('k')
    limiter.reset()
    assert limiter.hit('k').allowed


def test_retry_after_rounds_up():
    result = RateLimitResult(False, 0, reset_at=100.2)
    assert result.retry_after(now=90.0) == 11
    assert result.retry_after(now=200.0) == 0


@pytest.mark.django_db
@pytest.mark.parametrize('limiter_path', ['core.ratelimit.CacheRateLimiter', 'core.ratelimit.MemoryRateLimiter'])
def test_register_is_rate_limited(client, settings, limiter_path):
    settings.RATE_LIMITER_CLASS = limiter_path
    settings.RATE_LIMITS = {**settings.RATE_LIMITS, 'register': (2, 900)}
    get_rate_limiter.cache_clear()

    responses = [json_post(client, '/users/register/', {"username": ""}) for _ in range(3)]

    assert [r.status_code for r in responses] == [400, 400, 429]
    limited = responses[-1]
    assert limited.json()["code"] == "RATE_LIMITED"
    assert int(limited["Retry-After"]) > 0
    assert limited["X-RateLimit-Remaining"] == "0"


@pytest.mark.django_db
def test_limit_is_per_client_ip(client, settings):
    settings.RATE_LIMITS = {**settings.RATE_LIMITS, 'login': (1, 900)}
    get_rate_limiter.cache_clear()
    creds = {"username": "nobody", "password": "wrong"}

    assert json_post(client, '/users/login/', creds).status_code == 401
    assert json_post(client, '/users/login/', creds).status_code == 429
    other = client.post('/users/login/', data=creds, content_type='application/json',
                        HTTP_X_FORWARDED_FOR='10.0.0.9, 172.16.0.1')
    assert other.status_code == 401
