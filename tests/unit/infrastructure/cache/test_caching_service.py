import asyncio
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from hxclient.core.exceptions import CacheError
from hxclient.domain.models.common import CacheKey
from hxclient.domain.models.http import Request, Response
from hxclient.infrastructure.cache.caching_service import DefaultCachePolicy, ResponseCache


def make_response(status_code: int = 200, method: str = "GET", **headers) -> Response:
    request = Request.build(method, "https://example.com/resource")
    return Response(status_code=status_code, headers=dict(headers), content=b"body", request=request)


# --- DefaultCachePolicy ---

@pytest.fixture
def policy():
    return DefaultCachePolicy(default_ttl=900)


def test_heuristic_status_uses_default_ttl(policy: DefaultCachePolicy):
    """Heuristically cacheable statuses get the default TTL."""
    assert policy.ttl(make_response(200)) == 900
    assert policy.ttl(make_response(404)) == 900


@pytest.mark.parametrize("status_code", [201, 302, 429, 500, 503])
def test_other_status_not_cached(policy: DefaultCachePolicy, status_code: int):
    """Other statuses are not cached."""
    assert policy.ttl(make_response(status_code)) == 0


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
def test_unsafe_methods_not_cached(policy: DefaultCachePolicy, method: str):
    """Unsafe methods are not cached."""
    assert policy.ttl(make_response(200, method=method)) == 0


def test_head_is_cacheable(policy: DefaultCachePolicy):
    """HEAD responses are cacheable."""
    assert policy.ttl(make_response(200, method="HEAD")) == 900


@pytest.mark.parametrize("directive", ["no-store", "no-cache", "private", "max-age=60, private"])
def test_uncacheable_directives(policy: DefaultCachePolicy, directive: str):
    """Cache-Control directives can forbid caching."""
    kwargs = {"Cache-Control": directive}
    assert policy.ttl(make_response(200, **kwargs)) == 0


def test_max_age(policy: DefaultCachePolicy):
    """max-age sets the TTL."""
    kwargs = {"Cache-Control": "public, max-age=60"}
    assert policy.ttl(make_response(200, **kwargs)) == 60


def test_s_maxage_wins_over_max_age(policy: DefaultCachePolicy):
    """s-maxage takes precedence over max-age."""
    kwargs = {"Cache-Control": "max-age=60, s-maxage=120"}
    assert policy.ttl(make_response(200, **kwargs)) == 120


def test_explicit_max_age_applies_to_any_status(policy: DefaultCachePolicy):
    """An explicit max-age caches any status."""
    kwargs = {"Cache-Control": "max-age=30"}
    assert policy.ttl(make_response(500, **kwargs)) == 30


def test_invalid_max_age(policy: DefaultCachePolicy):
    """An unparseable max-age disables caching."""
    kwargs = {"Cache-Control": "max-age=soon"}
    assert policy.ttl(make_response(200, **kwargs)) == 0


def test_expires_relative_to_date(policy: DefaultCachePolicy):
    """Expires is measured from the Date header."""
    date = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    kwargs = {
        "Date": format_datetime(date, usegmt=True),
        "Expires": format_datetime(date + timedelta(minutes=5), usegmt=True),
    }
    assert policy.ttl(make_response(200, **kwargs)) == 300


def test_expires_in_the_past(policy: DefaultCachePolicy):
    """A past Expires disables caching."""
    kwargs = {"Expires": format_datetime(datetime.now(timezone.utc) - timedelta(hours=1), usegmt=True)}
    assert policy.ttl(make_response(200, **kwargs)) == 0


def test_invalid_expires_means_expired(policy: DefaultCachePolicy):
    """An invalid Expires counts as expired."""
    assert policy.ttl(make_response(200, Expires="0")) == 0


# --- ResponseCache ---

KEY = CacheKey("ns:abc")


@pytest.mark.asyncio
async def test_set_and_get_returns_independent_copy():
    """get returns a copy marked as cached."""
    cache = ResponseCache()
    await cache.set(KEY, make_response(200), ttl=60)

    first = await cache.get(KEY)
    first.headers["X-Mutated"] = "1"
    second = await cache.get(KEY)

    assert second.status_code == 200
    assert second.content == b"body"
    assert "X-Mutated" not in second.headers
    assert second.request is None


@pytest.mark.asyncio
async def test_miss_returns_none():
    """A miss returns None."""
    assert await ResponseCache().get(KEY) is None


@pytest.mark.asyncio
async def test_non_positive_ttl_is_not_stored():
    """A zero TTL stores nothing."""
    cache = ResponseCache()
    await cache.set(KEY, make_response(200), ttl=0)
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_entries_expire():
    """Entries vanish after their TTL."""
    cache = ResponseCache()
    await cache.set(KEY, make_response(200), ttl=0.01)
    await asyncio.sleep(0.03)
    assert await cache.get(KEY) is None


@pytest.mark.asyncio
async def test_lru_eviction():
    """The least recently used entry is evicted first."""
    cache = ResponseCache(capacity=2)
    await cache.set(CacheKey("a"), make_response(200), ttl=60)
    await cache.set(CacheKey("b"), make_response(200), ttl=60)
    await cache.get(CacheKey("a"))
    await cache.set(CacheKey("c"), make_response(200), ttl=60)

    assert await cache.get(CacheKey("a")) is not None
    assert await cache.get(CacheKey("b")) is None
    assert await cache.get(CacheKey("c")) is not None


@pytest.mark.asyncio
async def test_delete_and_clear():
    """delete removes one entry and clear removes all."""
    cache = ResponseCache()
    await cache.set(CacheKey("a"), make_response(200), ttl=60)
    await cache.set(CacheKey("b"), make_response(200), ttl=60)

    await cache.delete(CacheKey("a"))
    assert await cache.get(CacheKey("a")) is None

    await cache.clear()
    assert len(cache) == 0


def test_invalid_capacity():
    """Capacity must be positive."""
    with pytest.raises(ValueError):
        ResponseCache(capacity=0)


@pytest.mark.asyncio
async def test_disk_cache_survives_new_instance(tmp_path):
    """L2 entries are readable from a new instance."""
    cache = ResponseCache(cache_dir=tmp_path / "cache")
    await cache.set(KEY, make_response(200), ttl=60)
    cache.close()

    reopened = ResponseCache(cache_dir=tmp_path / "cache")
    try:
        cached = await reopened.get(KEY)
        assert cached is not None
        assert cached.content == b"body"
        # Promoted into memory
        assert len(reopened) == 1
    finally:
        reopened.close()


@pytest.mark.asyncio
async def test_disk_cache_clear(tmp_path):
    """clear empties the disk cache."""
    cache = ResponseCache(cache_dir=tmp_path / "cache")
    try:
        await cache.set(KEY, make_response(200), ttl=60)
        await cache.clear()
        assert await cache.get(KEY) is None
    finally:
        cache.close()


@pytest.mark.asyncio
async def test_disk_failure_raises_cache_error(tmp_path, mocker):
    """Disk failures raise CacheError."""
    cache = ResponseCache(cache_dir=tmp_path / "cache")
    try:
        mocker.patch.object(cache.disk_cache, "set", side_effect=OSError("disk full"))
        with pytest.raises(CacheError, match="disk full"):
            await cache.set(KEY, make_response(200), ttl=60)
    finally:
        cache.close()
