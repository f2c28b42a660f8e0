from __future__ import annotations

from slug_api.domain.slugs import OwnerType
from slug_api.services import redirect_cache as cache_module
from slug_api.services.redirect_cache import RedirectCache


def test_entries_expire(monkeypatch):
    clock = [100.0]
    monkeypatch.setattr(cache_module.time, "monotonic", lambda: clock[0])
    cache = RedirectCache(ttl_seconds=10)
    key = cache.key(OwnerType.VENDOR, "acme")

    cache.set(key, ("redirect", "/vendors/acme-new"))
    assert cache.get(key) == ("redirect", "/vendors/acme-new")

    clock[0] += 11
    assert cache.get(key) is None
    assert len(cache) == 0


def test_invalidate_slug_across_route_types():
    cache = RedirectCache(ttl_seconds=60)
    for owner_type in OwnerType:
        cache.set(cache.key(owner_type, "acme"), ("owner", {}))
    cache.set(cache.key(OwnerType.VENDOR, "other"), ("owner", {}))

    cache.invalidate("acme")

    assert len(cache) == 1
    cache.invalidate()
    assert len(cache) == 0


def test_zero_ttl_disables_cache():
    cache = RedirectCache(ttl_seconds=0)
    cache.set("vendor:acme", ("owner", {}))
    assert cache.get("vendor:acme") is None
