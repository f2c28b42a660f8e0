"""
HTTP surface: slug management endpoints and public profile redirects.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from slug_api.app import create_app
from slug_api.core import config as core_config
from slug_api.domain.errors import StoreUnavailableError
from slug_api.services.slug_service import SlugService


@pytest.fixture()
def client(owners):
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _reserve(client, owner, slug, *, method="post", is_update=False):
    body = {"ownerId": owner.owner_id, "ownerType": owner.owner_type.value, "slug": slug}
    if is_update:
        body["isUpdate"] = True
    return getattr(client, method)("/slug/reserve", json=body)


def test_normalize_endpoint(client):
    resp = client.get("/slug/normalize", params={"text": "My Awesome AI Co!!"})
    assert resp.status_code == 200
    assert resp.json() == {"slug": "my-awesome-ai-co"}


def test_validate_endpoint(client, owners):
    resp = client.get("/slug/validate", params={"slug": "fresh-slug"})
    assert resp.json() == {"isValid": True, "isAvailable": True}

    resp = client.post("/slug/validate", json={"slug": "admin"})
    body = resp.json()
    assert body["isValid"] is False
    assert body["isAvailable"] is False
    assert any("reserved" in err for err in body["errors"])

    assert _reserve(client, owners["alice"], "fresh-slug").status_code == 200
    body = client.get("/slug/validate", params={"slug": "fresh-slug"}).json()
    assert body["isAvailable"] is False
    assert body["suggestions"][0] == "fresh-slug-1"

    body = client.get(
        "/slug/validate",
        params={"slug": "fresh-slug", "excludeOwnerId": "usr_alice", "excludeOwnerType": "freelancer"},
    ).json()
    assert body["isAvailable"] is True


def test_validate_requires_slug_and_owner_type(client):
    assert client.get("/slug/validate").status_code == 400
    resp = client.get("/slug/validate", params={"slug": "fresh-slug", "excludeOwnerId": "usr_alice"})
    assert resp.status_code == 400


def test_suggestions_endpoint_caps_count(client):
    resp = client.get("/slug/suggestions", params={"baseSlug": "Jane Doe", "count": 50})
    suggestions = resp.json()["suggestions"]
    assert len(suggestions) == 20
    assert suggestions[:2] == ["jane-doe-1", "jane-doe-2"]

    resp = client.post("/slug/suggestions", json={"baseSlug": "jane-doe", "count": 2})
    assert resp.json() == {"suggestions": ["jane-doe-1", "jane-doe-2"]}
    assert client.post("/slug/suggestions", json={}).status_code == 400


def test_reserve_and_update_status_codes(client, owners):
    ok = _reserve(client, owners["alice"], "alice-site")
    assert ok.status_code == 200
    assert ok.json() == {"success": True, "slug": "alice-site"}

    taken = _reserve(client, owners["acme"], "alice-site")
    assert taken.status_code == 409
    assert taken.json()["code"] == "conflict"

    reserved = _reserve(client, owners["acme"], "admin")
    assert reserved.status_code == 400
    assert reserved.json()["code"] == "reserved"

    invalid = _reserve(client, owners["acme"], "Bad Slug")
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "invalid_format"

    missing = _reserve(client, owners["bob"], "bob-site", method="put")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"

    renamed = _reserve(client, owners["alice"], "alice-studio", method="put")
    assert renamed.status_code == 200
    assert renamed.json() == {"success": True, "slug": "alice-studio", "previousSlug": "alice-site"}

    via_flag = _reserve(client, owners["alice"], "alice-labs", is_update=True)
    assert via_flag.json()["previousSlug"] == "alice-studio"


def test_reserve_rejects_unknown_owner_type(client):
    resp = client.post("/slug/reserve", json={"ownerId": "x", "ownerType": "robot", "slug": "robot-one"})
    assert resp.status_code == 422


def test_history_and_resolve(client, owners):
    _reserve(client, owners["acme"], "acme-a")
    _reserve(client, owners["acme"], "acme-b", method="put")
    _reserve(client, owners["acme"], "acme-c", method="put")

    history = client.get("/slug/history", params={"ownerId": "org_acme", "ownerType": "vendor"}).json()["history"]
    assert [(h["slug"], h["isActive"]) for h in history] == [("acme-a", False), ("acme-b", False), ("acme-c", True)]
    assert history[2]["redirectFrom"] == ["acme-b"]

    resolved = client.get("/slug/resolve/acme-a").json()
    assert resolved["found"] is True
    assert resolved["redirectTo"] == "acme-c"
    assert resolved["path"] == "/vendors/acme-c"
    assert resolved["redirectUrl"].endswith("/vendors/acme-c")

    assert client.get("/slug/resolve/acme-c").json() == {"found": True}
    assert client.get("/slug/resolve/never-used").json() == {"found": False}


def test_public_profile_routes(client, owners):
    _reserve(client, owners["alice"], "alice-old")
    _reserve(client, owners["acme"], "acme-tools")

    resp = client.get("/vendors/acme-tools")
    assert resp.status_code == 200
    assert resp.json()["ownerId"] == "org_acme"

    wrong_type = client.get("/providers/acme-tools", follow_redirects=False)
    assert wrong_type.status_code == 301
    assert wrong_type.headers["location"] == "/vendors/acme-tools"

    # warm the cache, then rename: the endpoint must drop the stale decision
    assert client.get("/providers/alice-old").status_code == 200
    _reserve(client, owners["alice"], "alice-new", method="put")
    stale = client.get("/providers/alice-old", follow_redirects=False)
    assert stale.status_code == 301
    assert stale.headers["location"] == "/providers/alice-new"

    assert client.get("/organizations/nobody-here").status_code == 404


def test_cached_redirect_follows_later_renames(client, owners):
    _reserve(client, owners["alice"], "alice-a")
    _reserve(client, owners["alice"], "alice-b", method="put")
    first = client.get("/providers/alice-a", follow_redirects=False)
    assert first.headers["location"] == "/providers/alice-b"

    _reserve(client, owners["alice"], "alice-c", method="put")
    assert _reserve(client, owners["bob"], "alice-b").status_code == 200

    again = client.get("/providers/alice-a", follow_redirects=False)
    assert again.status_code == 301
    assert again.headers["location"] == "/providers/alice-c"
    assert client.get("/slug/resolve/alice-a").json()["redirectTo"] == "alice-c"
    bob_page = client.get("/providers/alice-b")
    assert bob_page.status_code == 200
    assert bob_page.json()["ownerId"] == "usr_bob"


def test_store_unavailable_maps_to_503(client, monkeypatch):
    async def broken(self, slug, exclude_owner=None):
        raise StoreUnavailableError("down")

    monkeypatch.setattr(SlugService, "check_availability", broken)
    resp = client.get("/slug/validate", params={"slug": "fresh-slug"})
    assert resp.status_code == 503
    assert resp.headers["retry-after"] == "5"


def test_rate_limit(owners, monkeypatch):
    monkeypatch.setenv("SLUG_CHECK_RATE_LIMIT", "2")
    core_config.get_settings.cache_clear()
    with TestClient(create_app()) as client:
        assert client.get("/slug/suggestions", params={"baseSlug": "jane"}).status_code == 200
        assert client.get("/slug/suggestions", params={"baseSlug": "jane"}).status_code == 200
        assert client.get("/slug/suggestions", params={"baseSlug": "jane"}).status_code == 429


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.json() == {"ok": True}
    assert resp.headers["x-content-type-options"] == "nosniff"
