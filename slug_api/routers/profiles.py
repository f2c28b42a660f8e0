"""Public profile routes: resolve a slug to its owner, 301 stale or mistyped URLs."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse

from slug_api.domain.slugs import OwnerType, profile_path
from slug_api.services.redirect_cache import RedirectCache
from slug_api.services.slug_service import SlugService

router = APIRouter(prefix="", tags=["profiles"])


def _services(request: Request) -> tuple[SlugService, RedirectCache]:
    state = getattr(request.app, "state", None)
    svc = getattr(state, "slug_service", None)
    cache = getattr(state, "redirect_cache", None)
    if not svc or cache is None:
        raise RuntimeError("Slug services not configured")
    return svc, cache


async def _decide(svc: SlugService, owner_type: OwnerType, slug: str) -> tuple[str, object]:
    record = await svc.find_owner_by_slug(slug)
    if record:
        if record.owner_type == owner_type:
            return "owner", record.to_dict()
        # slug exists but under another owner type
        return "redirect", profile_path(record.owner_type, slug)
    resolution = await svc.resolve_redirect(slug)
    if resolution.path:
        return "redirect", resolution.path
    return "missing", None


async def _profile_route(request: Request, owner_type: OwnerType, slug: str):
    svc, cache = _services(request)
    slug_value = (slug or "").strip().lower()
    key = cache.key(owner_type, slug_value)
    decision = cache.get(key)
    if decision is None:
        decision = await _decide(svc, owner_type, slug_value)
        if decision[0] != "missing":
            cache.set(key, decision)
    kind, payload = decision
    if kind == "redirect":
        return RedirectResponse(str(payload), status_code=301)
    if kind == "owner":
        return payload
    raise HTTPException(404, "Profile not found")


@router.get("/providers/{slug}")
async def provider_profile(slug: str, request: Request):
    return await _profile_route(request, OwnerType.FREELANCER, slug)


@router.get("/vendors/{slug}")
async def vendor_profile(slug: str, request: Request):
    return await _profile_route(request, OwnerType.VENDOR, slug)


@router.get("/organizations/{slug}")
async def organization_profile(slug: str, request: Request):
    return await _profile_route(request, OwnerType.ORGANIZATION, slug)
