from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from slug_api.core.config import get_settings
from slug_api.core.rate_limiter import rate_limit_ip
from slug_api.core.utils import absolute_url
from slug_api.domain.slugs import OwnerRef, OwnerType
from slug_api.services.redirect_cache import RedirectCache
from slug_api.services.slug_service import DEFAULT_SUGGESTION_COUNT, SlugErrorCode, SlugService

router = APIRouter(prefix="/slug", tags=["slug"])

MAX_SUGGESTIONS = 20

_STATUS_BY_CODE = {
    SlugErrorCode.INVALID_FORMAT: 400,
    SlugErrorCode.RESERVED: 400,
    SlugErrorCode.NOT_FOUND: 404,
    SlugErrorCode.CONFLICT: 409,
}


class ValidateSlugRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str = ""
    exclude_owner_id: Optional[str] = Field(default=None, alias="excludeOwnerId")
    exclude_owner_type: Optional[OwnerType] = Field(default=None, alias="excludeOwnerType")


class SuggestionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_slug: str = Field(default="", alias="baseSlug")
    count: int = DEFAULT_SUGGESTION_COUNT


class ReserveSlugRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str = ""
    owner_id: str = Field(alias="ownerId")
    owner_type: OwnerType = Field(alias="ownerType")
    is_update: bool = Field(default=False, alias="isUpdate")


def _get_slug_service(request: Request) -> SlugService:
    svc = getattr(getattr(request.app, "state", None), "slug_service", None)
    if not svc:
        raise RuntimeError("SlugService not configured")
    return svc


def _get_redirect_cache(request: Request) -> RedirectCache:
    cache = getattr(getattr(request.app, "state", None), "redirect_cache", None)
    if cache is None:
        raise RuntimeError("RedirectCache not configured")
    return cache


def _check_rate(request: Request) -> None:
    settings = get_settings()
    rate_limit_ip(
        request,
        "slug-check",
        limit=settings.slug_check_rate_limit,
        window_seconds=settings.slug_check_rate_window_seconds,
    )


def _exclude_owner(owner_id: Optional[str], owner_type: Optional[OwnerType]) -> Optional[OwnerRef]:
    if not owner_id:
        return None
    if owner_type is None:
        raise HTTPException(400, "excludeOwnerType is required together with excludeOwnerId")
    return OwnerRef(owner_id, owner_type)


@router.get("/normalize")
def slug_normalize(request: Request, text: str = "", max_length: Optional[int] = Query(None, alias="maxLength")):
    svc = _get_slug_service(request)
    return {"slug": svc.normalize(text, max_length)}


@router.get("/validate")
async def slug_validate(
    request: Request,
    slug: str = "",
    exclude_owner_id: Optional[str] = Query(None, alias="excludeOwnerId"),
    exclude_owner_type: Optional[OwnerType] = Query(None, alias="excludeOwnerType"),
):
    _check_rate(request)
    if not slug:
        raise HTTPException(400, "Slug parameter is required")
    svc = _get_slug_service(request)
    result = await svc.validate_and_check(slug, _exclude_owner(exclude_owner_id, exclude_owner_type))
    return result.to_dict()


@router.post("/validate")
async def slug_validate_post(request: Request, body: ValidateSlugRequest):
    _check_rate(request)
    if not body.slug:
        raise HTTPException(400, "Slug is required")
    svc = _get_slug_service(request)
    exclude = _exclude_owner(body.exclude_owner_id, body.exclude_owner_type)
    result = await svc.validate_and_check(body.slug, exclude)
    return result.to_dict()


@router.get("/suggestions")
async def slug_suggestions(
    request: Request,
    base_slug: str = Query("", alias="baseSlug"),
    count: int = DEFAULT_SUGGESTION_COUNT,
):
    _check_rate(request)
    if not base_slug:
        raise HTTPException(400, "baseSlug parameter is required")
    svc = _get_slug_service(request)
    return {"suggestions": await svc.suggest(base_slug, min(count, MAX_SUGGESTIONS))}


@router.post("/suggestions")
async def slug_suggestions_post(request: Request, body: SuggestionsRequest):
    _check_rate(request)
    if not body.base_slug:
        raise HTTPException(400, "Base slug is required")
    svc = _get_slug_service(request)
    return {"suggestions": await svc.suggest(body.base_slug, min(body.count, MAX_SUGGESTIONS))}


async def _reserve(request: Request, body: ReserveSlugRequest, *, is_update: bool) -> JSONResponse:
    if not body.slug:
        raise HTTPException(400, "Slug is required")
    svc = _get_slug_service(request)
    owner = OwnerRef(body.owner_id, body.owner_type)
    if is_update:
        result = await svc.update(owner, body.slug)
    else:
        result = await svc.reserve(owner, body.slug)
    if not result.success:
        return JSONResponse(result.to_dict(), status_code=_STATUS_BY_CODE[result.code])
    # cached redirects for older slugs in the chain may point at a slug that was
    # just freed or claimed, so every decision is dropped after a write
    _get_redirect_cache(request).invalidate()
    return JSONResponse(result.to_dict())


@router.post("/reserve")
async def slug_reserve(request: Request, body: ReserveSlugRequest):
    return await _reserve(request, body, is_update=body.is_update)


@router.put("/reserve")
async def slug_reserve_update(request: Request, body: ReserveSlugRequest):
    return await _reserve(request, body, is_update=True)


@router.get("/history")
async def slug_history(
    request: Request,
    owner_id: str = Query(..., alias="ownerId"),
    owner_type: Optional[OwnerType] = Query(None, alias="ownerType"),
):
    svc = _get_slug_service(request)
    history = await svc.get_history(owner_id, owner_type)
    return {"history": [entry.to_dict() for entry in history]}


@router.get("/resolve/{slug}")
async def slug_resolve(slug: str, request: Request):
    svc = _get_slug_service(request)
    resolution = await svc.resolve_redirect(slug)
    payload = resolution.to_dict()
    if resolution.path:
        payload["redirectUrl"] = absolute_url(resolution.path)
    return payload
