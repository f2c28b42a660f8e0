"""Slug-related use cases (validation, availability, reservation, redirects)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from slug_api.db.models import PROFILE_MODELS, SlugAssignment
from slug_api.domain.errors import (
    InvalidSlugError,
    OwnerNotFoundError,
    SlugError,
    SlugUnavailableError,
)
from slug_api.domain.slugs import (
    OwnerRef,
    OwnerType,
    SlugPolicy,
    ValidationResult,
    get_policy,
    normalize,
    profile_path,
    suggestion_candidates,
    validate,
)
from slug_api.repositories.sql_repository import SQLRepository, owner_to_dict

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_COUNT = 5


class SlugErrorCode(str, Enum):
    INVALID_FORMAT = "invalid_format"
    RESERVED = "reserved"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass
class ReservationResult:
    success: bool
    error: Optional[str] = None
    code: Optional[SlugErrorCode] = None
    slug: Optional[str] = None
    previous_slug: Optional[str] = None

    def to_dict(self) -> dict:
        payload: dict = {"success": self.success}
        if self.slug:
            payload["slug"] = self.slug
        if self.previous_slug:
            payload["previousSlug"] = self.previous_slug
        if self.error:
            payload["error"] = self.error
        if self.code:
            payload["code"] = self.code.value
        return payload


@dataclass
class SlugCheckResult:
    is_valid: bool
    is_available: bool
    errors: Optional[list[str]] = None
    suggestions: Optional[list[str]] = None

    def to_dict(self) -> dict:
        payload: dict = {"isValid": self.is_valid, "isAvailable": self.is_available}
        if self.errors:
            payload["errors"] = self.errors
        if self.suggestions is not None:
            payload["suggestions"] = self.suggestions
        return payload


@dataclass
class RedirectResolution:
    found: bool
    redirect_to: Optional[str] = None
    owner_type: Optional[OwnerType] = None

    @property
    def path(self) -> Optional[str]:
        if not self.redirect_to or self.owner_type is None:
            return None
        return profile_path(self.owner_type, self.redirect_to)

    def to_dict(self) -> dict:
        payload: dict = {"found": self.found}
        if self.redirect_to:
            payload["redirectTo"] = self.redirect_to
            payload["path"] = self.path
        return payload


@dataclass
class OwnerRecord:
    owner_id: str
    owner_type: OwnerType
    collection_name: str
    profile: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "ownerId": self.owner_id,
            "ownerType": self.owner_type.value,
            "collectionName": self.collection_name,
            "profile": self.profile,
        }


def _as_owner(owner: OwnerRef | tuple[str, str]) -> OwnerRef:
    if isinstance(owner, OwnerRef):
        return owner
    owner_id, owner_type = owner
    return OwnerRef(owner_id, OwnerType(owner_type))


def _clean(value: str | None) -> str:
    return (value or "").strip().lower()


class SlugService:
    """
    Slug allocation engine.

    Validation/normalization are pure; everything touching the store is async.
    Expected failures come back as ReservationResult, StoreUnavailableError
    propagates to the caller.
    """

    def __init__(self, repository: SQLRepository | None = None, policy: SlugPolicy | None = None) -> None:
        self.repository = repository or SQLRepository()
        self.policy = policy or get_policy()

    # -------------------------- pure --------------------------
    def normalize(self, text: str | None, max_length: int | None = None) -> str:
        return normalize(text, max_length, self.policy)

    def validate(self, slug: str | None) -> ValidationResult:
        return validate(slug, self.policy)

    # -------------------------- reads --------------------------
    async def check_availability(self, slug: str | None, exclude_owner: OwnerRef | None = None) -> bool:
        candidate = (slug or "").strip()
        if not candidate:
            return False
        holder = await self.repository.get_active_assignment(candidate)
        if holder is None:
            return True
        if exclude_owner is None:
            return False
        exclude = _as_owner(exclude_owner)
        return holder.owner_id == exclude.owner_id and holder.owner_type == exclude.owner_type.value

    async def suggest(self, base_slug: str | None, count: int = DEFAULT_SUGGESTION_COUNT) -> list[str]:
        """Up to ``count`` valid, currently free alternatives, in a stable order."""
        if count <= 0:
            return []
        base = self.normalize(base_slug)
        candidates: list[str] = []
        for candidate in suggestion_candidates(base):
            if candidate not in candidates and self.validate(candidate).is_valid:
                candidates.append(candidate)
        taken = await self.repository.find_active_slugs(candidates)
        return [candidate for candidate in candidates if candidate not in taken][:count]

    async def validate_and_check(
        self, slug: str | None, exclude_owner: OwnerRef | None = None
    ) -> SlugCheckResult:
        candidate = (slug or "").strip()
        validation = self.validate(candidate)
        if not validation.is_valid:
            return SlugCheckResult(is_valid=False, is_available=False, errors=validation.errors)
        available = await self.check_availability(candidate, exclude_owner)
        suggestions = None if available else await self.suggest(candidate)
        return SlugCheckResult(is_valid=True, is_available=available, suggestions=suggestions)

    async def find_owner_by_slug(self, slug: str | None) -> Optional[OwnerRecord]:
        """Active-only lookup used by the public profile routes."""
        candidate = _clean(slug)
        if not candidate:
            return None
        assignment = await self.repository.get_active_assignment(candidate)
        if assignment is None:
            return None
        owner = OwnerRef(assignment.owner_id, assignment.owner_type)
        profile = await self.repository.get_owner(owner)
        if profile is None or not profile.is_public:
            return None
        return OwnerRecord(
            owner_id=owner.owner_id,
            owner_type=owner.owner_type,
            collection_name=PROFILE_MODELS[owner.owner_type].__tablename__,
            profile=owner_to_dict(owner.owner_type, profile),
        )

    async def resolve_redirect(self, slug: str | None) -> RedirectResolution:
        """
        Resolve a current or historical slug.

        Jumps straight to the owner's current active slug instead of walking
        the redirect chain, so resolution never needs more than one hop.
        """
        candidate = _clean(slug)
        if not candidate:
            return RedirectResolution(found=False)
        if await self.repository.get_active_assignment(candidate) is not None:
            return RedirectResolution(found=True)
        stale = await self.repository.get_latest_inactive_assignment(candidate)
        if stale is None:
            return RedirectResolution(found=False)
        owner = OwnerRef(stale.owner_id, stale.owner_type)
        current = await self.repository.get_active_assignment_for_owner(owner)
        if current is None:
            return RedirectResolution(found=False)
        return RedirectResolution(found=True, redirect_to=current.slug, owner_type=owner.owner_type)

    async def get_history(self, owner_id: str, owner_type: OwnerType | str | None = None) -> list[SlugAssignment]:
        return await self.repository.list_assignments_for_owner(owner_id, owner_type)

    # -------------------------- writes --------------------------
    async def reserve(self, owner: OwnerRef, slug: str | None) -> ReservationResult:
        """Bind a first slug to ``owner``. Re-saving the owner's own slug is a no-op."""
        owner = _as_owner(owner)
        try:
            candidate = self._checked(slug)
            assignment, created = await self.repository.claim_slug(owner, candidate)
        except SlugError as exc:
            return self._failure(exc, owner, slug)
        if created:
            logger.info("Reserved slug %s for %s %s", assignment.slug, owner.owner_type.value, owner.owner_id)
        return ReservationResult(success=True, slug=assignment.slug)

    async def update(self, owner: OwnerRef, new_slug: str | None) -> ReservationResult:
        """Rename: supersede the owner's active slug, keeping the old one as a redirect."""
        owner = _as_owner(owner)
        try:
            candidate = self._checked(new_slug)
            assignment, created = await self.repository.rename_slug(owner, candidate)
        except SlugError as exc:
            return self._failure(exc, owner, new_slug)
        previous = (assignment.redirect_from or [None])[0] if created else None
        if created:
            logger.info(
                "Renamed %s %s slug %s -> %s", owner.owner_type.value, owner.owner_id, previous, assignment.slug
            )
        return ReservationResult(success=True, slug=assignment.slug, previous_slug=previous)

    async def sync_profile_mirrors(self) -> dict[str, int]:
        stats = await self.repository.sync_profile_mirrors(lambda slug: self.validate(slug).is_valid)
        logger.info("Profile slug mirrors synced: %s", stats)
        return stats

    # -------------------------- internals --------------------------
    def _checked(self, slug: str | None) -> str:
        candidate = (slug or "").strip()
        validation = self.validate(candidate)
        if not validation.is_valid:
            raise InvalidSlugError(
                "; ".join(validation.errors),
                reserved=validation.reserved,
                errors=validation.errors,
            )
        return candidate

    def _failure(self, exc: SlugError, owner: OwnerRef, slug: str | None) -> ReservationResult:
        if isinstance(exc, InvalidSlugError):
            code = SlugErrorCode.RESERVED if exc.reserved else SlugErrorCode.INVALID_FORMAT
        elif isinstance(exc, SlugUnavailableError):
            code = SlugErrorCode.CONFLICT
            logger.warning("Slug conflict for %s %s on %r: %s", owner.owner_type.value, owner.owner_id, slug, exc)
        elif isinstance(exc, OwnerNotFoundError):
            code = SlugErrorCode.NOT_FOUND
        else:
            raise exc
        return ReservationResult(success=False, error=str(exc), code=code)
