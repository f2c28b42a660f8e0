"""High-level data access helpers backed by SQLAlchemy (asyncio)."""
from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slug_api.db.models import PROFILE_MODELS, SlugAssignment
from slug_api.db.session import get_session
from slug_api.domain.errors import OwnerNotFoundError, SlugUnavailableError, StoreUnavailableError
from slug_api.domain.slugs import OwnerRef, OwnerType

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _store_call(func):
    """Translate driver failures (other than constraint violations) into StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except IntegrityError:
            raise
        except DBAPIError as exc:
            logger.exception("Slug store call %s failed", func.__name__)
            raise StoreUnavailableError(f"Slug store unavailable: {exc.__class__.__name__}") from exc

    return wrapper


class SQLRepository:
    """CRUD helpers wrapping the async SQLAlchemy session."""

    # -------------------------- owners --------------------------
    @_store_call
    async def get_owner(self, owner: OwnerRef):
        model = PROFILE_MODELS[owner.owner_type]
        async with get_session() as session:
            return await session.get(model, owner.owner_id)

    @_store_call
    async def upsert_owner(
        self,
        owner: OwnerRef,
        display_name: str = "",
        *,
        is_public: bool = True,
        data: dict | None = None,
        public_slug: str | None = None,
    ):
        """Create or refresh an owner record. Normally done by the profile subsystem."""
        model = PROFILE_MODELS[owner.owner_type]
        now = _now()
        async with get_session() as session:
            profile = await session.get(model, owner.owner_id)
            if not profile:
                profile = model(
                    id=owner.owner_id,
                    display_name=display_name,
                    public_slug=public_slug,
                    is_public=is_public,
                    data=data or {},
                    created_at=now,
                    updated_at=now,
                )
                session.add(profile)
            else:
                profile.display_name = display_name or profile.display_name
                profile.is_public = is_public
                if data is not None:
                    profile.data = data
                if public_slug is not None:
                    profile.public_slug = public_slug
                profile.updated_at = now
            await session.commit()
            return profile

    # -------------------------- assignments --------------------------
    @_store_call
    async def get_active_assignment(self, slug: str) -> Optional[SlugAssignment]:
        async with get_session() as session:
            return await self._active_for_slug(session, slug)

    @_store_call
    async def get_latest_inactive_assignment(self, slug: str) -> Optional[SlugAssignment]:
        async with get_session() as session:
            stmt = (
                select(SlugAssignment)
                .where(SlugAssignment.slug == slug, SlugAssignment.is_active.is_(False))
                .order_by(SlugAssignment.updated_at.desc(), SlugAssignment.id.desc())
                .limit(1)
            )
            return (await session.execute(stmt)).scalars().first()

    @_store_call
    async def get_active_assignment_for_owner(self, owner: OwnerRef) -> Optional[SlugAssignment]:
        async with get_session() as session:
            return await self._active_for_owner(session, owner)

    @_store_call
    async def list_assignments_for_owner(
        self, owner_id: str, owner_type: OwnerType | None = None
    ) -> list[SlugAssignment]:
        async with get_session() as session:
            stmt = select(SlugAssignment).where(SlugAssignment.owner_id == owner_id)
            if owner_type is not None:
                stmt = stmt.where(SlugAssignment.owner_type == OwnerType(owner_type).value)
            stmt = stmt.order_by(SlugAssignment.id)
            return list((await session.execute(stmt)).scalars().all())

    @_store_call
    async def find_active_slugs(self, slugs: list[str]) -> set[str]:
        """Return the subset of ``slugs`` currently held by any owner."""
        if not slugs:
            return set()
        async with get_session() as session:
            stmt = select(SlugAssignment.slug).where(
                SlugAssignment.slug.in_(slugs), SlugAssignment.is_active.is_(True)
            )
            return set((await session.execute(stmt)).scalars().all())

    @_store_call
    async def claim_slug(self, owner: OwnerRef, slug: str) -> tuple[SlugAssignment, bool]:
        """
        Bind a first slug to an owner in one transaction.

        The INSERT is the claim: the partial unique index on active slugs makes
        the losing writer fail with IntegrityError. Returns (assignment, created).
        """
        model = PROFILE_MODELS[owner.owner_type]
        now = _now()
        async with get_session() as session:
            profile = await session.get(model, owner.owner_id)
            if profile is None:
                raise OwnerNotFoundError(f"{owner.owner_type.value} {owner.owner_id} not found")
            current = await self._active_for_owner(session, owner)
            if current is not None:
                if current.slug == slug:
                    return current, False
                raise SlugUnavailableError(
                    f"Owner already holds slug '{current.slug}'; rename it instead"
                )
            entity = SlugAssignment(
                slug=slug,
                owner_id=owner.owner_id,
                owner_type=owner.owner_type.value,
                is_active=True,
                redirect_from=[],
                created_at=now,
                updated_at=now,
            )
            session.add(entity)
            try:
                await session.flush()
                profile.public_slug = slug
                profile.updated_at = now
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise await self._conflict(session, owner, slug) from exc
            return entity, True

    @_store_call
    async def rename_slug(self, owner: OwnerRef, new_slug: str) -> tuple[SlugAssignment, bool]:
        """
        Supersede the owner's active slug with ``new_slug`` in one transaction.

        The old row is deactivated with a compare-and-swap UPDATE so two
        concurrent renames by the same owner cannot both win.
        """
        model = PROFILE_MODELS[owner.owner_type]
        now = _now()
        async with get_session() as session:
            profile = await session.get(model, owner.owner_id)
            if profile is None:
                raise OwnerNotFoundError(f"{owner.owner_type.value} {owner.owner_id} not found")
            current = await self._active_for_owner(session, owner)
            if current is None:
                raise OwnerNotFoundError(f"{owner.owner_type.value} {owner.owner_id} has no active slug")
            if current.slug == new_slug:
                return current, False
            previous_slug = current.slug
            stmt = (
                update(SlugAssignment)
                .where(SlugAssignment.id == current.id, SlugAssignment.is_active.is_(True))
                .values(is_active=False, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            try:
                result = await session.execute(stmt)
                if result.rowcount != 1:
                    await session.rollback()
                    raise SlugUnavailableError("Slug changed concurrently for this owner; try again")
                entity = SlugAssignment(
                    slug=new_slug,
                    owner_id=owner.owner_id,
                    owner_type=owner.owner_type.value,
                    is_active=True,
                    redirect_from=[previous_slug],
                    created_at=now,
                    updated_at=now,
                )
                session.add(entity)
                await session.flush()
                profile.public_slug = new_slug
                profile.updated_at = now
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise await self._conflict(session, owner, new_slug) from exc
            return entity, True

    @_store_call
    async def sync_profile_mirrors(self, is_valid: Callable[[str], bool]) -> dict[str, int]:
        """
        Bring every partition's public_slug in line with the assignment table.

        Profiles with a legacy public_slug but no assignment get one backfilled
        when the slug is valid and free; mirrors that disagree with the active
        assignment are rewritten.
        """
        stats = {"backfilled": 0, "repaired": 0, "skipped": 0}
        now = _now()
        async with get_session() as session:
            for owner_type, model in PROFILE_MODELS.items():
                profiles = (await session.execute(select(model).order_by(model.id))).scalars().all()
                for profile in profiles:
                    owner = OwnerRef(profile.id, owner_type)
                    active = await self._active_for_owner(session, owner)
                    if active is None:
                        legacy = (profile.public_slug or "").strip()
                        if not legacy:
                            continue
                        if not is_valid(legacy) or await self._active_for_slug(session, legacy) is not None:
                            logger.warning(
                                "Skipping legacy slug %r for %s %s", legacy, owner_type.value, profile.id
                            )
                            profile.public_slug = None
                            profile.updated_at = now
                            stats["skipped"] += 1
                            continue
                        session.add(
                            SlugAssignment(
                                slug=legacy,
                                owner_id=profile.id,
                                owner_type=owner_type.value,
                                is_active=True,
                                redirect_from=[],
                                created_at=now,
                                updated_at=now,
                            )
                        )
                        await session.flush()
                        stats["backfilled"] += 1
                    elif profile.public_slug != active.slug:
                        profile.public_slug = active.slug
                        profile.updated_at = now
                        stats["repaired"] += 1
            await session.commit()
        return stats

    # -------------------------- internals --------------------------
    async def _active_for_slug(self, session: AsyncSession, slug: str) -> Optional[SlugAssignment]:
        stmt = (
            select(SlugAssignment)
            .where(SlugAssignment.slug == slug, SlugAssignment.is_active.is_(True))
            .limit(1)
        )
        return (await session.execute(stmt)).scalars().first()

    async def _active_for_owner(self, session: AsyncSession, owner: OwnerRef) -> Optional[SlugAssignment]:
        stmt = (
            select(SlugAssignment)
            .where(
                SlugAssignment.owner_id == owner.owner_id,
                SlugAssignment.owner_type == owner.owner_type.value,
                SlugAssignment.is_active.is_(True),
            )
            .limit(1)
        )
        return (await session.execute(stmt)).scalars().first()

    async def _conflict(self, session: AsyncSession, owner: OwnerRef, slug: str) -> SlugUnavailableError:
        holder = await self._active_for_slug(session, slug)
        if holder is not None and (holder.owner_id, holder.owner_type) != (owner.owner_id, owner.owner_type.value):
            return SlugUnavailableError(f"Slug '{slug}' is no longer available")
        return SlugUnavailableError("Slug changed concurrently for this owner; try again")


def owner_to_dict(owner_type: OwnerType, profile: Any) -> dict:
    return {
        "ownerId": profile.id,
        "ownerType": owner_type.value,
        "displayName": profile.display_name or "",
        "slug": profile.public_slug,
        "isPublic": bool(profile.is_public),
        "data": profile.data or {},
    }
