"""Shared pytest fixtures: a temporary SQLite database and seeded owners."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

# Make the slug_api package importable during local test runs
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slug_api.core import config as core_config  # noqa: E402
from slug_api.core.rate_limiter import reset_rate_limits  # noqa: E402
from slug_api.db import create_tables  # noqa: E402
from slug_api.db import session as db_session  # noqa: E402
from slug_api.domain import slugs as domain_slugs  # noqa: E402
from slug_api.domain.slugs import OwnerRef, OwnerType  # noqa: E402
from slug_api.repositories.sql_repository import SQLRepository  # noqa: E402


def _run(coro):
    """Run a coroutine on a private loop without touching the current event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _clear_caches() -> None:
    core_config.get_settings.cache_clear()
    domain_slugs.get_policy.cache_clear()
    db_session.get_engine.cache_clear()
    db_session._get_sessionmaker.cache_clear()  # type: ignore[attr-defined]
    reset_rate_limits()


@pytest.fixture()
def temp_db(tmp_path, monkeypatch):
    """Temporary SQLite database; caches are reset so settings/engine pick up the new URL."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_file}")
    monkeypatch.setenv("SLUG_CHECK_RATE_LIMIT", "1000")
    monkeypatch.delenv("SLUG_POLICY_PATH", raising=False)
    _clear_caches()

    _run(create_tables.create_all())

    yield db_file

    try:
        _run(create_tables.drop_all())
    except Exception:
        pass
    try:
        _run(db_session.get_engine().dispose())
    except Exception:
        pass
    _clear_caches()


ALICE = OwnerRef("usr_alice", OwnerType.FREELANCER)
BOB = OwnerRef("usr_bob", OwnerType.FREELANCER)
ACME = OwnerRef("org_acme", OwnerType.VENDOR)
GUILD = OwnerRef("org_guild", OwnerType.ORGANIZATION)


@pytest.fixture()
def owners(temp_db):
    """Owner records in every partition, as the profile subsystem would create them."""
    repo = SQLRepository()

    async def _seed():
        await repo.upsert_owner(ALICE, "Alice Example")
        await repo.upsert_owner(BOB, "Bob Example")
        await repo.upsert_owner(ACME, "Acme Tools")
        await repo.upsert_owner(GUILD, "Makers Guild")

    _run(_seed())
    return {"alice": ALICE, "bob": BOB, "acme": ACME, "guild": GUILD}
