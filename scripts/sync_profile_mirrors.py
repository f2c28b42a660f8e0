"""One-off repair script: rebuild publicProfile slug mirrors from the assignment table."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Make the slug_api package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slug_api.core.config import configure_logging
from slug_api.services.slug_service import SlugService


async def sync() -> dict[str, int]:
    return await SlugService().sync_profile_mirrors()


if __name__ == "__main__":
    configure_logging()
    stats = asyncio.run(sync())
    print(
        "Profile mirrors synced: "
        f"{stats['backfilled']} backfilled, {stats['repaired']} repaired, {stats['skipped']} skipped."
    )
