#!/usr/bin/env python3
"""
Register an owner record (freelancer, vendor or organization) and optionally reserve its slug.

Usage:
  python scripts/add_owner.py --id usr_123 --type vendor [--name "Acme Tools"] [--slug acme-tools]
  python scripts/add_owner.py --id usr_123 --type vendor --slug-from-name --name "Acme Tools"
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Make the slug_api package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slug_api.db.create_tables import create_all
from slug_api.domain.slugs import OwnerRef, OwnerType
from slug_api.services.slug_service import SlugService


async def run(args: argparse.Namespace) -> int:
    await create_all()
    svc = SlugService()
    owner = OwnerRef((args.id or "").strip(), OwnerType(args.type))
    if not owner.owner_id:
        raise SystemExit("Invalid owner id")
    await svc.repository.upsert_owner(owner, args.name or "", is_public=not args.private)
    print(f"OK: {owner.owner_type.value} {owner.owner_id} registered")

    slug = (args.slug or "").strip()
    if not slug and args.slug_from_name:
        slug = svc.normalize(args.name)
    if not slug:
        return 0
    result = await svc.reserve(owner, slug)
    if not result.success:
        print(f"Slug '{slug}' rejected ({result.code.value}): {result.error}")
        suggestions = await svc.suggest(slug)
        if suggestions:
            print("  Try: " + ", ".join(suggestions))
        return 1
    print(f"  Slug: {result.slug}")
    return 0


def main() -> None:
    ap = argparse.ArgumentParser(description="Register an owner and reserve a slug")
    ap.add_argument("--id", required=True, help="Owner id (e.g. usr_123)")
    ap.add_argument("--type", required=True, choices=[t.value for t in OwnerType], help="Owner type")
    ap.add_argument("--name", help="Display name")
    ap.add_argument("--slug", help="Slug to reserve")
    ap.add_argument("--slug-from-name", action="store_true", help="Derive the slug from --name")
    ap.add_argument("--private", action="store_true", help="Hide the profile from public lookups")
    args = ap.parse_args()
    raise SystemExit(asyncio.run(run(args)))


if __name__ == "__main__":
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
