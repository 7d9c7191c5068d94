#!/usr/bin/env python3
"""
Remove events left behind by organizer accounts that no longer exist.

Bookings, reviews and event-scoped coupons of those events go with them.
Pass --dry-run to only list what would be removed.
"""

import argparse
import asyncio
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from citypulse.database import standalone_session
from citypulse.models import Event, Principal, PrincipalKind
from citypulse.services.cascade_service import CascadeService
from citypulse.utils.logging_config import setup_logging


async def find_orphans(session) -> list:
    organizer_ids = select(Principal.id).where(Principal.kind == PrincipalKind.ORGANIZER)
    result = await session.execute(
        select(Event.id, Event.title).where(Event.organizer_id.not_in(organizer_ids))
    )
    return list(result.all())


async def cleanup_orphan_events(dry_run: bool = False) -> int:
    async with standalone_session() as session:
        if dry_run:
            orphans = await find_orphans(session)
            print(f"{len(orphans)} orphan event(s) would be removed:")
            for event_id, title in orphans:
                print(f"   {event_id}  {title}")
            return len(orphans)

        removed = await CascadeService(session).cleanup_orphan_events()

    if not removed:
        print("No orphan events found.")
    else:
        print(f"Removed {len(removed)} orphan event(s):")
        for event_id in removed:
            print(f"   {event_id}")
    return len(removed)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="list orphan events without deleting them")
    args = parser.parse_args()

    setup_logging(log_level="INFO")
    asyncio.run(cleanup_orphan_events(dry_run=args.dry_run))


if __name__ == "__main__":
    main()
