"""
Sweep abandoned checkouts.

An ad is stored as pending_payment before its checkout session is opened.
When the poster never pays (or the session could not be created) the record
stays pending_payment forever. This script lists such records older than a
cutoff and, with --delete, removes them. Each delete is conditioned on the
record still being pending_payment, so a payment confirmed mid-sweep wins.

Stripe retries an undelivered webhook for up to three days, so the cutoff
must be older than that or a paid ad could be deleted before its
confirmation arrives.

Usage:
  python scripts/sweep_abandoned_checkouts.py
  python scripts/sweep_abandoned_checkouts.py --hours 120 --delete
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.ad import AdRecord
from domain.errors import RecordStoreError
from domain.time import utc_now
from repositories.base import AdStore

logger = logging.getLogger(__name__)

# Longest Stripe keeps retrying a webhook delivery.
WEBHOOK_RETRY_WINDOW_HOURS = 72


@dataclass(frozen=True, slots=True)
class SweepResult:
    cutoff: datetime
    found: List[AdRecord]
    deleted: int


def sweep_abandoned_checkouts(
    store: AdStore,
    *,
    hours: int,
    delete: bool = False,
    now: Optional[datetime] = None,
) -> SweepResult:
    """
    Find (and optionally delete) pending_payment ads older than `hours`.

    Returns:
        SweepResult with the records found and how many were deleted
    """
    if hours <= WEBHOOK_RETRY_WINDOW_HOURS:
        raise ValueError(
            f"hours must exceed the {WEBHOOK_RETRY_WINDOW_HOURS} hour webhook retry window, got {hours}"
        )

    cutoff = (now or utc_now()) - timedelta(hours=hours)
    found = store.list_abandoned(cutoff)

    deleted = 0
    if delete:
        for record in found:
            if store.delete_abandoned(record.ad_id, cutoff):
                deleted += 1
            else:
                logger.info("Ad %s left pending_payment during the sweep; kept", record.ad_id)

    return SweepResult(cutoff=cutoff, found=found, deleted=deleted)


def print_summary(result: SweepResult, delete: bool) -> None:
    print("=" * 60)
    print("ABANDONED CHECKOUTS")
    print("=" * 60)
    print(f"Cutoff (created before): {result.cutoff.isoformat()}")
    print(f"Found:                   {len(result.found)}")
    for record in result.found:
        print(f"  {record.ad_id}  {record.created_at.isoformat()}  {record.email}  {record.total} cents")
    if delete:
        print(f"Deleted:                 {result.deleted}")
    else:
        print("Dry run: pass --delete to remove these records")
    print("=" * 60)


def main() -> int:
    from config.settings import load_settings
    from repositories.ad_repository import SupabaseAdRepository
    from repositories.client import create_supabase_client

    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    parser = argparse.ArgumentParser(
        description="List or delete ads whose checkout was never paid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--hours",
        type=int,
        default=settings.abandoned_checkout_hours,
        help=f"Age in hours after which an unpaid ad is abandoned (default: {settings.abandoned_checkout_hours})"
    )
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete the abandoned records instead of only listing them"
    )
    args = parser.parse_args()

    store = SupabaseAdRepository(create_supabase_client(settings))

    try:
        result = sweep_abandoned_checkouts(store, hours=args.hours, delete=args.delete)
    except (RecordStoreError, ValueError) as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        return 1

    print_summary(result, args.delete)
    return 0


if __name__ == "__main__":
    sys.exit(main())
