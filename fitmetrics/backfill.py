"""
FitMetrics — Forward Backfill
Recompute daily energy snapshots from a date onward, e.g. after a profile
change or a bulk import.

    python -m fitmetrics.backfill --from 2025-01-01 --user <uuid> [--user <uuid> ...]
"""
import argparse
import logging
import sys
from datetime import datetime

from fitmetrics.config import FITMETRICS_LOG_LEVEL
from fitmetrics.daily_energy import (
    logged_dates_from,
    recompute_from_date_forward,
    recompute_current_maintenance,
)
from fitmetrics.utils import iso_date

log = logging.getLogger(__name__)


def run_backfill(store, user_id: str, from_date: str, dry_run: bool = False,
                 refresh_maintenance: bool = True) -> dict:
    """Recompute one user's snapshots from `from_date` forward."""
    print(f"\n🔄 Backfill — user {user_id} from {from_date}")

    if dry_run:
        dates = logged_dates_from(store, user_id, from_date)
        print(f"   🏃 DRY RUN — {len(dates)} dates would be recomputed")
        return {"user_id": user_id, "dates": dates, "maintenance": None}

    dates = recompute_from_date_forward(store, user_id, from_date)
    print(f"   ✅ Recomputed {len(dates)} dates")
    if dates:
        print(f"   📅 {dates[0]} → {dates[-1]}")

    maintenance = None
    if refresh_maintenance:
        maintenance = recompute_current_maintenance(store, user_id)
        shown = f"{maintenance:.0f} kcal" if maintenance is not None else "unavailable (incomplete profile)"
        print(f"   🔥 Current maintenance: {shown}")

    return {"user_id": user_id, "dates": dates, "maintenance": maintenance}


def _iso_arg(value: str) -> str:
    parsed = iso_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}")
    return parsed


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute daily energy snapshots forward from a date.")
    parser.add_argument("--from", dest="from_date", required=True, type=_iso_arg,
                        help="first date to recompute (YYYY-MM-DD, inclusive)")
    parser.add_argument("--user", dest="users", action="append", required=True,
                        help="user id; repeat for several users")
    parser.add_argument("--dry-run", action="store_true",
                        help="list the dates that would be recomputed, write nothing")
    parser.add_argument("--skip-maintenance", action="store_true",
                        help="do not refresh the profile's current maintenance")
    return parser.parse_args(argv)


def main(argv=None, store=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, FITMETRICS_LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if store is None:
        from fitmetrics.rest_store import RestStore
        store = RestStore()

    print("🔄 FitMetrics backfill — Starting...")
    print(f"   {datetime.now().isoformat()}")

    errors = {}
    for user_id in args.users:
        # Each user is isolated: one failure doesn't stop the rest
        try:
            run_backfill(
                store, user_id, args.from_date,
                dry_run=args.dry_run,
                refresh_maintenance=not args.skip_maintenance,
            )
        except Exception as e:
            errors[user_id] = str(e)
            log.exception("Backfill failed for user=%s", user_id)
            print(f"\n❌ Backfill FAILED for {user_id}: {e}")

    print(f"\nDone. {len(args.users) - len(errors)}/{len(args.users)} users backfilled.")
    if errors:
        print("⚠️  Errors occurred:")
        for user_id, message in errors.items():
            print(f"  {user_id}: {message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
