#!/usr/bin/env python3
# scripts/expire_record_requests.py
"""
Expire record requests that stayed pending longer than the TTL.

Safe to run many times; only pending requests older than the cutoff change.
Schedule it (cron / k8s CronJob) once an hour or once a day.

Examples:
  # Use RECORD_REQUEST_TTL_DAYS from settings (.env)
  python -m scripts.expire_record_requests

  # Override the TTL
  python -m scripts.expire_record_requests --ttl-days 14

  # Show what would expire without writing
  python -m scripts.expire_record_requests --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys

from medshare.core.config import get_settings
from medshare.core.database import SessionLocal
from medshare.models.record_request import RecordRequest, RequestStatus
from medshare.services.record_request_service import expire_stale_requests
from medshare.utils.datetime_utils import days_ago

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Expire stale pending record requests")
    p.add_argument("--ttl-days", type=int, default=None, help="Default: RECORD_REQUEST_TTL_DAYS")
    p.add_argument("--dry-run", action="store_true", help="Only count the requests that would expire")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    ttl_days = args.ttl_days if args.ttl_days is not None else settings.record_request_ttl_days
    if ttl_days < 1:
        raise SystemExit("--ttl-days must be at least 1")

    db = SessionLocal()
    try:
        if args.dry_run:
            count = (
                db.query(RecordRequest)
                .filter(
                    RecordRequest.status == RequestStatus.PENDING,
                    RecordRequest.created_at < days_ago(ttl_days),
                )
                .count()
            )
            print(f"{count} pending request(s) older than {ttl_days} days would expire")
            return

        expired = expire_stale_requests(db, ttl_days=ttl_days)
        print(f"Expired {expired} record request(s)")

    except Exception:
        db.rollback()
        logger.exception("Record request expiry failed")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
