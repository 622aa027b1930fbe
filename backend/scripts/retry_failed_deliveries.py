#!/usr/bin/env python3
"""
Retry failed restock notifications once (oldest first), or list them with --list.
Run: cd backend && python scripts/retry_failed_deliveries.py [--list] [--log-id N] [--limit N]
"""
import argparse
import sys
from pathlib import Path

# backend/scripts/ -> backend/
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from stocknotify.db.session import SessionLocal
from stocknotify.services.retry_service import list_retryable, retry, retry_all


def main() -> int:
    parser = argparse.ArgumentParser(description="Retry failed restock notification deliveries.")
    parser.add_argument("--list", action="store_true", help="only list retryable entries")
    parser.add_argument("--log-id", type=int, default=None, help="retry a single delivery log entry")
    parser.add_argument("--limit", type=int, default=None, help="max entries to list/retry")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        if args.list:
            rows = list_retryable(db, limit=args.limit)
            for r in rows:
                print(f"  log {r.id}: user={r.user_id} product={r.product_id} retries={r.retry_count}/{r.max_retries} error={r.error_message}")
            print(f"{len(rows)} retryable deliveries.")
            return 0
        if args.log_id is not None:
            ok = retry(db, args.log_id)
            print(f"Log {args.log_id}: {'recovered' if ok else 'still failing or not retryable'}")
            return 0 if ok else 1
        counts = retry_all(db, limit=args.limit)
        print(f"Done. attempted={counts['attempted']}, succeeded={counts['succeeded']}, failed={counts['failed']}")
        return 0
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
