#!/usr/bin/env python3
"""
Time out bookings the provider never answered.

Usage:
  python3 scripts/expire_pending.py            # one pass
  python3 scripts/expire_pending.py --every 60 # loop, one pass per minute

Meant for cron or a sidecar. Needs STORE_PROVIDER=json (and the same DATA_DIR
as the API) to see the API's bookings; the in-memory store is per process.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import settings  # noqa: E402
from app.wiring.dependencies import get_notifier, get_schedule_gateway  # noqa: E402


def run_once() -> int:
    expired = get_schedule_gateway().expire_stale_bookings()
    for booking in expired:
        print(f"timed out {booking.id} (provider={booking.provider_id}, created={booking.created_at})")
    return len(expired)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--every", type=float, default=0, help="seconds between passes; 0 runs once")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    try:
        if args.every <= 0:
            run_once()
            return
        while True:
            run_once()
            time.sleep(args.every)
    except KeyboardInterrupt:
        pass
    finally:
        get_notifier().close()


if __name__ == "__main__":
    main()
