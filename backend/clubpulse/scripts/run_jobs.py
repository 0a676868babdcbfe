"""CLI for the two scheduled jobs, for hosts that drive them from system cron.

Usage:
  python -m backend.clubpulse.scripts.run_jobs check      # scan sheet, queue warnings
  python -m backend.clubpulse.scripts.run_jobs dispatch   # send approved emails

Exit status is 0 on success and 1 when the job reports a failure.
"""
import argparse
import json

from ..core.config import get_settings
from ..core.logging import init_logging
from ..db.database import SessionLocal, ensure_schema
from ..services.activity_check import check_member_activity
from ..services.dispatcher import process_queue
from ..services.mailer import get_mailer


def run(job: str) -> int:
    settings = get_settings()
    ensure_schema()
    session = SessionLocal()
    try:
        if job == "check":
            result = check_member_activity(session, settings)
        else:
            mailer = get_mailer(settings)
            try:
                result = process_queue(session, mailer)
            finally:
                mailer.close()
    finally:
        session.close()
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0 if result.success else 1


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a ClubPulse scheduled job once")
    parser.add_argument("job", choices=["check", "dispatch"], help="check: scan member activity; dispatch: send approved emails")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)
    init_logging(args.log_level or get_settings().log_level)
    raise SystemExit(run(args.job))


if __name__ == "__main__":  # pragma: no cover
    main()
