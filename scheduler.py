"""
Invitation sweeps, meant to be run from cron or a job scheduler.

    python scheduler.py send-reminders [--mark-expired]
    python scheduler.py mark-expired
"""

import argparse
import asyncio
import logging
import sys

from config import ApplicationConfig
from src.depends import AsyncSessionLocal, build_invitation_service
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork

logger = logging.getLogger("scheduler")


async def send_reminders(mark_expired: bool) -> int:
    async with AsyncSessionLocal() as session:
        service = build_invitation_service(SqlAlchemyUnitOfWork(session))

        if mark_expired:
            expired = await service.mark_expired_invitations()
            logger.info(f"Marked {expired} invitation(s) as expired")

        if not service.settings.reminders_enabled:
            logger.warning("Invitation reminders are disabled")
            return 0

        sent = await service.send_reminders()
        logger.info(f"Sent {sent} invitation reminder(s)")
    return 0


async def mark_expired() -> int:
    async with AsyncSessionLocal() as session:
        service = build_invitation_service(SqlAlchemyUnitOfWork(session))
        expired = await service.mark_expired_invitations()
        logger.info(f"Marked {expired} invitation(s) as expired")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run invitation maintenance sweeps")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reminders = subparsers.add_parser(
        "send-reminders", help="Send reminder emails for pending invitations"
    )
    reminders.add_argument(
        "--mark-expired",
        action="store_true",
        help="Mark invitations past their expiry as expired first",
    )

    subparsers.add_parser("mark-expired", help="Mark invitations past their expiry as expired")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "send-reminders":
        return asyncio.run(send_reminders(args.mark_expired))
    return asyncio.run(mark_expired())


if __name__ == "__main__":
    sys.exit(main())
