"""Set the password of a company admin from the command line.

Usage: bunker-set-admin-password EMAIL PASSWORD [--company-domain DOMAIN]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from src.core import db
from src.core.config import settings
from src.core.logging import configure_logging
from src.core.repositories.admin_sessions import AdminSessionRepository
from src.core.repositories.company_admins import AdminDirectory
from src.core.security.dependencies import get_password_hasher
from src.core.tenancy import get_company_by_host
from src.models.base import utcnow

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bunker-set-admin-password",
        description="Hash a new password and store it on every matching company admin.",
    )
    parser.add_argument("email", help="Admin email address")
    parser.add_argument("password", help="New plain-text password")
    parser.add_argument(
        "--company-domain",
        default=None,
        help="Only update the admin of the company serving this domain",
    )
    return parser


async def set_admin_password(email: str, password: str, company_domain: str | None = None) -> list[str]:
    email = email.strip().lower()
    password_hash = get_password_hasher().hash(password)

    async with db.AsyncSessionLocal() as session:
        admins = await AdminDirectory(session).find_by_email(email)
        if company_domain:
            company = await get_company_by_host(session, company_domain)
            if company is None:
                raise LookupError(f"No company for domain {company_domain}")
            admins = [admin for admin in admins if admin.company_id == company.id]

        revoked_at = utcnow()
        sessions = AdminSessionRepository(session)
        for admin in admins:
            admin.password_hash = password_hash
            admin.sessions_revoked_at = revoked_at
            await sessions.delete_for_admin(admin.id, admin.company_id)
        await session.commit()

    return [f"{admin.id} company={admin.company_id} email={admin.email}" for admin in admins]


def main(argv: list[str] | None = None) -> int:
    configure_logging(settings.log_level)
    args = build_parser().parse_args(argv)
    if not args.email.strip() or not args.password:
        print("email and password are required", file=sys.stderr)
        return 1

    try:
        updated = asyncio.run(set_admin_password(args.email, args.password, args.company_domain))
    except Exception as exc:
        logger.error("Password update failed: %s", exc)
        return 1

    if not updated:
        print(f"No admin found for {args.email}", file=sys.stderr)
        return 1
    for row in updated:
        print(f"updated {row}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
