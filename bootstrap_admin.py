"""
bootstrap_admin.py
------------------
Out-of-band command that puts an email on an organisation's admin
allowlist. This is how the first administrator of an organisation is
created: the account registered afterwards with that email gets ADMIN.

There is no HTTP equivalent for an organisation without admins.

Usage:
    python bootstrap_admin.py owner@acme.com
    python bootstrap_admin.py owner@acme.com --org-id acme --created-by ops
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from offerdesk.core.config import settings
from offerdesk.core.errors import ValidationError
from offerdesk.core.logging import configure_logging, get_logger
from offerdesk.db.session import AsyncSessionLocal, engine
from offerdesk.services.allowlist_service import AllowlistService

logger = get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Allow an email to register as administrator of an organisation."
    )
    parser.add_argument("email", help="Email address to allow")
    parser.add_argument(
        "--org-id",
        default=settings.DEFAULT_ORG_ID,
        help="Organisation id (defaults to DEFAULT_ORG_ID)",
    )
    parser.add_argument(
        "--created-by",
        default="bootstrap",
        help="Recorded as the author of the entry",
    )
    return parser.parse_args(argv)


async def add_admin_email(org_id: str, email: str, created_by: str) -> bool:
    """True when a new entry was created, False when it already existed."""
    async with AsyncSessionLocal() as session:
        try:
            await AllowlistService.add_entry(session, org_id, email, created_by)
            await session.commit()
        except ValidationError as exc:
            await session.rollback()
            logger.info("Allowlist entry not added", org_id=org_id, reason=exc.message)
            return False
    logger.info("Allowlist entry added", org_id=org_id, created_by=created_by)
    return True


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if not args.org_id:
        logger.error("No organisation: pass --org-id or set DEFAULT_ORG_ID")
        return 2
    try:
        await add_admin_email(args.org_id, args.email, args.created_by)
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(asyncio.run(main()))
