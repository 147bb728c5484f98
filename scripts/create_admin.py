#!/usr/bin/env python3
"""
Bootstrap an admin account.

Self-registration only ever creates ``user`` accounts, so the first admin is
created (or an existing account promoted) with this script:

    python scripts/create_admin.py --username admin --email admin@example.com
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog
from sqlalchemy import select
from tgdir.core.config import get_settings
from tgdir.core.logging import setup_logging
from tgdir.domain.services.auth_service import hash_password
from tgdir.infrastructure.db.models import UserModel, UserRole, UserStatus
from tgdir.infrastructure.db.session import dispose_engine, get_session_factory
from tgdir.infrastructure.repositories.unit_of_work import UnitOfWork

logger = structlog.get_logger()


async def create_admin(username: str, email: str, password: str | None) -> str:
    """Create the admin, or promote the existing account with that username."""
    async with get_session_factory()() as session:
        result = await session.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        async with UnitOfWork(session, operation="create_admin"):
            if user is None:
                if not password:
                    raise SystemExit("A password is required to create a new account")
                user = UserModel(
                    username=username,
                    email=email.lower(),
                    hashed_password=hash_password(password),
                    role=UserRole.ADMIN,
                    status=UserStatus.ACTIVE,
                )
                session.add(user)
                action = "created"
            else:
                user.role = UserRole.ADMIN
                user.status = UserStatus.ACTIVE
                if password:
                    user.hashed_password = hash_password(password)
                action = "promoted"

    await dispose_engine()
    logger.info("admin_bootstrapped", username=username, action=action)
    return action


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument(
        "--password", help="Prompted for when omitted and the account does not exist yet"
    )
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=False)
    password = args.password or getpass.getpass("Admin password (empty keeps current): ") or None
    action = asyncio.run(create_admin(args.username, args.email, password))
    print(f"Admin {args.username!r} {action}")


if __name__ == "__main__":
    main()
