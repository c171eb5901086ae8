#!/usr/bin/env python3
"""Promote a registered user to ADMIN. Run by an operator on the server.

    DATABASE_URL=sqlite+aiosqlite:///./data/backoffice.db \
        python scripts/promote_admin.py ops@example.com
"""
import asyncio
import os
import sys

from sqlalchemy import update

from backoffice.database import build_engine, build_sessionmaker
from backoffice.models.user import User, UserType


async def promote(database_url: str, email: str) -> int:
    engine = build_engine(database_url)
    sf = build_sessionmaker(engine)
    try:
        async with sf() as s:
            r = await s.execute(
                update(User)
                .where(User.email == email)
                .values(user_type=UserType.ADMIN)
            )
            await s.commit()
            return r.rowcount
    finally:
        await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: promote_admin.py EMAIL")
    rows = asyncio.run(promote(os.environ["DATABASE_URL"], sys.argv[1]))
    print(f"Rows updated: {rows}")
