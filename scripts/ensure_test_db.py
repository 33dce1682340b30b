from __future__ import annotations

import asyncio

import asyncpg

from keyledger.core.config import get_settings
from keyledger.core.integration_db_safety import IntegrationTarget


async def ensure_test_database(database_url: str) -> bool:
    """Creates the integration database if missing; returns True when it was created."""
    target = IntegrationTarget.from_url(database_url)
    if target.backend != "postgresql":
        raise RuntimeError("Only PostgreSQL DATABASE_URL is supported.")
    if target.username is None:
        raise RuntimeError("DATABASE_URL username is required.")
    found = [item for item in target.problems() if not item.startswith("host ")]
    if found:
        raise RuntimeError("Refusing to create database: " + "; ".join(found))

    conn = await asyncpg.connect(
        host=target.host or "localhost",
        port=target.port,
        user=target.username,
        password=target.password,
        database="postgres",
    )
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", target.database_name):
            return False
        # Identifier already checked against SAFE_IDENTIFIER_RE.
        await conn.execute(f'CREATE DATABASE "{target.database_name}"')
        return True
    finally:
        await conn.close()


def main() -> int:
    database_url = get_settings().database_url
    created = asyncio.run(ensure_test_database(database_url))
    target = IntegrationTarget.from_url(database_url)
    state = "created" if created else "exists"
    print(f"ensure_test_db: {state} db={target.database_name} host={target.host}:{target.port}")  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
