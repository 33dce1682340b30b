from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone

from keyledger.core.config import get_settings
from keyledger.db.models.admin_credentials import AdminCredential
from keyledger.db.repo.admin_credentials_repo import AdminCredentialsRepo
from keyledger.db.session import SessionLocal
from keyledger.ledger.credentials.service import CredentialStore
from keyledger.services.admin_keys import (
    admin_key_display_prefix,
    generate_admin_key,
    hash_admin_key,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Admin key provisioning tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="mint a new admin key and print it once")
    create.add_argument("--label", default=None, help="free-form owner label")

    revoke = subparsers.add_parser("revoke", help="revoke an admin key")
    revoke.add_argument("key")

    subparsers.add_parser("list", help="list stored credentials (prefix and status only)")
    return parser.parse_args(argv)


def build_credential(*, admin_key: str, label: str | None, pepper: str, now_utc: datetime) -> AdminCredential:
    return AdminCredential(
        key_hash=hash_admin_key(admin_key=admin_key, pepper=pepper),
        key_prefix=admin_key_display_prefix(admin_key),
        label=(label or "").strip() or None,
        status="active",
        created_at=now_utc,
        last_used_at=None,
        revoked_at=None,
    )


async def _create(label: str | None) -> str:
    admin_key = generate_admin_key()
    credential = build_credential(
        admin_key=admin_key,
        label=label,
        pepper=get_settings().admin_key_pepper,
        now_utc=datetime.now(timezone.utc),
    )
    async with SessionLocal.begin() as session:
        await AdminCredentialsRepo.create(session, credential=credential)
    return admin_key


async def _revoke(admin_key: str) -> None:
    async with SessionLocal.begin() as session:
        await CredentialStore.revoke(session, admin_key=admin_key)


async def _list() -> list[AdminCredential]:
    async with SessionLocal() as session:
        return await AdminCredentialsRepo.list_all(session)


async def _run(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.command == "create":
        admin_key = await _create(args.label)
        print(f"admin_key={admin_key}")  # noqa: T201
        print("store it now; only its digest is kept")  # noqa: T201
    elif args.command == "revoke":
        await _revoke(args.key)
        print("revoked=ok")  # noqa: T201
    else:
        for credential in await _list():
            print(  # noqa: T201
                f"prefix={credential.key_prefix} status={credential.status} "
                f"label={credential.label or '-'} last_used_at={credential.last_used_at or '-'}"
            )
    return 0


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(_run(argv))


if __name__ == "__main__":
    raise SystemExit(main())
