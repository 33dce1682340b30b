from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.core.config import get_settings
from keyledger.db.repo.codes_repo import CodesRepo
from keyledger.db.repo.users_repo import UsersRepo
from keyledger.ledger.errors import (
    CodeAlreadyRedeemedError,
    CodeMintError,
    CodeNotFoundError,
    InvalidRedeemerError,
)
from keyledger.ledger.types import CodeRedemption
from keyledger.services.premium_codes import generate_premium_code, normalize_premium_code

logger = structlog.get_logger(__name__)

MINT_MAX_ATTEMPTS = 5
CODE_SOURCES = ("purchase", "admin", "replacement")


class CodeLedger:
    @staticmethod
    async def mint(
        session: AsyncSession,
        *,
        source: str = "admin",
        now_utc: datetime | None = None,
    ) -> str:
        if source not in CODE_SOURCES:
            raise ValueError(f"unknown code source: {source}")

        now_utc = now_utc or datetime.now(timezone.utc)
        prefix = get_settings().premium_code_prefix
        for attempt in range(1, MINT_MAX_ATTEMPTS + 1):
            code = generate_premium_code(prefix=prefix)
            inserted = await CodesRepo.insert_if_absent(
                session,
                code=code,
                source=source,
                now_utc=now_utc,
            )
            if inserted:
                logger.info("premium_code_minted", source=source, attempt=attempt)
                return code
            logger.warning("premium_code_collision", source=source, attempt=attempt)

        raise CodeMintError("exhausted code mint attempts")

    @staticmethod
    async def redeem(
        session: AsyncSession,
        *,
        code: str,
        redeemer_id: str,
        mint_replacement: bool,
        now_utc: datetime | None = None,
    ) -> CodeRedemption:
        """Flips an active code to redeemed exactly once.

        The flip is a single conditional UPDATE; when it touches no row a
        follow-up read tells a missing code apart from a consumed one. The
        premium grant and the optional replacement mint share the caller's
        transaction.
        """
        now_utc = now_utc or datetime.now(timezone.utc)
        normalized_code = normalize_premium_code(code)
        redeemer = redeemer_id.strip()
        if not redeemer:
            raise InvalidRedeemerError
        if not normalized_code:
            raise CodeNotFoundError

        flipped = await CodesRepo.mark_redeemed_if_active(
            session,
            code=normalized_code,
            redeemed_by=redeemer,
            now_utc=now_utc,
        )
        if not flipped:
            existing = await CodesRepo.get(session, normalized_code)
            if existing is None:
                logger.info("premium_code_redeem_rejected", reason="not_found", redeemer=redeemer)
                raise CodeNotFoundError
            logger.info("premium_code_redeem_rejected", reason="already_redeemed", redeemer=redeemer)
            raise CodeAlreadyRedeemedError

        await UsersRepo.grant_premium(
            session,
            username=redeemer,
            redeemed_code=normalized_code,
            now_utc=now_utc,
        )

        replacement_code: str | None = None
        if mint_replacement:
            replacement_code = await CodeLedger.mint(session, source="replacement", now_utc=now_utc)

        logger.info(
            "premium_code_redeemed",
            redeemer=redeemer,
            replacement_minted=replacement_code is not None,
        )
        return CodeRedemption(
            code=normalized_code,
            redeemed_by=redeemer,
            redeemed_at=now_utc,
            replacement_code=replacement_code,
        )
