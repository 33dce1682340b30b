from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from keyledger.core.config import get_settings
from keyledger.ledger.types import (
    NOTIFICATION_KIND_APPROVED,
    NOTIFICATION_KIND_REJECTED,
    NotificationEvent,
)
from keyledger.services.notifications_delivery import post_json

logger = structlog.get_logger(__name__)

DISCORD_USERNAME = "Architect Support Monitor"
DISCORD_AVATAR_URL = "https://api.dicebear.com/7.x/bottts/svg?seed=Architect"
DISCORD_FOOTER = "SAMP Prompt Architect • Purchase Log"
KIND_COLOR = {
    NOTIFICATION_KIND_APPROVED: 0x22C55E,
    NOTIFICATION_KIND_REJECTED: 0xEF4444,
}
DEFAULT_COLOR = 0xF97316
KIND_TITLE = {
    NOTIFICATION_KIND_APPROVED: "Purchase approved",
    NOTIFICATION_KIND_REJECTED: "Purchase rejected",
}


@dataclass(frozen=True)
class NotificationTarget:
    channel: str
    url: str


def _setting_str(settings: object, attr: str) -> str:
    value = getattr(settings, attr, "")
    return value.strip() if isinstance(value, str) else ""


def _resolve_targets(settings: object) -> list[NotificationTarget]:
    targets: list[NotificationTarget] = []
    discord_url = _setting_str(settings, "discord_webhook_url")
    if discord_url:
        targets.append(NotificationTarget(channel="discord", url=discord_url))
    generic_url = _setting_str(settings, "notify_webhook_url")
    if generic_url:
        targets.append(NotificationTarget(channel="generic", url=generic_url))
    return targets


def _summary(event: NotificationEvent) -> str:
    summary = event.payload.get("summary")
    if isinstance(summary, str) and summary:
        return summary
    return f"Purchase {event.purchase_id}: {event.kind}"


def _build_discord_payload(*, event: NotificationEvent, sent_at: datetime) -> dict[str, Any]:
    fields: list[dict[str, object]] = [
        {"name": "Purchase", "value": event.purchase_id, "inline": True},
        {"name": "Status", "value": event.kind, "inline": True},
    ]
    reason = event.payload.get("reason")
    if isinstance(reason, str) and reason:
        fields.append({"name": "Reason", "value": reason, "inline": False})

    return {
        "username": DISCORD_USERNAME,
        "avatar_url": DISCORD_AVATAR_URL,
        "embeds": [
            {
                "title": KIND_TITLE.get(event.kind, f"Purchase {event.kind}"),
                "description": _summary(event),
                "color": KIND_COLOR.get(event.kind, DEFAULT_COLOR),
                "timestamp": sent_at.isoformat(),
                "fields": fields,
                "footer": {"text": DISCORD_FOOTER},
            }
        ],
    }


def _build_generic_payload(*, event: NotificationEvent, sent_at: datetime) -> dict[str, Any]:
    return {
        "kind": event.kind,
        "purchase_id": event.purchase_id,
        "payload": event.payload,
        "sent_at": sent_at.isoformat(),
    }


def _build_channel_payload(
    *,
    channel: str,
    event: NotificationEvent,
    sent_at: datetime,
) -> dict[str, Any]:
    if channel == "discord":
        return _build_discord_payload(event=event, sent_at=sent_at)
    if channel == "generic":
        return _build_generic_payload(event=event, sent_at=sent_at)
    raise ValueError(f"Unsupported notification channel: {channel}")


async def notify(event: NotificationEvent) -> bool:
    """Posts `event` once to every configured target. Never raises."""
    try:
        settings = get_settings()
        targets = _resolve_targets(settings)
        if not targets:
            logger.info("notification_skipped_no_targets", kind=event.kind, purchase_id=event.purchase_id)
            return False

        sent_at = datetime.now(timezone.utc)
        timeout = float(getattr(settings, "notify_timeout_seconds", 5.0) or 5.0)
        delivered_to: list[str] = []
        failed_to: list[str] = []
        async with httpx.AsyncClient(timeout=timeout) as client:
            for target in targets:
                body = _build_channel_payload(channel=target.channel, event=event, sent_at=sent_at)
                delivered = await post_json(
                    client=client,
                    url=target.url,
                    body=body,
                    event=event.kind,
                    channel=target.channel,
                )
                if delivered:
                    delivered_to.append(target.channel)
                else:
                    failed_to.append(target.channel)
    except Exception:
        logger.exception("notification_failed", kind=event.kind, purchase_id=event.purchase_id)
        return False

    logger.info(
        "notification_sent",
        kind=event.kind,
        purchase_id=event.purchase_id,
        delivered_to=delivered_to,
        failed_to=failed_to,
    )
    return bool(delivered_to)
