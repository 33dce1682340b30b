from __future__ import annotations

import ipaddress
from functools import lru_cache

from fastapi import Request

ADMIN_KEY_HEADER = "X-Admin-Key"


def read_admin_key_header(request: Request) -> str | None:
    return request.headers.get(ADMIN_KEY_HEADER)


@lru_cache(maxsize=32)
def _parse_allowlist(
    allowlist: str,
) -> tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...]:
    networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
    for raw_entry in allowlist.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue

        try:
            if "/" in entry:
                networks.append(ipaddress.ip_network(entry, strict=False))
            else:
                host = ipaddress.ip_address(entry)
                suffix = 32 if host.version == 4 else 128
                networks.append(ipaddress.ip_network(f"{entry}/{suffix}", strict=False))
        except ValueError:
            continue

    return tuple(networks)


def _parse_ip(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def extract_client_ip(
    request: Request,
    *,
    trusted_proxies: str = "",
) -> str | None:
    client_host = _parse_ip(request.client.host if request.client is not None else None)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for and is_client_ip_allowed(client_ip=client_host, allowlist=trusted_proxies):
        return _parse_ip(forwarded_for.split(",", maxsplit=1)[0])

    return client_host


def is_client_ip_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    if client_ip is None:
        return False

    try:
        parsed_ip = ipaddress.ip_address(client_ip)
    except ValueError:
        return False

    networks = _parse_allowlist(allowlist)
    if not networks:
        return False

    return any(parsed_ip in network for network in networks)


def is_admin_network_allowed(*, client_ip: str | None, allowlist: str) -> bool:
    """An empty allowlist leaves admin routes reachable from any address."""
    if not allowlist.strip():
        return True
    return is_client_ip_allowed(client_ip=client_ip, allowlist=allowlist)
