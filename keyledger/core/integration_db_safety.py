from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import make_url

LOCAL_DB_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "keyledger_postgres"})
SAFE_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class IntegrationTarget:
    backend: str
    host: str
    port: int
    database_name: str
    username: str | None
    password: str | None

    @classmethod
    def from_url(cls, database_url: str) -> IntegrationTarget:
        parsed = make_url(database_url)
        return cls(
            backend=parsed.get_backend_name(),
            host=(parsed.host or "").strip().lower(),
            port=int(parsed.port or 5432),
            database_name=(parsed.database or "").strip(),
            username=parsed.username,
            password=parsed.password,
        )

    def problems(self) -> list[str]:
        found: list[str] = []
        if self.backend != "postgresql":
            found.append(f"backend '{self.backend}' is not postgresql")
        if not self.database_name:
            found.append("database name is empty")
        elif "test" not in self.database_name.lower():
            found.append(f"database '{self.database_name}' is not named as a test database")
        elif SAFE_IDENTIFIER_RE.fullmatch(self.database_name) is None:
            found.append(f"database '{self.database_name}' is not a plain identifier")
        if self.host not in LOCAL_DB_HOSTS:
            found.append(f"host '{self.host or '<none>'}' is not a local test host")
        return found

    @property
    def is_safe(self) -> bool:
        return not self.problems()


def assert_safe_integration_db(database_url: str) -> IntegrationTarget:
    """Refuses any target where wiping the ledger tables could hit real data."""
    target = IntegrationTarget.from_url(database_url)
    found = target.problems()
    if found:
        raise RuntimeError(
            "Refusing to truncate ledger tables on this database: "
            + "; ".join(found)
            + ". Point DATABASE_URL at a local PostgreSQL test database such as 'keyledger_test'."
        )
    return target
