from typing import Optional

from .base import QueryLog
from .db import Database

MAX_ERROR_MESSAGE = 4000

class NullQueryLog(QueryLog):
    """Used when no database is configured; audit records are dropped."""
    async def start(self, address, referrer, utm_source, agent_id) -> Optional[int]:
        return None

    async def mark_success(self, query_id: int) -> None:
        return None

    async def record_error(self, address, code, message, query_id) -> None:
        return None

class PostgresQueryLog(QueryLog):
    """
    Audit trail of analysis requests (analyzer_queries) and their
    failures (query_errors). Callers treat every method as best-effort.
    """
    def __init__(self, db: Database):
        self.db = db

    async def start(
        self, address: str, referrer: Optional[str], utm_source: Optional[str], agent_id: Optional[str]
    ) -> Optional[int]:
        return await self.db.fetchval(
            """
            INSERT INTO analyzer_queries (address, referrer, utm_source, agent_id, query_success)
            VALUES ($1, $2, $3, $4, FALSE)
            RETURNING id
            """,
            address, referrer, utm_source, agent_id,
        )

    async def mark_success(self, query_id: int) -> None:
        await self.db.execute(
            "UPDATE analyzer_queries SET query_success = TRUE WHERE id = $1", query_id
        )

    async def record_error(
        self, address: Optional[str], code: str, message: str, query_id: Optional[int]
    ) -> None:
        await self.db.execute(
            "INSERT INTO query_errors (address, error_code, message, query_id) VALUES ($1, $2, $3, $4)",
            address, code, message[:MAX_ERROR_MESSAGE], query_id,
        )

def query_log(db: Optional[Database]) -> QueryLog:
    return PostgresQueryLog(db) if db is not None else NullQueryLog()
