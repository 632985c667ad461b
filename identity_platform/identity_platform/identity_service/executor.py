"""
Single chokepoint for persistent-state access.

Every statement runs through :meth:`QueryExecutor.execute`, which acquires a
pooled connection, runs the statement inside a transaction with bound
parameters, releases the connection and returns a :class:`QueryResult`.
Storage failures never propagate past this module.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.sql import Executable

from .db import ConnectionPoolManager
from .errors import AcquisitionError

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]


class FailureReason(str, Enum):
    UNAVAILABLE = "unavailable"
    CONSTRAINT = "constraint"
    QUERY = "query"


@dataclass(frozen=True)
class QueryResult:
    ok: bool
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0
    error: Optional[str] = None
    reason: Optional[FailureReason] = None

    @classmethod
    def success(cls, rows: List[Dict[str, Any]], rowcount: int) -> "QueryResult":
        return cls(ok=True, rows=rows, rowcount=rowcount)

    @classmethod
    def failure(cls, reason: FailureReason, error: str) -> "QueryResult":
        return cls(ok=False, error=error, reason=reason)

    @property
    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    @property
    def is_unavailable(self) -> bool:
        return self.reason is FailureReason.UNAVAILABLE

    @property
    def is_constraint_violation(self) -> bool:
        return self.reason is FailureReason.CONSTRAINT


class QueryExecutor:
    """Runs statements against the pool and reports a uniform result."""

    def __init__(self, pool: ConnectionPoolManager):
        self.pool = pool

    def execute(self, statement: Statement, parameters: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """
        Execute one statement with bound parameters.

        Args:
            statement: SQL text using ``:name`` placeholders, or a SQLAlchemy
                Core executable
            parameters: values bound to the placeholders; never interpolated

        Returns:
            QueryResult: rows and rowcount on success, or a tagged failure
        """
        if isinstance(statement, str):
            statement = text(statement)

        try:
            handle = self.pool.acquire()
        except AcquisitionError as exc:
            logger.error("Query skipped, store unavailable: %s", exc)
            return QueryResult.failure(FailureReason.UNAVAILABLE, str(exc))

        try:
            conn = handle.connection
            with conn.begin():
                if parameters:
                    result = conn.execute(statement, dict(parameters))
                else:
                    result = conn.execute(statement)
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
                rowcount = result.rowcount
            return QueryResult.success(rows, rowcount)
        except IntegrityError as exc:
            logger.info("Query rejected by constraint: %s", exc.orig)
            return QueryResult.failure(FailureReason.CONSTRAINT, str(exc.orig))
        except DBAPIError as exc:
            if exc.connection_invalidated:
                logger.error("Connection lost during query: %s", exc.orig)
                return QueryResult.failure(FailureReason.UNAVAILABLE, str(exc.orig))
            logger.error("Query error: %s", exc.orig)
            return QueryResult.failure(FailureReason.QUERY, str(exc.orig))
        except SQLAlchemyError as exc:
            logger.error("Query error: %s", exc)
            return QueryResult.failure(FailureReason.QUERY, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error while executing query")
            return QueryResult.failure(FailureReason.QUERY, str(exc))
        finally:
            self.pool.release(handle)
