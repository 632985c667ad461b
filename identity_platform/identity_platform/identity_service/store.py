"""
Account queries built on the query executor.

Every method returns a :class:`QueryResult`; callers decide what a failure
means in their context.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select, update

from .executor import QueryExecutor, QueryResult
from .models import PUBLIC_COLUMNS, accounts_table, utcnow


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore:
    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def find_by_email(self, email: str) -> QueryResult:
        """Lookup including the password hash, for credential checks only."""
        stmt = select(*PUBLIC_COLUMNS, accounts_table.c.password_hash).where(
            accounts_table.c.email == normalize_email(email)
        )
        return self.executor.execute(stmt)

    def find_by_id(self, account_id: int) -> QueryResult:
        stmt = select(*PUBLIC_COLUMNS).where(accounts_table.c.id == account_id)
        return self.executor.execute(stmt)

    def email_exists(self, email: str) -> QueryResult:
        stmt = select(accounts_table.c.id).where(accounts_table.c.email == normalize_email(email))
        return self.executor.execute(stmt)

    def insert_account(self, name: str, email: str, password_hash: str) -> QueryResult:
        stmt = (
            insert(accounts_table)
            .values(
                name=name.strip(),
                email=normalize_email(email),
                password_hash=password_hash,
                created_at=utcnow(),
                is_active=True,
            )
            .returning(*PUBLIC_COLUMNS)
        )
        return self.executor.execute(stmt)

    def touch_last_login(self, account_id: int, when: Optional[datetime] = None) -> QueryResult:
        stmt = (
            update(accounts_table)
            .where(accounts_table.c.id == account_id)
            .values(last_login=when or utcnow())
        )
        return self.executor.execute(stmt)

    def set_active(self, account_id: int, active: bool) -> QueryResult:
        stmt = update(accounts_table).where(accounts_table.c.id == account_id).values(is_active=active)
        return self.executor.execute(stmt)

    def list_accounts(self, limit: int = 100, offset: int = 0) -> QueryResult:
        stmt = (
            select(*PUBLIC_COLUMNS)
            .order_by(accounts_table.c.id)
            .limit(limit)
            .offset(offset)
        )
        return self.executor.execute(stmt)
