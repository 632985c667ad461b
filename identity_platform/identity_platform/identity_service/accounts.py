"""
Credential lifecycle: signup, login and the account queries behind protected routes.

Domain failures come back as an :class:`AccountOutcome` tagged with an
:class:`ErrorKind`; nothing here raises for a duplicate email or a bad
password.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import re

from .auth import PasswordHasher, TokenIssuer
from .errors import ErrorKind
from .executor import QueryResult
from .models import MAX_TEXT_LENGTH
from .store import AccountStore, normalize_email

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
INVALID_CREDENTIALS = "Invalid credentials"
STORE_UNAVAILABLE = "Service temporarily unavailable"


@dataclass(frozen=True)
class AccountOutcome:
    error: Optional[ErrorKind] = None
    message: str = ""
    account: Optional[Dict[str, Any]] = None
    accounts: List[Dict[str, Any]] = field(default_factory=list)
    token: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "AccountOutcome":
        return cls(error=error, message=message)


def _storage_failure(result: QueryResult, message: str) -> AccountOutcome:
    if result.is_unavailable:
        return AccountOutcome.fail(ErrorKind.UNAVAILABLE, STORE_UNAVAILABLE)
    return AccountOutcome.fail(ErrorKind.INTERNAL, message)


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        min_password_length: int = 6,
    ):
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.min_password_length = min_password_length
        self._dummy_hash: Optional[str] = None

    # ---------------- Signup ----------------

    def validate_signup(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> Optional[str]:
        if not name or not name.strip() or not email or not password:
            return "All fields are required"
        if len(name.strip()) > MAX_TEXT_LENGTH or len(normalize_email(email)) > MAX_TEXT_LENGTH:
            return f"Name and email must be at most {MAX_TEXT_LENGTH} characters"
        if not EMAIL_PATTERN.match(email.strip()):
            return "Email address is not valid"
        if len(password) < self.min_password_length:
            return f"Password must be at least {self.min_password_length} characters"
        return None

    def signup(self, name: Optional[str], email: Optional[str], password: Optional[str]) -> AccountOutcome:
        problem = self.validate_signup(name, email, password)
        if problem:
            return AccountOutcome.fail(ErrorKind.VALIDATION, problem)

        existing = self.store.email_exists(email)
        if not existing.ok:
            return _storage_failure(existing, "Failed to create user")
        if existing.rows:
            return AccountOutcome.fail(ErrorKind.CONFLICT, "Email already registered")

        password_hash = self.hasher.hash(password)
        created = self.store.insert_account(name, email, password_hash)
        if not created.ok:
            if created.is_constraint_violation:
                # a concurrent signup won the race between the check and the insert
                logger.info("Signup lost uniqueness race for a registered email")
                return AccountOutcome.fail(ErrorKind.CONFLICT, "Email already registered")
            return _storage_failure(created, "Failed to create user")

        account = created.first
        if account is None:
            logger.error("Insert returned no row for new account")
            return AccountOutcome.fail(ErrorKind.INTERNAL, "Failed to create user")

        token = self.issuer.issue_for_account(account["id"], account["email"])
        logger.info("Account created: account_id=%s", account["id"])
        return AccountOutcome(account=account, token=token)

    # ---------------- Login ----------------

    def login(self, email: Optional[str], password: Optional[str]) -> AccountOutcome:
        if not email or not password:
            return AccountOutcome.fail(ErrorKind.VALIDATION, "Email and password are required")

        found = self.store.find_by_email(email)
        if not found.ok:
            return _storage_failure(found, "Login failed")

        if found.first is None:
            # equalize timing with the wrong-password path
            self.hasher.verify(password, self._timing_hash())
            return AccountOutcome.fail(ErrorKind.AUTHENTICATION, INVALID_CREDENTIALS)

        row = dict(found.first)
        password_ok = self.hasher.verify(password, row.pop("password_hash", None))
        if not password_ok or not row.get("is_active", True):
            return AccountOutcome.fail(ErrorKind.AUTHENTICATION, INVALID_CREDENTIALS)

        touched = self.store.touch_last_login(row["id"])
        if not touched.ok:
            logger.warning("Could not record last login for account_id=%s: %s", row["id"], touched.error)

        token = self.issuer.issue_for_account(row["id"], row["email"])
        return AccountOutcome(account=row, token=token)

    def _timing_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("timing-equalization-placeholder")
        return self._dummy_hash

    # ---------------- Protected queries ----------------

    def profile(self, account_id: int) -> AccountOutcome:
        found = self.store.find_by_id(account_id)
        if not found.ok:
            return _storage_failure(found, "Failed to load profile")
        account = found.first
        if account is None:
            return AccountOutcome.fail(ErrorKind.NOT_FOUND, "User not found")
        if not account.get("is_active", True):
            return AccountOutcome.fail(ErrorKind.FORBIDDEN, "Account is inactive")
        return AccountOutcome(account=account)

    def list_accounts(self, limit: int = 100, offset: int = 0) -> AccountOutcome:
        listed = self.store.list_accounts(limit=limit, offset=offset)
        if not listed.ok:
            return _storage_failure(listed, "Failed to fetch users")
        return AccountOutcome(accounts=listed.rows)

    def deactivate(self, account_id: int) -> AccountOutcome:
        updated = self.store.set_active(account_id, False)
        if not updated.ok:
            return _storage_failure(updated, "Failed to deactivate account")
        if updated.rowcount == 0:
            return AccountOutcome.fail(ErrorKind.NOT_FOUND, "User not found")
        logger.info("Account deactivated: account_id=%s", account_id)
        return AccountOutcome()


__all__ = ["AccountOutcome", "AccountService", "INVALID_CREDENTIALS"]
