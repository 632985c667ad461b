from passlib.context import CryptContext
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import jwt

from .errors import InvalidTokenError, TokenExpiredError

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60

# pbkdf2_sha256 avoids external bcrypt backend issues; the rounds count is
# embedded in every hash so the work factor can be raised later.
PASSWORD_SCHEME = "pbkdf2_sha256"


class PasswordHasher:
    """One-way adaptive hashing of plaintext secrets."""

    def __init__(self, rounds: Optional[int] = None):
        options: Dict[str, Any] = {"schemes": [PASSWORD_SCHEME], "deprecated": "auto"}
        if rounds is not None:
            options[f"{PASSWORD_SCHEME}__default_rounds"] = rounds
            options[f"{PASSWORD_SCHEME}__min_rounds"] = rounds
            options[f"{PASSWORD_SCHEME}__max_rounds"] = rounds
        self._context = CryptContext(**options)

    def hash(self, plaintext: str) -> str:
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            # unrecognized or corrupted hash
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """True when the stored work factor differs from the configured one."""
        return self._context.needs_update(hashed)


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = ALGORITHM,
        ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    ):
        if not secret:
            raise ValueError("A token signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, claims: Dict[str, Any], ttl: Optional[timedelta] = None) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = issued_at
        payload["exp"] = issued_at + (ttl if ttl is not None else self.ttl)
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_for_account(self, account_id: int, email: str, ttl: Optional[timedelta] = None) -> str:
        return self.issue({"sub": str(account_id), "email": email}, ttl=ttl)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, then expiry, then required claims.

        Raises:
            TokenExpiredError: signature is valid but the token has expired
            InvalidTokenError: signature mismatch, malformed token or missing claims
        """
        try:
            data = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("Token is invalid") from exc

        try:
            account_id = int(data["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("Token subject is not an account id") from exc

        return TokenClaims(
            account_id=account_id,
            email=str(data.get("email", "")),
            issued_at=datetime.fromtimestamp(data["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(data["exp"], tz=timezone.utc),
        )
