from pydantic import BaseModel

from datetime import datetime
from typing import Dict, List, Optional, Any

# Request fields are optional so that missing values reach the account
# service and come back as a 400 validation outcome.

class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AccountBrief(BaseModel):
    id: int
    name: str
    email: str


class AccountSummary(AccountBrief):
    created_at: Optional[datetime] = None


class AccountProfile(AccountSummary):
    last_login: Optional[datetime] = None
    is_active: bool = True


class SignupResponse(BaseModel):
    user: AccountSummary
    token: str


class LoginResponse(BaseModel):
    user: AccountBrief
    token: str


class AccountListResponse(BaseModel):
    users: List[AccountProfile]


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    database: str
    lifecycle: str
    pool: Dict[str, Any]
    timestamp: str
