"""
Account routes: signup, login and the bearer-protected account endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..accounts import AccountOutcome, AccountService
from ..auth import TokenClaims
from ..errors import ErrorKind
from ..lifecycle import require_store
from ..schemas import (
    SignupRequest,
    LoginRequest,
    SignupResponse,
    LoginResponse,
    AccountProfile,
    AccountListResponse,
    MessageResponse,
)
from ..security import require_identity
from ..store import normalize_email
from ..utils.event_logger import log_auth_event

router = APIRouter(tags=["accounts"])
logger = logging.getLogger(__name__)


def get_account_service(request: Request) -> AccountService:
    return request.app.state.accounts


def raise_for_outcome(outcome: AccountOutcome) -> None:
    if outcome.ok:
        return
    if not outcome.error.is_client_fault:
        logger.error("Request failed: kind=%s message=%s", outcome.error.value, outcome.message)
    headers = {"WWW-Authenticate": "Bearer"} if outcome.error is ErrorKind.AUTHENTICATION else None
    raise HTTPException(status_code=outcome.error.status_code, detail=outcome.message, headers=headers)


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    request: Request,
    _: None = Depends(require_store),
    service: AccountService = Depends(get_account_service),
):
    outcome = service.signup(payload.name, payload.email, payload.password)
    if outcome.error is ErrorKind.CONFLICT:
        log_auth_event("signup_conflict", request, email=normalize_email(payload.email))
    raise_for_outcome(outcome)

    log_auth_event("signup_success", request, account_id=outcome.account["id"], email=outcome.account["email"])
    return {"user": outcome.account, "token": outcome.token}


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    _: None = Depends(require_store),
    service: AccountService = Depends(get_account_service),
):
    outcome = service.login(payload.email, payload.password)
    if outcome.error is ErrorKind.AUTHENTICATION:
        log_auth_event("login_failure", request, email=normalize_email(payload.email))
    raise_for_outcome(outcome)

    log_auth_event("login_success", request, account_id=outcome.account["id"], email=outcome.account["email"])
    return {"user": outcome.account, "token": outcome.token}


@router.get("/profile", response_model=AccountProfile)
def profile(
    claims: TokenClaims = Depends(require_identity),
    _: None = Depends(require_store),
    service: AccountService = Depends(get_account_service),
):
    outcome = service.profile(claims.account_id)
    raise_for_outcome(outcome)
    return outcome.account


@router.get("/users", response_model=AccountListResponse)
def list_users(
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of accounts to return"),
    offset: int = Query(0, ge=0, description="Number of accounts to skip"),
    claims: TokenClaims = Depends(require_identity),
    _: None = Depends(require_store),
    service: AccountService = Depends(get_account_service),
):
    outcome = service.list_accounts(limit=limit, offset=offset)
    raise_for_outcome(outcome)
    return {"users": outcome.accounts}


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, claims: TokenClaims = Depends(require_identity)):
    """
    Advisory logout. Tokens are verified statelessly, so the token stays
    valid until it expires; the client is expected to discard it.
    """
    log_auth_event("logout", request, account_id=claims.account_id, email=claims.email)
    return {"message": "Logged out. Discard the token on the client."}


@router.post("/account/deactivate", response_model=MessageResponse)
def deactivate_account(
    request: Request,
    claims: TokenClaims = Depends(require_identity),
    _: None = Depends(require_store),
    service: AccountService = Depends(get_account_service),
):
    outcome = service.deactivate(claims.account_id)
    raise_for_outcome(outcome)
    log_auth_event("account_deactivated", request, account_id=claims.account_id, email=claims.email)
    return {"message": "Account deactivated"}
