"""
Event logger utility for authentication events.
"""
from datetime import datetime, timezone
from typing import Optional
from fastapi import Request
import logging

logger = logging.getLogger("identity_service.auth_events")


ALLOWED_EVENT_TYPES = {
    "signup_success",
    "signup_conflict",
    "login_success",
    "login_failure",
    "logout",
    "account_deactivated",
}


def client_ip(request: Request) -> Optional[str]:
    """Client address, falling back to the first X-Forwarded-For entry."""
    ip_address = None
    if request.client:
        ip_address = request.client.host

    # X-Forwarded-For can contain multiple IPs, take the first one
    if not ip_address and request.headers.get("x-forwarded-for"):
        ip_address = request.headers.get("x-forwarded-for").split(",")[0].strip()
    return ip_address


def log_auth_event(
    event_type: str,
    request: Request,
    account_id: Optional[int] = None,
    email: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> None:
    """
    Write one log line for an authentication event.

    Args:
        event_type: One of: signup_success, signup_conflict, login_success,
                    login_failure, logout, account_deactivated
        request: FastAPI Request object
        account_id: Account the event concerns, when known
        email: Normalized email the caller supplied, when known
        metadata: Optional dictionary of additional context

    Raises:
        ValueError: If event_type is invalid
    """
    if event_type not in ALLOWED_EVENT_TYPES:
        raise ValueError(
            f"Invalid event_type '{event_type}'. Must be one of: {', '.join(sorted(ALLOWED_EVENT_TYPES))}"
        )

    logger.info(
        "AUTH %s account_id=%s email=%s ip=%s user_agent=%s timestamp=%s metadata=%s",
        event_type,
        account_id,
        email,
        client_ip(request),
        request.headers.get("user-agent"),
        datetime.now(timezone.utc).isoformat(),
        metadata or {},
    )
