"""Dependency injection for FastAPI endpoints"""

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from finboard.config import Settings
from finboard.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    AuthorizationUnavailableError,
)
from finboard.domain.models import Principal, UserRole, ValidationPolicy
from finboard.infrastructure.clients.session import SessionClient
from finboard.infrastructure.database.session import get_db
from finboard.infrastructure.observability.metrics import record_denial
from finboard.services.records import RecordService
from finboard.services.users import UserService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_settings(request: Request) -> Settings:
    """Settings the application was built with"""
    return request.app.state.settings


def get_session_client(settings: Settings = Depends(get_settings)) -> Optional[SessionClient]:
    """Provide session service client, or None when gateway headers are trusted"""
    if not settings.auth_service_url:
        return None
    return SessionClient(settings.auth_service_url, settings.http_timeout_seconds)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get("token")


async def get_principal(
    request: Request,
    session_client: Optional[SessionClient] = Depends(get_session_client),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """
    Resolve the calling user.

    With a session service configured the bearer token (header or ``token``
    cookie) is checked remotely; any failure to reach it denies the request.
    Otherwise the X-User-Id / X-User-Role headers are used, but only when
    trust_gateway_headers says a gateway sets them. With neither, every
    request is denied.
    """
    request_id = get_request_id(request)

    if session_client is None:
        if not settings.trust_gateway_headers:
            record_denial("auth_unavailable")
            logging.error("No identity source configured", extra={"request_id": request_id})
            raise AuthorizationUnavailableError("No identity source configured")
        user_id = request.headers.get("X-User-Id")
        if not user_id:
            record_denial("unauthenticated")
            raise AuthenticationError("Missing caller identity")
        return Principal(user_id=user_id, role=request.headers.get("X-User-Role") or UserRole.REGULAR.value)

    token = _bearer_token(request)
    if not token:
        record_denial("unauthenticated")
        raise AuthenticationError("Missing session token")

    try:
        return await session_client.resolve(token)
    except AuthenticationError:
        record_denial("unauthenticated")
        raise
    except AuthorizationUnavailableError as e:
        record_denial("auth_unavailable")
        logging.error(f"Session service unavailable: {e}", extra={"request_id": request_id})
        raise
    except Exception as e:
        # Fail closed: an unexpected resolver error is a denial, never a pass
        record_denial("auth_unavailable")
        logging.error(f"Identity resolution failed: {e}", extra={"request_id": request_id})
        raise AuthorizationUnavailableError("Identity resolution failed") from e


def require_admin(
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Allow only callers holding the configured admin role"""
    if principal.role != settings.admin_role:
        record_denial("not_admin")
        raise AuthorizationError("Admin role required")
    return principal


def get_record_service(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RecordService:
    """Provide a record service bound to this request's session"""
    policy = ValidationPolicy(
        enforce_transaction_sign=settings.enforce_transaction_sign,
        cap_savings_at_target=settings.cap_savings_at_target,
    )
    return RecordService(
        db,
        policy=policy,
        request_id=get_request_id(request),
        default_limit=settings.default_list_limit,
    )


def get_user_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserService:
    return UserService(db, admin_role=settings.admin_role)
