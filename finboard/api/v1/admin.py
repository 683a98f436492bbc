"""Admin-only user endpoints under /v1/admin"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from finboard.api.dependencies import get_request_id, get_user_service, require_admin
from finboard.api.v1.schemas import UserDeletedResponse, UserSummary, UsersResponse, UserUpdatedResponse
from finboard.domain.exceptions import PersistenceError
from finboard.domain.models import Principal
from finboard.services.users import UserService

router = APIRouter()


@router.get("/admin/users", response_model=UsersResponse)
def list_users(
    request: Request,
    admin: Principal = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """
    List every user, newest first, without the password field.

    Returns:
        {"users": [...]}; 500 {"error": "Failed to fetch users"} on storage failure
    """
    try:
        rows = users.list_all_users()
    except PersistenceError as e:
        logging.error(f"Error fetching users: {e}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"error": "Failed to fetch users"})

    return UsersResponse(users=[UserSummary.model_validate(row) for row in rows])


@router.get("/admin/users/{user_id}", response_model=UserSummary)
def get_user(
    user_id: str,
    admin: Principal = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return UserSummary.model_validate(users.get_user(user_id))


@router.patch("/admin/users/{user_id}", response_model=UserUpdatedResponse)
def update_user(
    user_id: str,
    request: Request,
    patch: Dict[str, Any] = Body(..., examples=[{"role": "premium"}]),
    admin: Principal = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """Change a user's name, email or role; the password is never returned"""
    user = users.update_user(user_id, patch)
    logging.info(
        "Admin updated user",
        extra={"request_id": get_request_id(request), "admin_id": admin.user_id, "user_id": user_id},
    )
    return UserUpdatedResponse(message="User updated successfully", user=UserSummary.model_validate(user))


@router.delete("/admin/users/{user_id}", response_model=UserDeletedResponse)
def delete_user(
    user_id: str,
    request: Request,
    admin: Principal = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """Delete a non-admin user and all of their transactions, savings goals and bills"""
    deleted = users.delete_user(user_id)
    logging.info(
        "Admin deleted user",
        extra={"request_id": get_request_id(request), "admin_id": admin.user_id, "user_id": user_id},
    )
    return UserDeletedResponse(message="User and all associated data deleted successfully", deleted=deleted)
