"""Admin-only user operations. Callers must already hold the admin role."""

import logging
import uuid
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from finboard.domain.exceptions import AuthorizationError, NotFoundError
from finboard.domain.models import UserRole
from finboard.domain.schemas import validate_user_patch
from finboard.infrastructure.database.models import UserAccount
from finboard.infrastructure.database.repositories import UserRepository
from finboard.infrastructure.observability.metrics import record_operation

logger = logging.getLogger(__name__)


class UserService:
    """Cross-user listing, role management and removal; no per-row ownership filtering"""

    def __init__(self, db: Session, admin_role: str = UserRole.ADMIN.value):
        self.users = UserRepository(db)
        self.admin_role = admin_role

    def list_all_users(self) -> List[Dict[str, Any]]:
        """Every user, newest first, with the password field excluded"""
        users = self.users.list_users()
        record_operation("users", "list")
        return users

    def _load(self, user_id: Any) -> UserAccount:
        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError:
            raise NotFoundError("User", str(user_id))

        user = self.users.get_user(user_uuid)
        if user is None:
            raise NotFoundError("User", str(user_id))
        return user

    def get_user(self, user_id: str) -> UserAccount:
        user = self._load(user_id)
        record_operation("users", "get")
        return user

    def update_user(self, user_id: str, patch: Any) -> UserAccount:
        """
        Change a user's name, email or role.

        Raises:
            NotFoundError: Unknown user id
            ValidationError: Bad patch or an email another user already has
            AuthorizationError: Attempt to take the admin role away from an admin
        """
        user = self._load(user_id)
        changes = validate_user_patch(patch)
        if user.role == self.admin_role and changes.get("role", self.admin_role) != self.admin_role:
            raise AuthorizationError("Cannot change role of admin user")

        user = self.users.update_user(user, changes)
        record_operation("users", "update")
        logger.info("User updated", extra={"user_id": str(user_id), "fields": sorted(changes)})
        return user

    def delete_user(self, user_id: str) -> Dict[str, int]:
        """
        Remove a non-admin user together with all of their records.

        Returns:
            Number of deleted rows per collection

        Raises:
            NotFoundError: Unknown user id
            AuthorizationError: Target user is an admin
        """
        user = self._load(user_id)
        if user.role == self.admin_role:
            raise AuthorizationError("Cannot delete admin user")

        deleted = self.users.delete_user_and_records(user)
        record_operation("users", "delete")
        logger.info("User deleted", extra={"user_id": str(user_id), "deleted": deleted})
        return deleted
