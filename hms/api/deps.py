from dataclasses import dataclass
import uuid

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from hms.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    AccountInactiveError,
    InvalidCredentialError
)
from hms.core.permissions import allowed_roles, role_names
from hms.core.security import decode_token
from hms.domain.users.models import UserRole
from hms.domain.users.repository import UserRepository
from hms.infrastructure.database import get_db
from hms.services.cloudinary_service import CloudinaryStorage, storage

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Minimal identity of the caller, attached after authentication"""
    id: uuid.UUID
    email: str
    role: UserRole
    first_name: str
    last_name: str

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    if credentials is None:
        raise AuthenticationError(message="Access denied. No token provided.")

    payload = decode_token(credentials.credentials)

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise InvalidCredentialError()

    user = await UserRepository(db).get(user_id)
    if not user:
        raise AuthenticationError(message="User not found.")

    if not user.is_active:
        raise AccountInactiveError()

    return Principal(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name
    )


def require_permission(operation: str):
    """Dependency factory enforcing the role policy for one operation"""
    roles = allowed_roles(operation)

    async def permission_checker(current_user: Principal = Depends(get_current_user)) -> Principal:
        if current_user.role not in roles:
            raise AuthorizationError(
                message="Access denied. Insufficient permissions.",
                details={"required_roles": role_names(roles)}
            )
        return current_user

    return permission_checker


def get_storage() -> CloudinaryStorage:
    return storage
