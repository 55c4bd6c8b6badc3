# storefront/utils/tokenJWT.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.database import get_db
from storefront.errors import AuthenticationError, Forbidden
from storefront.models.users import User

# Authorization scheme; the token may also arrive in the "token" cookie
bearer_scheme = HTTPBearer(auto_error=False)


# Authenticated caller, passed explicitly into every service call
@dataclass(frozen=True)
class Principal:
    id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, email=user.email, role=user.role)


# Generate a new JWT access token
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get("token")


# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = _extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Not authorized to access this route")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = payload.get("sub")
        # Ensure the subject is present in the token payload
        if user_id is None:
            raise AuthenticationError()
    except JWTError:
        raise AuthenticationError()

    user = db.get(User, int(user_id))
    if user is None:
        raise AuthenticationError()
    return user


def get_current_principal(user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(user)


# Dependency factory for Role-Based Access Control
def role_required(*allowed_roles):
    def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if allowed_roles and principal.role not in allowed_roles:
            raise Forbidden(f"User role {principal.role} is not authorized to access this route")
        return principal
    return _checker
