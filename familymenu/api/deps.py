"""Common API dependencies: current user extraction, role and family checks."""

from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from familymenu.database import get_session
from familymenu.models.user import FamilyMember, User
from familymenu.services.errors import Forbidden, Unauthorized
from familymenu.services.family_service import get_membership
from familymenu.utils.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def _user_from_token(token: str, session: Session) -> User:
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        raise Unauthorized("Token inválido o expirado", "INVALID_TOKEN")

    if payload.get("type") != "access":
        raise Unauthorized("Tipo de token inválido", "INVALID_TOKEN")

    user = session.get(User, payload.get("sub"))
    if not user:
        raise Unauthorized("Usuario no encontrado", "INVALID_TOKEN")

    # Logout and password changes bump the version, revoking older tokens
    if payload.get("ver") != user.token_version:
        raise Unauthorized("La sesión ha expirado. Por favor inicie sesión.", "TOKEN_REVOKED")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Extract and validate user from JWT access token."""
    if not credentials:
        raise Unauthorized("No autorizado. Por favor inicie sesión.")
    return _user_from_token(credentials.credentials, session)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[User]:
    if not credentials:
        return None
    try:
        return _user_from_token(credentials.credentials, session)
    except Unauthorized:
        return None


def require_creator(user: User = Depends(get_current_user)) -> User:
    """Only creator accounts may add or change recipes and meal plans."""
    if user.role != "creator":
        raise Forbidden("Permisos insuficientes. Se requiere rol de creator.", "INSUFFICIENT_PERMISSIONS")
    return user


def get_optional_membership(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Optional[FamilyMember]:
    return get_membership(user.id, session)


def require_family(
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
) -> FamilyMember:
    """Require the current user to belong to a family."""
    if not membership:
        raise Forbidden("Debes pertenecer a una familia para acceder a este recurso", "FAMILY_REQUIRED")
    return membership
