"""Authentication, profile and account API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from familymenu.api.deps import get_current_user, get_optional_user
from familymenu.database import get_session
from familymenu.models.user import Family, User
from familymenu.schemas.auth import (
    AccountDeletionRequest,
    AuthResponse,
    AuthStatusResponse,
    AvatarRequest,
    AvatarResponse,
    ChangePasswordRequest,
    ChangePasswordResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)
from familymenu.schemas.base import MessageResponse
from familymenu.services import auth_service
from familymenu.services.family_service import get_membership

router = APIRouter(prefix="/auth", tags=["auth"])


def _profile(user: User, session: Session) -> ProfileResponse:
    membership = get_membership(user.id, session)
    family = session.get(Family, membership.family_id) if membership else None
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        avatar=user.avatar,
        created_at=user.created_at,
        updated_at=user.updated_at,
        family_id=family.id if family else None,
        family_name=family.nombre if family else None,
        family_invite_code=family.codigo_invitacion if family else None,
        family_role=membership.role if membership else None,
        notification_preferences=auth_service.parse_notification_preferences(user),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(request: RegisterRequest, session: Session = Depends(get_session)):
    """Create an account and sign it in."""
    user = auth_service.register_user(
        email=request.email,
        password=request.password,
        name=request.name,
        role=request.role,
        session=session,
    )
    return AuthResponse(
        message="Usuario creado y sesión iniciada exitosamente",
        access_token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, session: Session = Depends(get_session)):
    user = auth_service.authenticate(request.email, request.password, session)
    return AuthResponse(
        message="Sesión iniciada exitosamente",
        access_token=auth_service.issue_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Logout: revoke every token issued for this account."""
    auth_service.revoke_tokens(user, session)
    return MessageResponse(message="Sesión cerrada exitosamente")


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)


@router.get("/status", response_model=AuthStatusResponse)
def auth_status(user: Optional[User] = Depends(get_optional_user)):
    """Report whether the request carries a valid token. Never fails."""
    return AuthStatusResponse(
        authenticated=user is not None,
        user=UserResponse.model_validate(user) if user else None,
    )


# --- Profile ---

@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    response: Response,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return _profile(user, session)


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    prefs = None
    if request.notification_preferences is not None:
        prefs = request.notification_preferences.model_dump(by_alias=True)
    user = auth_service.update_profile(
        user,
        name=request.name,
        email=request.email,
        avatar=request.avatar,
        notification_preferences=prefs,
        session=session,
    )
    return _profile(user, session)


@router.post("/change-password", response_model=ChangePasswordResponse)
def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Change the password. Other sessions are signed out; a new token is returned."""
    user = auth_service.change_password(user, request.current_password, request.new_password, session)
    return ChangePasswordResponse(
        message="Contraseña cambiada exitosamente",
        access_token=auth_service.issue_token(user),
    )


@router.post("/avatar", response_model=AvatarResponse)
def update_avatar(
    request: AvatarRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user = auth_service.update_avatar(user, request.avatar, session)
    return AvatarResponse(message="Avatar actualizado exitosamente", avatar=user.avatar)


@router.delete("/account", response_model=MessageResponse)
def delete_account(
    request: AccountDeletionRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    auth_service.delete_account(user, request.password, session)
    return MessageResponse(message="Cuenta eliminada exitosamente")
