"""Auth, profile and account request/response schemas."""

import re
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, Field, ValidationInfo, field_validator

from familymenu.schemas.base import ApiModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_AVATAR_LENGTH = 2 * 1024 * 1024


def check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Email inválido")
    return value


def check_password_strength(value: str) -> str:
    """At least one lowercase letter, one uppercase letter and one digit."""
    if not re.search(r"[a-z]", value):
        raise ValueError("La contraseña debe contener al menos una letra minúscula")
    if not re.search(r"[A-Z]", value):
        raise ValueError("La contraseña debe contener al menos una letra mayúscula")
    if not re.search(r"[0-9]", value):
        raise ValueError("La contraseña debe contener al menos un número")
    return value


def check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise ValueError("El nombre debe tener al menos 2 caracteres")
    return value


Email = Annotated[str, Field(max_length=254), AfterValidator(check_email)]
StrongPassword = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(check_password_strength)]
DisplayName = Annotated[str, Field(max_length=50), AfterValidator(check_name)]


class NotificationPreferences(ApiModel):
    email: bool = True
    recipes: bool = True
    meal_plans: bool = True


# --- Register / Login ---

class RegisterRequest(ApiModel):
    email: Email
    password: StrongPassword
    confirm_password: str
    name: DisplayName
    role: Literal["creator", "commentator"] = "creator"

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # password is missing from info.data when it failed its own validation
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Las contraseñas no coinciden")
        return value


class LoginRequest(ApiModel):
    email: Email
    password: str = Field(min_length=1)


class UserResponse(ApiModel):
    id: str
    email: str
    name: str
    role: str
    avatar: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AuthResponse(ApiModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class AuthStatusResponse(ApiModel):
    authenticated: bool
    user: Optional[UserResponse] = None


# --- Profile ---

class ProfileResponse(UserResponse):
    family_id: Optional[str] = None
    family_name: Optional[str] = None
    family_invite_code: Optional[str] = None
    family_role: Optional[str] = None
    notification_preferences: NotificationPreferences


class UpdateProfileRequest(ApiModel):
    name: DisplayName
    email: Email
    avatar: Optional[str] = Field(default=None, max_length=MAX_AVATAR_LENGTH)
    notification_preferences: Optional[NotificationPreferences] = None


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: StrongPassword
    confirm_password: str

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and value != info.data["new_password"]:
            raise ValueError("Las contraseñas no coinciden")
        return value


class ChangePasswordResponse(ApiModel):
    message: str
    access_token: str


class AvatarRequest(ApiModel):
    avatar: str = Field(min_length=1, max_length=MAX_AVATAR_LENGTH)


class AvatarResponse(ApiModel):
    message: str
    avatar: Optional[str]


class AccountDeletionRequest(ApiModel):
    password: str = Field(min_length=1)
