"""Family and membership schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from familymenu.schemas.base import ApiModel
from familymenu.utils.invitation import (
    is_valid_invitation_code_format,
    normalize_invitation_code,
)


class FamilyCreateRequest(ApiModel):
    nombre: str = Field(max_length=50)

    @field_validator("nombre")
    @classmethod
    def strip_nombre(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("El nombre de la familia debe tener al menos 2 caracteres")
        return value


class FamilyJoinRequest(ApiModel):
    codigo: str = Field(max_length=32)

    @field_validator("codigo")
    @classmethod
    def normalize_codigo(cls, value: str) -> str:
        if not is_valid_invitation_code_format(value):
            raise ValueError("El código debe tener el formato XXX-XXX")
        return normalize_invitation_code(value)


class FamilyMemberResponse(ApiModel):
    user_id: str
    name: str
    email: str
    avatar: Optional[str]
    account_role: str
    role: str  # 'admin' | 'member'
    joined_at: datetime


class FamilyResponse(ApiModel):
    id: str
    nombre: str
    codigo_invitacion: str
    created_by: Optional[str]
    created_at: datetime
    role: str
    members: list[FamilyMemberResponse]


class InvitationCodeResponse(ApiModel):
    message: str
    codigo_invitacion: str
