"""User, Family and FamilyMember models."""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: f"usr_{secrets.token_hex(4)}", primary_key=True)
    email: str = Field(unique=True, index=True)
    password_hash: str
    name: str
    role: str = Field(default="creator")  # 'creator' | 'commentator'
    avatar: Optional[str] = None
    notification_preferences: Optional[str] = None  # JSON
    login_attempts: int = Field(default=0)
    last_login_attempt: Optional[datetime] = None
    token_version: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Family(SQLModel, table=True):
    __tablename__ = "families"

    id: str = Field(default_factory=lambda: f"fam_{secrets.token_hex(4)}", primary_key=True)
    nombre: str
    codigo_invitacion: str = Field(unique=True, index=True)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FamilyMember(SQLModel, table=True):
    __tablename__ = "family_members"

    id: str = Field(default_factory=lambda: f"fmm_{secrets.token_hex(4)}", primary_key=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    # One family per user: the unique index is the guard under concurrent joins
    user_id: str = Field(foreign_key="users.id", unique=True, index=True)
    role: str = Field(default="member")  # 'admin' | 'member'
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
