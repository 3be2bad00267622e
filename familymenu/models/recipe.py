"""Recipe and rating models."""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


class Recipe(SQLModel, table=True):
    __tablename__ = "recipes"

    id: str = Field(default_factory=lambda: f"rec_{secrets.token_hex(4)}", primary_key=True)
    nombre: str
    descripcion: Optional[str] = None
    imagen: Optional[str] = None  # URL or data URI
    enlace_externo: Optional[str] = None
    categoria: str
    calificacion_ninos: int = Field(default=0)  # 0-5 stars
    ingredientes: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    instrucciones: Optional[str] = None
    tiempo_preparacion: Optional[int] = None  # minutes
    porciones: Optional[int] = None
    es_favorita: bool = Field(default=False)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id", index=True)
    family_id: Optional[str] = Field(default=None, foreign_key="families.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RecipeRating(SQLModel, table=True):
    __tablename__ = "recipe_ratings"
    __table_args__ = (UniqueConstraint("recipe_id", "user_id"),)

    id: str = Field(default_factory=lambda: f"rat_{secrets.token_hex(4)}", primary_key=True)
    recipe_id: str = Field(foreign_key="recipes.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    rating: int  # 1-5
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
