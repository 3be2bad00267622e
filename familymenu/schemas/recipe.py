"""Recipe and rating schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from familymenu.schemas.base import ApiModel

Categoria = Literal[
    "Plato Principal",
    "Entrada",
    "Acompañamiento",
    "Sopa",
    "Ensalada",
    "Postre",
    "Merienda",
    "Desayuno",
    "Bebida",
]


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not value.startswith(("http://", "https://")):
        raise ValueError("El enlace debe comenzar con http:// o https://")
    return value


class RecipeFields(ApiModel):
    descripcion: Optional[str] = Field(default=None, max_length=1000)
    imagen: Optional[str] = None
    enlace_externo: Optional[str] = Field(default=None, max_length=2048)
    calificacion_ninos: Optional[int] = Field(default=None, ge=0, le=5)
    ingredientes: Optional[list[str]] = Field(default=None, max_length=100)
    instrucciones: Optional[str] = Field(default=None, max_length=10000)
    tiempo_preparacion: Optional[int] = Field(default=None, ge=1, le=1440)
    porciones: Optional[int] = Field(default=None, ge=1, le=50)
    es_favorita: Optional[bool] = None

    @field_validator("enlace_externo")
    @classmethod
    def check_url(cls, value: Optional[str]) -> Optional[str]:
        return _check_url(value)

    @field_validator("ingredientes")
    @classmethod
    def clean_ingredients(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return [item.strip() for item in value if item.strip()]


class RecipeCreateRequest(RecipeFields):
    nombre: str = Field(min_length=1, max_length=100)
    categoria: Categoria


class RecipeUpdateRequest(RecipeFields):
    nombre: Optional[str] = Field(default=None, min_length=1, max_length=100)
    categoria: Optional[Categoria] = None


class RecipeResponse(ApiModel):
    id: str
    nombre: str
    descripcion: Optional[str]
    imagen: Optional[str]
    enlace_externo: Optional[str]
    categoria: str
    calificacion_ninos: int
    ingredientes: list[str]
    instrucciones: Optional[str]
    tiempo_preparacion: Optional[int]
    porciones: Optional[int]
    es_favorita: bool
    created_by: Optional[str]
    family_id: Optional[str]
    created_at: datetime


class RatingRequest(ApiModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=500)


class RatingResponse(ApiModel):
    id: str
    recipe_id: str
    user_id: str
    rating: int
    comment: Optional[str]
    created_at: datetime
    updated_at: datetime


class MyRatingResponse(RatingResponse):
    recipe_name: str
