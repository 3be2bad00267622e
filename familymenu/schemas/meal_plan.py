"""Meal plan, comment and achievement schemas."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from familymenu.schemas.base import ApiModel
from familymenu.schemas.recipe import RecipeResponse

TipoComida = Literal["almuerzo", "cena"]
StarType = Literal["tried_it", "ate_veggie", "left_feedback"]


# --- Meal plans ---

class MealPlanCreateRequest(ApiModel):
    fecha: date
    receta_id: str
    tipo_comida: TipoComida = "almuerzo"
    notas: Optional[str] = Field(default=None, max_length=500)


class MealPlanUpdateRequest(ApiModel):
    fecha: Optional[date] = None
    receta_id: Optional[str] = None
    tipo_comida: Optional[TipoComida] = None
    notas: Optional[str] = Field(default=None, max_length=500)


class MealPlanResponse(ApiModel):
    id: str
    fecha: date
    receta_id: str
    tipo_comida: str
    notas: Optional[str]
    family_id: str
    created_by: Optional[str]
    created_at: datetime


class MealPlanDetailResponse(MealPlanResponse):
    receta: Optional[RecipeResponse]
    comment_count: int
    star_count: int


# --- Comments ---

class CommentCreateRequest(ApiModel):
    comment: str = Field(max_length=500)
    emoji: Optional[str] = Field(default=None, max_length=16)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("El comentario no puede estar vacío")
        return value


class CommentResponse(ApiModel):
    id: str
    meal_plan_id: str
    user_id: str
    user_name: str
    comment: str
    emoji: Optional[str]
    created_at: datetime


class FamilyCommentResponse(CommentResponse):
    fecha: date
    tipo_comida: str
    recipe_name: Optional[str]


# --- Achievements ---

class AchievementCreateRequest(ApiModel):
    meal_plan_id: str
    star_type: StarType


class AchievementResponse(ApiModel):
    id: str
    meal_plan_id: str
    user_id: str
    star_type: str
    created_at: datetime


class AwardStarResponse(ApiModel):
    message: str
    achievement: AchievementResponse


class WeeklyStars(ApiModel):
    tried: int = 0
    veggie: int = 0
    feedback: int = 0


class UserStatsResponse(ApiModel):
    weekly_stars: WeeklyStars
    total_stars: int
    streak_days: int
