"""Meal plan, comment and achievement models."""

import secrets
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class MealPlan(SQLModel, table=True):
    __tablename__ = "meal_plans"
    __table_args__ = (UniqueConstraint("family_id", "fecha", "tipo_comida"),)

    id: str = Field(default_factory=lambda: f"mpl_{secrets.token_hex(4)}", primary_key=True)
    fecha: date = Field(index=True)
    receta_id: str = Field(foreign_key="recipes.id", index=True)
    tipo_comida: str = Field(default="almuerzo")  # 'almuerzo' | 'cena'
    notas: Optional[str] = None
    family_id: str = Field(foreign_key="families.id", index=True)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MealComment(SQLModel, table=True):
    __tablename__ = "meal_comments"

    id: str = Field(default_factory=lambda: f"cmt_{secrets.token_hex(4)}", primary_key=True)
    meal_plan_id: str = Field(foreign_key="meal_plans.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    comment: str
    emoji: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MealAchievement(SQLModel, table=True):
    __tablename__ = "meal_achievements"
    __table_args__ = (UniqueConstraint("meal_plan_id", "user_id", "star_type"),)

    id: str = Field(default_factory=lambda: f"ach_{secrets.token_hex(4)}", primary_key=True)
    meal_plan_id: str = Field(foreign_key="meal_plans.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    family_id: str = Field(foreign_key="families.id", index=True)
    star_type: str  # 'tried_it' | 'ate_veggie' | 'left_feedback'
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
