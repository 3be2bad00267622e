"""Meal plan and comment business logic.

Everything here is scoped to a single family: callers pass the family id
of the requesting user and never see rows of another family.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from familymenu.models.meal_plan import MealAchievement, MealComment, MealPlan
from familymenu.models.recipe import Recipe
from familymenu.models.user import FamilyMember, User
from familymenu.services import recipe_service
from familymenu.services.errors import Conflict, Forbidden, NotFound

logger = logging.getLogger(__name__)


@dataclass
class MealPlanDetail:
    plan: MealPlan
    recipe: Optional[Recipe]
    comment_count: int
    star_count: int


def today_utc() -> date:
    # Timestamps are stored in UTC, so "today" is the UTC date everywhere
    return datetime.now(timezone.utc).date()


def current_week_start(today: Optional[date] = None) -> date:
    """Monday of the week containing ``today``."""
    today = today or today_utc()
    return today - timedelta(days=today.weekday())


def get_meal_plan(plan_id: str, family_id: str, session: Session) -> MealPlan:
    plan = session.get(MealPlan, plan_id)
    if not plan or plan.family_id != family_id:
        raise NotFound("Plan de comida no encontrado", "MEAL_PLAN_NOT_FOUND")
    return plan


def list_for_range(family_id: str, start: date, end: date, session: Session) -> list[MealPlan]:
    return list(session.exec(
        select(MealPlan).where(
            MealPlan.family_id == family_id,
            MealPlan.fecha >= start,
            MealPlan.fecha <= end,
        ).order_by(col(MealPlan.fecha).asc(), col(MealPlan.tipo_comida).asc())
    ).all())


def list_for_week(family_id: str, start: date, session: Session) -> list[MealPlan]:
    return list_for_range(family_id, start, start + timedelta(days=6), session)


def week_details(family_id: str, start: date, session: Session) -> list[MealPlanDetail]:
    plans = list_for_week(family_id, start, session)
    details = []
    for plan in plans:
        comment_count = session.exec(
            select(func.count()).select_from(MealComment).where(MealComment.meal_plan_id == plan.id)
        ).one()
        star_count = session.exec(
            select(func.count()).select_from(MealAchievement).where(MealAchievement.meal_plan_id == plan.id)
        ).one()
        details.append(MealPlanDetail(
            plan=plan,
            recipe=session.get(Recipe, plan.receta_id),
            comment_count=comment_count,
            star_count=star_count,
        ))
    return details


def _family_recipe(recipe_id: str, user: User, family_id: str, session: Session) -> Recipe:
    """Only recipes that belong to the family can go on its menu."""
    recipe = recipe_service.get_recipe(recipe_id, user, family_id, session)
    if recipe.family_id != family_id:
        raise Forbidden(
            "La receta no pertenece a tu familia. Créala de nuevo dentro de la familia para planificarla.",
            "RECIPE_NOT_IN_FAMILY",
        )
    return recipe


def _commit_slot(plan: MealPlan, session: Session) -> MealPlan:
    session.add(plan)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Ya hay una comida planificada para ese día y horario", "MEAL_SLOT_TAKEN")
    session.refresh(plan)
    return plan


def create_meal_plan(
    user: User,
    family_id: str,
    fecha: date,
    receta_id: str,
    tipo_comida: str,
    notas: Optional[str],
    session: Session,
) -> MealPlan:
    _family_recipe(receta_id, user, family_id, session)

    plan = MealPlan(
        fecha=fecha,
        receta_id=receta_id,
        tipo_comida=tipo_comida,
        notas=notas,
        family_id=family_id,
        created_by=user.id,
    )
    plan = _commit_slot(plan, session)
    logger.info("User %s planned recipe %s on %s (%s)", user.id, receta_id, fecha, tipo_comida)
    return plan


def update_meal_plan(
    plan_id: str, user: User, family_id: str, changes: dict, session: Session
) -> MealPlan:
    plan = get_meal_plan(plan_id, family_id, session)
    if changes.get("receta_id"):
        _family_recipe(changes["receta_id"], user, family_id, session)
    for key, value in changes.items():
        if value is None and key != "notas":
            continue
        setattr(plan, key, value)
    return _commit_slot(plan, session)


def delete_meal_plan(plan_id: str, family_id: str, session: Session) -> None:
    plan = get_meal_plan(plan_id, family_id, session)
    for model in (MealComment, MealAchievement):
        rows = session.exec(select(model).where(model.meal_plan_id == plan.id)).all()
        for row in rows:
            session.delete(row)
    session.flush()
    session.delete(plan)
    session.commit()
    logger.info("Meal plan %s deleted", plan_id)


# --- Comments ---

def list_comments(plan_id: str, family_id: str, session: Session) -> list[tuple[MealComment, User]]:
    get_meal_plan(plan_id, family_id, session)
    return list(session.exec(
        select(MealComment, User)
        .join(User, User.id == MealComment.user_id)
        .where(MealComment.meal_plan_id == plan_id)
        .order_by(col(MealComment.created_at).asc())
    ).all())


def add_comment(
    plan_id: str,
    user: User,
    family_id: str,
    comment: str,
    emoji: Optional[str],
    session: Session,
) -> MealComment:
    plan = get_meal_plan(plan_id, family_id, session)
    entry = MealComment(
        meal_plan_id=plan.id,
        user_id=user.id,
        family_id=family_id,
        comment=comment,
        emoji=emoji,
    )
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def delete_comment(
    plan_id: str,
    comment_id: str,
    user: User,
    membership: FamilyMember,
    session: Session,
) -> None:
    """Authors may delete their own comments; the family admin may delete any."""
    get_meal_plan(plan_id, membership.family_id, session)
    entry = session.get(MealComment, comment_id)
    if not entry or entry.meal_plan_id != plan_id:
        raise NotFound("Comentario no encontrado", "COMMENT_NOT_FOUND")
    if entry.user_id != user.id and membership.role != "admin":
        raise Forbidden("Solo puedes eliminar tus propios comentarios", "NOT_COMMENT_AUTHOR")
    session.delete(entry)
    session.commit()


def family_comments(
    family_id: str, session: Session, limit: int = 20
) -> list[tuple[MealComment, User, MealPlan, Optional[Recipe]]]:
    rows = session.exec(
        select(MealComment, User, MealPlan)
        .join(User, User.id == MealComment.user_id)
        .join(MealPlan, MealPlan.id == MealComment.meal_plan_id)
        .where(MealComment.family_id == family_id)
        .order_by(col(MealComment.created_at).desc())
        .limit(limit)
    ).all()
    return [
        (comment, author, plan, session.get(Recipe, plan.receta_id))
        for comment, author, plan in rows
    ]
