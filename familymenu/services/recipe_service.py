"""Recipe and rating business logic."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from familymenu.models.meal_plan import MealPlan
from familymenu.models.recipe import Recipe, RecipeRating
from familymenu.models.user import User
from familymenu.services.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

NON_NULLABLE = {"nombre", "categoria", "calificacion_ninos", "es_favorita"}


def _visible_to(user: User, family_id: Optional[str]):
    """Family recipes, plus the user's own recipes that belong to no family."""
    own_loose = (Recipe.created_by == user.id) & (col(Recipe.family_id).is_(None))
    if family_id:
        return or_(Recipe.family_id == family_id, own_loose)
    return own_loose


def _matches(recipe: Recipe, term: str) -> bool:
    return (
        term in recipe.nombre.lower()
        or term in (recipe.descripcion or "").lower()
        or term in recipe.categoria.lower()
        or any(term in ing.lower() for ing in recipe.ingredientes or [])
    )


def list_recipes(
    user: User,
    family_id: Optional[str],
    session: Session,
    search: Optional[str] = None,
    category: Optional[str] = None,
    favorites: bool = False,
) -> list[Recipe]:
    query = select(Recipe).where(_visible_to(user, family_id))
    if favorites:
        query = query.where(Recipe.es_favorita == True)  # noqa: E712
    if category and category != "all":
        query = query.where(Recipe.categoria == category)
    recipes = list(session.exec(query.order_by(col(Recipe.nombre).asc())).all())

    # Ingredients live in a JSON column, so text search runs in Python
    if search and search.strip():
        term = search.strip().lower()
        recipes = [r for r in recipes if _matches(r, term)]
    return recipes


def get_recipe(recipe_id: str, user: User, family_id: Optional[str], session: Session) -> Recipe:
    recipe = session.exec(
        select(Recipe).where(Recipe.id == recipe_id, _visible_to(user, family_id))
    ).first()
    if not recipe:
        raise NotFound("Receta no encontrada", "RECIPE_NOT_FOUND")
    return recipe


def create_recipe(user: User, family_id: Optional[str], data: dict, session: Session) -> Recipe:
    recipe = Recipe(
        **{k: v for k, v in data.items() if v is not None},
        created_by=user.id,
        family_id=family_id,
    )
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    logger.info("User %s created recipe %s", user.id, recipe.id)
    return recipe


def update_recipe(
    recipe_id: str, user: User, family_id: Optional[str], changes: dict, session: Session
) -> Recipe:
    recipe = get_recipe(recipe_id, user, family_id, session)
    for key, value in changes.items():
        if value is None and key in NON_NULLABLE:
            continue
        if key == "ingredientes" and value is None:
            value = []
        setattr(recipe, key, value)
    recipe.updated_at = datetime.now(timezone.utc)
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    return recipe


def is_recipe_scheduled(recipe_id: str, session: Session) -> bool:
    return session.exec(
        select(MealPlan.id).where(MealPlan.receta_id == recipe_id)
    ).first() is not None


def delete_recipe(recipe_id: str, user: User, family_id: Optional[str], session: Session) -> None:
    recipe = get_recipe(recipe_id, user, family_id, session)
    if is_recipe_scheduled(recipe.id, session):
        raise Conflict(
            "No se puede eliminar la receta porque está asignada a uno o más días de la semana. "
            "Primero elimine la receta de la planificación semanal.",
            "RECIPE_IN_USE",
        )

    ratings = session.exec(select(RecipeRating).where(RecipeRating.recipe_id == recipe.id)).all()
    for rating in ratings:
        session.delete(rating)
    session.flush()
    session.delete(recipe)
    session.commit()
    logger.info("User %s deleted recipe %s", user.id, recipe_id)


# --- Ratings ---

def rate_recipe(
    recipe_id: str,
    user: User,
    family_id: str,
    rating: int,
    comment: Optional[str],
    session: Session,
) -> RecipeRating:
    """Create or replace the user's rating of a recipe."""
    recipe = get_recipe(recipe_id, user, family_id, session)

    existing = session.exec(
        select(RecipeRating).where(
            RecipeRating.recipe_id == recipe.id,
            RecipeRating.user_id == user.id,
        )
    ).first()

    if existing:
        existing.rating = rating
        existing.comment = comment
        existing.updated_at = datetime.now(timezone.utc)
        session.add(existing)
        session.commit()
        session.refresh(existing)
        return existing

    entry = RecipeRating(
        recipe_id=recipe.id,
        user_id=user.id,
        family_id=family_id,
        rating=rating,
        comment=comment,
    )
    session.add(entry)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Ya calificaste esta receta", "RATING_EXISTS")
    session.refresh(entry)
    return entry


def list_user_ratings(
    user: User,
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[tuple[RecipeRating, Recipe]]:
    rows = session.exec(
        select(RecipeRating, Recipe)
        .join(Recipe, Recipe.id == RecipeRating.recipe_id)
        .where(RecipeRating.user_id == user.id)
        .order_by(col(RecipeRating.updated_at).desc())
    ).all()

    results = []
    for rating, recipe in rows:
        day = rating.updated_at.date()
        if start_date and day < start_date:
            continue
        if end_date and day > end_date:
            continue
        results.append((rating, recipe))
    return results
