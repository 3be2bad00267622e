"""Recipe and rating API endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from familymenu.api.deps import (
    get_current_user,
    get_optional_membership,
    require_creator,
    require_family,
)
from familymenu.database import get_session
from familymenu.models.user import FamilyMember, User
from familymenu.schemas.base import MessageResponse
from familymenu.schemas.recipe import (
    MyRatingResponse,
    RatingRequest,
    RatingResponse,
    RecipeCreateRequest,
    RecipeResponse,
    RecipeUpdateRequest,
)
from familymenu.services import recipe_service

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _family_id(membership: Optional[FamilyMember]) -> Optional[str]:
    return membership.family_id if membership else None


@router.get("", response_model=list[RecipeResponse])
def list_recipes(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    favorites: bool = Query(default=False),
    user: User = Depends(get_current_user),
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
    session: Session = Depends(get_session),
):
    """List recipes visible to the caller, optionally filtered."""
    return recipe_service.list_recipes(
        user,
        _family_id(membership),
        session,
        search=search,
        category=category,
        favorites=favorites,
    )


@router.get("/my-ratings", response_model=list[MyRatingResponse])
def my_ratings(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    rows = recipe_service.list_user_ratings(user, session, start_date, end_date)
    return [
        MyRatingResponse(
            id=rating.id,
            recipe_id=rating.recipe_id,
            user_id=rating.user_id,
            rating=rating.rating,
            comment=rating.comment,
            created_at=rating.created_at,
            updated_at=rating.updated_at,
            recipe_name=recipe.nombre,
        )
        for rating, recipe in rows
    ]


@router.get("/{recipe_id}", response_model=RecipeResponse)
def get_recipe(
    recipe_id: str,
    user: User = Depends(get_current_user),
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
    session: Session = Depends(get_session),
):
    return recipe_service.get_recipe(recipe_id, user, _family_id(membership), session)


@router.post("", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
def create_recipe(
    request: RecipeCreateRequest,
    user: User = Depends(require_creator),
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
    session: Session = Depends(get_session),
):
    """Create a recipe. It is shared with the caller's family, if any."""
    return recipe_service.create_recipe(
        user, _family_id(membership), request.model_dump(), session
    )


@router.put("/{recipe_id}", response_model=RecipeResponse)
def update_recipe(
    recipe_id: str,
    request: RecipeUpdateRequest,
    user: User = Depends(require_creator),
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
    session: Session = Depends(get_session),
):
    return recipe_service.update_recipe(
        recipe_id,
        user,
        _family_id(membership),
        request.model_dump(exclude_unset=True),
        session,
    )


@router.delete("/{recipe_id}", response_model=MessageResponse)
def delete_recipe(
    recipe_id: str,
    user: User = Depends(require_creator),
    membership: Optional[FamilyMember] = Depends(get_optional_membership),
    session: Session = Depends(get_session),
):
    """Delete a recipe that is not scheduled in any meal plan."""
    recipe_service.delete_recipe(recipe_id, user, _family_id(membership), session)
    return MessageResponse(message="Receta eliminada exitosamente")


@router.post("/{recipe_id}/rating", response_model=RatingResponse)
def rate_recipe(
    recipe_id: str,
    request: RatingRequest,
    user: User = Depends(get_current_user),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Rate a recipe (1-5). Rating again replaces the previous rating."""
    return recipe_service.rate_recipe(
        recipe_id, user, membership.family_id, request.rating, request.comment, session
    )
