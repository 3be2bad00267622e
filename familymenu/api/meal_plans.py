"""Meal plan and meal comment API endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from familymenu.api.deps import get_current_user, require_creator, require_family
from familymenu.database import get_session
from familymenu.models.meal_plan import MealComment
from familymenu.models.user import FamilyMember, User
from familymenu.schemas.base import MessageResponse
from familymenu.schemas.meal_plan import (
    CommentCreateRequest,
    CommentResponse,
    MealPlanCreateRequest,
    MealPlanDetailResponse,
    MealPlanResponse,
    MealPlanUpdateRequest,
)
from familymenu.schemas.recipe import RecipeResponse
from familymenu.services import meal_plan_service
from familymenu.services.meal_plan_service import MealPlanDetail

router = APIRouter(prefix="/meal-plans", tags=["meal-plans"])


def _detail_response(detail: MealPlanDetail) -> MealPlanDetailResponse:
    plan = detail.plan
    return MealPlanDetailResponse(
        id=plan.id,
        fecha=plan.fecha,
        receta_id=plan.receta_id,
        tipo_comida=plan.tipo_comida,
        notas=plan.notas,
        family_id=plan.family_id,
        created_by=plan.created_by,
        created_at=plan.created_at,
        receta=RecipeResponse.model_validate(detail.recipe) if detail.recipe else None,
        comment_count=detail.comment_count,
        star_count=detail.star_count,
    )


def comment_response(comment: MealComment, author: User) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        meal_plan_id=comment.meal_plan_id,
        user_id=comment.user_id,
        user_name=author.name,
        comment=comment.comment,
        emoji=comment.emoji,
        created_at=comment.created_at,
    )


@router.get("", response_model=list[MealPlanResponse])
def list_meal_plans(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    day: Optional[date] = Query(default=None, alias="date"),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Family meal plans for a week (default: this week) or a single day."""
    if day and not start_date:
        return meal_plan_service.list_for_range(membership.family_id, day, day, session)
    start = start_date or meal_plan_service.current_week_start()
    return meal_plan_service.list_for_week(membership.family_id, start, session)


@router.get("/week", response_model=list[MealPlanDetailResponse])
def week(
    start_date: date = Query(alias="startDate"),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Seven days of meal plans with recipe, comment and star counts."""
    details = meal_plan_service.week_details(membership.family_id, start_date, session)
    return [_detail_response(d) for d in details]


@router.get("/{plan_id}", response_model=MealPlanResponse)
def get_meal_plan(
    plan_id: str,
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    return meal_plan_service.get_meal_plan(plan_id, membership.family_id, session)


@router.post("", response_model=MealPlanResponse, status_code=status.HTTP_201_CREATED)
def create_meal_plan(
    request: MealPlanCreateRequest,
    user: User = Depends(require_creator),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Schedule a recipe on a day and meal slot."""
    return meal_plan_service.create_meal_plan(
        user,
        membership.family_id,
        fecha=request.fecha,
        receta_id=request.receta_id,
        tipo_comida=request.tipo_comida,
        notas=request.notas,
        session=session,
    )


@router.put("/{plan_id}", response_model=MealPlanResponse)
def update_meal_plan(
    plan_id: str,
    request: MealPlanUpdateRequest,
    user: User = Depends(require_creator),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    return meal_plan_service.update_meal_plan(
        plan_id,
        user,
        membership.family_id,
        request.model_dump(exclude_unset=True),
        session,
    )


@router.delete("/{plan_id}", response_model=MessageResponse)
def delete_meal_plan(
    plan_id: str,
    user: User = Depends(require_creator),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    meal_plan_service.delete_meal_plan(plan_id, membership.family_id, session)
    return MessageResponse(message="Plan de comida eliminado exitosamente")


# --- Comments ---

@router.get("/{plan_id}/comments", response_model=list[CommentResponse])
def list_comments(
    plan_id: str,
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    rows = meal_plan_service.list_comments(plan_id, membership.family_id, session)
    return [comment_response(c, author) for c, author in rows]


@router.post("/{plan_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(
    plan_id: str,
    request: CommentCreateRequest,
    user: User = Depends(get_current_user),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    comment = meal_plan_service.add_comment(
        plan_id, user, membership.family_id, request.comment, request.emoji, session
    )
    return comment_response(comment, user)


@router.delete("/{plan_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    plan_id: str,
    comment_id: str,
    user: User = Depends(get_current_user),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    meal_plan_service.delete_comment(plan_id, comment_id, user, membership, session)
