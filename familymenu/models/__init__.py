"""Family Menu Database Models."""

from familymenu.models.user import Family, FamilyMember, User
from familymenu.models.recipe import Recipe, RecipeRating
from familymenu.models.meal_plan import MealAchievement, MealComment, MealPlan

__all__ = [
    "User",
    "Family",
    "FamilyMember",
    "Recipe",
    "RecipeRating",
    "MealPlan",
    "MealComment",
    "MealAchievement",
]
