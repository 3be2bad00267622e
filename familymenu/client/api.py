"""HTTP client for the Family Menu API with a query cache.

Reads go through :class:`QueryCache`; every mutation names the cached
queries it makes stale and invalidates them once the server accepts it.
Other clients' changes are only seen after a stale time expires or after
an explicit ``refresh``.
"""

import logging
from datetime import date
from typing import Any, Optional

import httpx

from familymenu.client.cache import QueryCache
from familymenu.client.errors import raise_for_response

logger = logging.getLogger(__name__)

# Stale times (seconds) per query family
STALE_ACHIEVEMENTS_MEAL = 2 * 60
STALE_ACHIEVEMENTS_USER = 5 * 60
STALE_ACHIEVEMENTS_STATS = 10 * 60


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def _params(**kwargs) -> dict:
    return {k: v for k, v in kwargs.items() if v is not None}


class FamilyMenuClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        http: Optional[httpx.Client] = None,
        cache: Optional[QueryCache] = None,
        timeout: float = 10.0,
    ):
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.cache = cache or QueryCache()
        self.token: Optional[str] = None

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # --- Transport ---

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, path, headers=headers, **kwargs)
        raise_for_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _query(self, key: tuple, path: str, params: Optional[dict] = None, stale_time: Optional[float] = None) -> Any:
        return self.cache.fetch(key, lambda: self._request("GET", path, params=params), stale_time)

    def refresh(self, *prefix) -> None:
        """Force the next read of the given queries (all, if no prefix) to refetch."""
        if prefix:
            self.cache.invalidate(*prefix)
        else:
            self.cache.clear()

    # --- Auth ---

    def register(self, email: str, password: str, name: str, role: str = "creator") -> dict:
        data = self._request("POST", "/api/auth/register", json={
            "email": email,
            "password": password,
            "confirmPassword": password,
            "name": name,
            "role": role,
        })
        self.token = data["accessToken"]
        self.cache.clear()
        return data["user"]

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["accessToken"]
        self.cache.clear()
        return data["user"]

    def logout(self) -> None:
        try:
            self._request("POST", "/api/auth/logout")
        finally:
            self.token = None
            self.cache.clear()

    def profile(self) -> dict:
        return self._query(("profile",), "/api/auth/profile")

    def update_profile(self, name: str, email: str, **extra) -> dict:
        data = self._request("PUT", "/api/auth/profile", json={"name": name, "email": email, **extra})
        self.cache.invalidate("profile")
        self.cache.invalidate("family")
        return data

    def change_password(self, current_password: str, new_password: str) -> None:
        data = self._request("POST", "/api/auth/change-password", json={
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmPassword": new_password,
        })
        self.token = data["accessToken"]
        self.cache.invalidate("profile")

    def update_avatar(self, avatar: str) -> Optional[str]:
        data = self._request("POST", "/api/auth/avatar", json={"avatar": avatar})
        self.cache.invalidate("profile")
        self.cache.invalidate("family")
        return data["avatar"]

    def delete_account(self, password: str) -> None:
        self._request("DELETE", "/api/auth/account", json={"password": password})
        self.token = None
        self.cache.clear()

    # --- Family ---

    def family(self) -> dict:
        return self._query(("family",), "/api/family")

    def members(self) -> list[dict]:
        return self._query(("family", "members"), "/api/family/members")

    def create_family(self, nombre: str) -> dict:
        data = self._request("POST", "/api/family", json={"nombre": nombre})
        # Family scope changes what every query returns
        self.cache.clear()
        return data

    def join_family(self, codigo: str) -> dict:
        data = self._request("POST", "/api/family/join", json={"codigo": codigo})
        self.cache.clear()
        return data

    def leave_family(self) -> None:
        self._request("POST", "/api/family/leave")
        self.cache.clear()

    def remove_member(self, user_id: str) -> None:
        self._request("DELETE", f"/api/family/members/{user_id}")
        self.cache.invalidate("family")

    def regenerate_code(self) -> str:
        data = self._request("POST", "/api/family/regenerate-code")
        self.cache.invalidate("family")
        self.cache.invalidate("profile")
        return data["codigoInvitacion"]

    # --- Recipes ---

    def recipes(self, search: Optional[str] = None, category: Optional[str] = None, favorites: bool = False) -> list[dict]:
        params = _params(search=search, category=category, favorites="true" if favorites else None)
        return self._query(("recipes", search, category, favorites), "/api/recipes", params)

    def recipe(self, recipe_id: str) -> dict:
        return self._query(("recipes", "detail", recipe_id), f"/api/recipes/{recipe_id}")

    def create_recipe(self, **fields) -> dict:
        data = self._request("POST", "/api/recipes", json=fields)
        self.cache.invalidate("recipes")
        return data

    def update_recipe(self, recipe_id: str, **fields) -> dict:
        data = self._request("PUT", f"/api/recipes/{recipe_id}", json=fields)
        self.cache.invalidate("recipes")
        self.cache.invalidate("meal-plans")
        return data

    def delete_recipe(self, recipe_id: str) -> None:
        self._request("DELETE", f"/api/recipes/{recipe_id}")
        self.cache.invalidate("recipes")

    def rate_recipe(self, recipe_id: str, rating: int, comment: Optional[str] = None) -> dict:
        data = self._request("POST", f"/api/recipes/{recipe_id}/rating", json=_params(rating=rating, comment=comment))
        self.cache.invalidate("recipes")
        self.cache.invalidate("ratings")
        return data

    def my_ratings(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> list[dict]:
        params = _params(startDate=_iso(start_date), endDate=_iso(end_date))
        return self._query(("ratings", _iso(start_date), _iso(end_date)), "/api/recipes/my-ratings", params)

    # --- Meal plans ---

    def week(self, start_date: date) -> list[dict]:
        return self._query(
            ("meal-plans", "week", start_date.isoformat()),
            "/api/meal-plans/week",
            {"startDate": start_date.isoformat()},
        )

    def meal_plans(self, start_date: Optional[date] = None, day: Optional[date] = None) -> list[dict]:
        params = _params(startDate=_iso(start_date), date=_iso(day))
        return self._query(("meal-plans", "list", _iso(start_date), _iso(day)), "/api/meal-plans", params)

    def plan_meal(self, fecha: date, receta_id: str, tipo_comida: str = "almuerzo", notas: Optional[str] = None) -> dict:
        data = self._request("POST", "/api/meal-plans", json=_params(
            fecha=fecha.isoformat(),
            recetaId=receta_id,
            tipoComida=tipo_comida,
            notas=notas,
        ))
        self.cache.invalidate("meal-plans")
        return data

    def update_meal_plan(self, plan_id: str, **fields) -> dict:
        data = self._request("PUT", f"/api/meal-plans/{plan_id}", json=fields)
        self.cache.invalidate("meal-plans")
        return data

    def delete_meal_plan(self, plan_id: str) -> None:
        self._request("DELETE", f"/api/meal-plans/{plan_id}")
        self.cache.invalidate("meal-plans")
        self.cache.invalidate("comments")
        self.cache.invalidate("achievements")

    # --- Comments ---

    def comments(self, plan_id: str) -> list[dict]:
        return self._query(("comments", plan_id), f"/api/meal-plans/{plan_id}/comments")

    def family_comments(self, limit: int = 20) -> list[dict]:
        return self._query(("comments", "family", limit), "/api/comments/family", {"limit": limit})

    def add_comment(self, plan_id: str, comment: str, emoji: Optional[str] = None) -> dict:
        data = self._request("POST", f"/api/meal-plans/{plan_id}/comments", json=_params(comment=comment, emoji=emoji))
        self.cache.invalidate("comments")
        self.cache.invalidate("meal-plans")
        return data

    def delete_comment(self, plan_id: str, comment_id: str) -> None:
        self._request("DELETE", f"/api/meal-plans/{plan_id}/comments/{comment_id}")
        self.cache.invalidate("comments")
        self.cache.invalidate("meal-plans")

    # --- Achievements ---

    def award_star(self, meal_plan_id: str, star_type: str) -> dict:
        data = self._request("POST", "/api/achievements", json={
            "mealPlanId": meal_plan_id,
            "starType": star_type,
        })
        self.cache.invalidate("achievements")
        self.cache.invalidate("meal-plans")
        logger.debug("Star %s awarded on %s", star_type, meal_plan_id)
        return data

    def meal_achievements(self, meal_plan_id: str) -> list[dict]:
        return self._query(
            ("achievements", "meal", meal_plan_id),
            f"/api/achievements/meal/{meal_plan_id}",
            stale_time=STALE_ACHIEVEMENTS_MEAL,
        )

    def user_achievements(self, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None) -> list[dict]:
        params = _params(startDate=_iso(start_date), endDate=_iso(end_date))
        return self._query(
            ("achievements", "user", user_id, _iso(start_date), _iso(end_date)),
            f"/api/achievements/user/{user_id}",
            params,
            stale_time=STALE_ACHIEVEMENTS_USER,
        )

    def user_stats(self, user_id: str, start_date: Optional[date] = None) -> dict:
        return self._query(
            ("achievements", "stats", user_id, _iso(start_date)),
            f"/api/achievements/stats/{user_id}",
            _params(startDate=_iso(start_date)),
            stale_time=STALE_ACHIEVEMENTS_STATS,
        )
