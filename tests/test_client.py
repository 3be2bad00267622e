"""Client data layer: query cache and the API client against the app."""

from datetime import date

import pytest

from familymenu.client import Conflict, FamilyMenuClient, NotFound, QueryCache, ValidationFailed

from conftest import PASSWORD, unique_email


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# --- QueryCache ---

def test_cache_respects_stale_time():
    clock = FakeClock()
    cache = QueryCache(default_stale_time=30, clock=clock)
    cache.set(("recipes",), ["a"])
    assert cache.get(("recipes",)) == ["a"]

    clock.now += 29
    assert ("recipes",) in cache
    clock.now += 2
    assert cache.get(("recipes",)) is None


def test_cache_per_key_stale_time():
    clock = FakeClock()
    cache = QueryCache(default_stale_time=30, clock=clock)
    cache.set(("achievements", "stats", "u1"), {"totalStars": 1}, stale_time=600)
    clock.now += 300
    assert cache.get(("achievements", "stats", "u1")) == {"totalStars": 1}


def test_cache_invalidate_by_prefix():
    cache = QueryCache()
    cache.set(("achievements", "meal", "p1"), [])
    cache.set(("achievements", "user", "u1"), [])
    cache.set(("meal-plans", "week", "2024-05-06"), [])

    assert cache.invalidate("achievements", "meal") == 1
    assert ("achievements", "user", "u1") in cache
    assert cache.invalidate("achievements") == 1
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_null_results_are_cached():
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return None

    assert cache.fetch(("profile",), loader) is None
    assert cache.fetch(("profile",), loader) is None
    assert len(calls) == 1
    assert ("profile",) in cache
    assert cache.get(("missing",), "default") == "default"


def test_fetch_calls_loader_only_on_miss():
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return []

    assert cache.fetch(("recipes",), loader) == []
    assert cache.fetch(("recipes",), loader) == []
    assert len(calls) == 1

    cache.invalidate("recipes")
    cache.fetch(("recipes",), loader)
    assert len(calls) == 2


# --- FamilyMenuClient ---

@pytest.fixture
def api(client):
    c = FamilyMenuClient(http=client)
    c.register(unique_email("cliente"), PASSWORD, "Cliente")
    return c


def test_mutations_invalidate_queries(api):
    api.create_family("Cliente")
    assert api.recipes() == []

    recipe = api.create_recipe(nombre="Sopa", categoria="Sopa")
    assert [r["id"] for r in api.recipes()] == [recipe["id"]]

    monday = date(2024, 5, 6)
    assert api.week(monday) == []
    plan = api.plan_meal(monday, recipe["id"], "cena")
    week = api.week(monday)
    assert [p["id"] for p in week] == [plan["id"]]
    assert week[0]["commentCount"] == 0

    api.add_comment(plan["id"], "Rica", "🍲")
    assert api.week(monday)[0]["commentCount"] == 1
    assert [c["comment"] for c in api.comments(plan["id"])] == ["Rica"]

    api.award_star(plan["id"], "left_feedback")
    assert len(api.meal_achievements(plan["id"])) == 1
    assert api.week(monday)[0]["starCount"] == 1


def test_other_clients_changes_need_refresh(client, api):
    family = api.create_family("Compartida")
    other = FamilyMenuClient(http=client)
    other.register(unique_email("otro"), PASSWORD, "Otro")
    other.join_family(family["codigoInvitacion"].replace("-", "").lower())

    assert api.recipes() == []
    other.create_recipe(nombre="Tarta", categoria="Postre")
    # Cached result is still served until it is refreshed or goes stale
    assert api.recipes() == []
    api.refresh("recipes")
    assert [r["nombre"] for r in api.recipes()] == ["Tarta"]

    assert len(api.members()) == 2


def test_family_lifecycle_through_client(client, api):
    family = api.create_family("Ciclo")
    assert api.family()["codigoInvitacion"] == family["codigoInvitacion"]

    new_code = api.regenerate_code()
    assert api.family()["codigoInvitacion"] == new_code

    joiner = FamilyMenuClient(http=client)
    joiner.register(unique_email("joiner"), PASSWORD, "Joiner")
    with pytest.raises(NotFound):
        joiner.join_family(family["codigoInvitacion"])
    joiner.join_family(new_code)

    assert len(api.members()) == 2
    api.remove_member(joiner.profile()["id"])
    assert [m["userId"] for m in api.members()] == [api.profile()["id"]]

    with pytest.raises(NotFound):
        joiner.leave_family()


def test_errors_carry_server_details(api):
    with pytest.raises(ValidationFailed) as exc:
        api.create_family("x")
    assert exc.value.status_code == 400
    assert exc.value.errors[0]["field"] == "nombre"

    api.create_family("Errores")
    with pytest.raises(Conflict) as exc:
        api.create_family("Otra vez")
    assert exc.value.error == "ALREADY_IN_FAMILY"


def test_logout_clears_token_and_cache(api):
    api.profile()
    assert ("profile",) in api.cache
    api.logout()
    assert api.token is None
    assert len(api.cache) == 0
