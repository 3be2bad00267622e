"""Family membership: API flows and service-level invariants."""

from datetime import date

import pytest
from sqlmodel import select

from familymenu.models.meal_plan import MealPlan
from familymenu.models.recipe import Recipe
from familymenu.models.user import Family, FamilyMember
from familymenu.services import auth_service, family_service
from familymenu.services.errors import Conflict, Forbidden, NotFound, ValidationFailed

from conftest import PASSWORD, unique_email


def _dashless_lower(code: str) -> str:
    return code.replace("-", "").lower()


# --- HTTP flows ---

def test_create_family_makes_caller_admin(client, family_of):
    headers, user, family = family_of("Smiths")
    assert family["nombre"] == "Smiths"
    assert family["role"] == "admin"
    assert len(family["members"]) == 1
    assert family["members"][0]["userId"] == user["id"]
    assert family["members"][0]["role"] == "admin"

    r = client.get("/api/family", headers=headers)
    assert r.status_code == 200
    assert r.json()["codigoInvitacion"] == family["codigoInvitacion"]


def test_smiths_scenario(client, register, family_of):
    a_headers, a_user, family = family_of("Smiths")
    b_headers, b_user = register("Bea")

    r = client.post("/api/family/join", json={"codigo": _dashless_lower(family["codigoInvitacion"])},
                    headers=b_headers)
    assert r.status_code == 200, f"join failed: {r.status_code} {r.text}"
    assert r.json()["id"] == family["id"]
    assert r.json()["role"] == "member"

    r = client.get("/api/family/members", headers=a_headers)
    assert {m["userId"] for m in r.json()} == {a_user["id"], b_user["id"]}

    r = client.delete(f"/api/family/members/{b_user['id']}", headers=a_headers)
    assert r.status_code == 204, f"remove failed: {r.status_code} {r.text}"

    r = client.post("/api/family/leave", headers=b_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "NO_FAMILY"


def test_member_cannot_create_or_join_another(client, register, family_of):
    _, _, first = family_of("Uno")
    _, _, second = family_of("Dos")
    headers, _ = register("Carla")

    r = client.post("/api/family/join", json={"codigo": first["codigoInvitacion"]}, headers=headers)
    assert r.status_code == 200

    r = client.post("/api/family", json={"nombre": "Otra"}, headers=headers)
    assert r.status_code == 409
    assert r.json()["error"] == "ALREADY_IN_FAMILY"

    r = client.post("/api/family/join", json={"codigo": second["codigoInvitacion"]}, headers=headers)
    assert r.status_code == 409


def test_join_unknown_code_is_not_found(client, register):
    headers, _ = register("Dani")
    r = client.post("/api/family/join", json={"codigo": "ZZZ-000"}, headers=headers)
    # A random 6-char code could exist in the test db, but almost surely not this one
    assert r.status_code == 404
    assert r.json()["error"] == "INVALID_INVITATION_CODE"


def test_join_malformed_code_is_validation_error(client, register):
    headers, _ = register("Eva")
    r = client.post("/api/family/join", json={"codigo": "AB-C123"}, headers=headers)
    assert r.status_code == 400
    body = r.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["errors"][0]["field"] == "codigo"


def test_last_member_leaving_deletes_family(client, register, family_of):
    headers, _, family = family_of("Solos")
    r = client.post("/api/family/leave", headers=headers)
    assert r.status_code == 200
    assert "eliminada" in r.json()["message"]

    other, _ = register("Fede")
    r = client.post("/api/family/join", json={"codigo": family["codigoInvitacion"]}, headers=other)
    assert r.status_code == 404


def test_remove_self_always_forbidden(client, register, family_of):
    a_headers, a_user, family = family_of()
    r = client.delete(f"/api/family/members/{a_user['id']}", headers=a_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "CANNOT_REMOVE_SELF"

    b_headers, b_user = register("Gabi")
    client.post("/api/family/join", json={"codigo": family["codigoInvitacion"]}, headers=b_headers)
    r = client.delete(f"/api/family/members/{b_user['id']}", headers=b_headers)
    assert r.status_code == 403

    loner, loner_user = register("Hugo")
    r = client.delete(f"/api/family/members/{loner_user['id']}", headers=loner)
    assert r.status_code == 403


def test_member_cannot_remove_others(client, register, family_of):
    _, a_user, family = family_of()
    b_headers, _ = register("Ines")
    client.post("/api/family/join", json={"codigo": family["codigoInvitacion"]}, headers=b_headers)

    r = client.delete(f"/api/family/members/{a_user['id']}", headers=b_headers)
    assert r.status_code == 403
    assert r.json()["error"] == "FAMILY_ADMIN_REQUIRED"


def test_remove_member_of_other_family_is_not_found(client, family_of):
    a_headers, _, _ = family_of("Norte")
    _, b_user, _ = family_of("Sur")
    r = client.delete(f"/api/family/members/{b_user['id']}", headers=a_headers)
    assert r.status_code == 404


def test_regenerate_code_invalidates_old_code(client, register, family_of):
    headers, _, family = family_of()
    old_code = family["codigoInvitacion"]

    r = client.post("/api/family/regenerate-code", headers=headers)
    assert r.status_code == 200
    new_code = r.json()["codigoInvitacion"]
    assert new_code != old_code

    joiner, _ = register("Juan")
    r = client.post("/api/family/join", json={"codigo": old_code}, headers=joiner)
    assert r.status_code == 404
    r = client.post("/api/family/join", json={"codigo": new_code}, headers=joiner)
    assert r.status_code == 200


def test_regenerate_code_requires_admin(client, register, family_of):
    _, _, family = family_of()
    headers, _ = register("Kiko")
    client.post("/api/family/join", json={"codigo": family["codigoInvitacion"]}, headers=headers)
    r = client.post("/api/family/regenerate-code", headers=headers)
    assert r.status_code == 403


def test_family_endpoints_require_auth(client):
    assert client.get("/api/family").status_code == 401
    assert client.post("/api/family", json={"nombre": "X"}).status_code == 401


def test_family_name_validation(client, register):
    headers, _ = register("Lola")
    r = client.post("/api/family", json={"nombre": "  A "}, headers=headers)
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "nombre"


# --- Service level ---

def _user(session, name="Svc"):
    return auth_service.register_user(unique_email(name.lower()), PASSWORD, name, "creator", session)


def test_admin_leaving_promotes_oldest_member(session):
    admin, first, second = _user(session, "Ana"), _user(session, "Beto"), _user(session, "Cris")
    family = family_service.create_family(admin, "Relevo", session)
    family_service.join_family(first, family.codigo_invitacion, session)
    family_service.join_family(second, family.codigo_invitacion, session)

    assert family_service.leave_family(admin, session) is False
    assert family_service.get_membership(first.id, session).role == "admin"
    assert family_service.get_membership(second.id, session).role == "member"


def test_deleting_family_detaches_recipes_and_drops_plans(session):
    admin = _user(session, "Chef")
    family = family_service.create_family(admin, "Cocina", session)
    recipe = Recipe(nombre="Tortilla", categoria="Plato Principal", created_by=admin.id, family_id=family.id)
    session.add(recipe)
    session.commit()
    session.refresh(recipe)
    session.add(MealPlan(fecha=date(2024, 5, 6), receta_id=recipe.id, family_id=family.id, created_by=admin.id))
    session.commit()

    family_id = family.id
    assert family_service.leave_family(admin, session) is True

    assert session.get(Family, family_id) is None
    assert session.exec(select(MealPlan).where(MealPlan.family_id == family_id)).all() == []
    session.refresh(recipe)
    assert recipe.family_id is None
    assert recipe.created_by == admin.id


def test_unique_index_rejects_second_membership(session, monkeypatch):
    """Skip the friendly pre-check: the storage layer must still refuse."""
    admin, joiner = _user(session, "Uno"), _user(session, "Dos")
    family = family_service.create_family(admin, "Unica", session)
    family_service.join_family(joiner, family.codigo_invitacion, session)

    monkeypatch.setattr(family_service, "_ensure_no_membership", lambda user, session: None)
    with pytest.raises(Conflict):
        family_service.join_family(joiner, family.codigo_invitacion, session)
    with pytest.raises(Conflict):
        family_service.create_family(joiner, "Segunda", session)

    rows = session.exec(select(FamilyMember).where(FamilyMember.user_id == joiner.id)).all()
    assert len(rows) == 1


def test_create_retries_on_code_collision(session, monkeypatch):
    first = family_service.create_family(_user(session, "Primero"), "Primera", session)
    fresh = "QQQ-999" if first.codigo_invitacion != "QQQ-999" else "QQQ-998"
    codes = iter([first.codigo_invitacion, fresh])
    # Bypass the lookup so the unique index is what catches the duplicate
    monkeypatch.setattr(family_service, "_unused_code", lambda session: next(codes))

    second = family_service.create_family(_user(session, "Segundo"), "Segunda", session)
    assert second.codigo_invitacion == fresh


def test_service_errors(session):
    user = _user(session, "Solo")
    with pytest.raises(NotFound):
        family_service.leave_family(user, session)
    with pytest.raises(NotFound):
        family_service.regenerate_code(user, session)
    with pytest.raises(Forbidden):
        family_service.remove_member(user, user.id, session)
    with pytest.raises(ValidationFailed):
        family_service.join_family(user, "nope", session)


def test_regenerate_retries_on_code_collision(session, monkeypatch):
    taken = family_service.create_family(_user(session, "Ocupado"), "Ocupada", session)
    admin = _user(session, "Regen")
    family = family_service.create_family(admin, "Regenera", session)
    fresh = next(c for c in ("QZQ-919", "QZQ-918") if c not in (taken.codigo_invitacion, family.codigo_invitacion))
    codes = iter([taken.codigo_invitacion, fresh])
    # Bypass the lookup so the unique index is what catches the duplicate
    monkeypatch.setattr(family_service, "_unused_code", lambda session: next(codes))

    assert family_service.regenerate_code(admin, session).codigo_invitacion == fresh
    session.refresh(taken)
    assert taken.codigo_invitacion != fresh
