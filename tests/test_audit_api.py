import json

from tests.cuadre_helpers import admin_headers, cashier_headers, register, seed_reference_data


def _seed_audit_trail(client, data):
    session_id = register(client, cashier_headers(data)).json()["id"]
    client.patch(f"/cuadre/cash-sessions/{session_id}", headers=admin_headers(data), json={"card_count": 4})
    other_id = register(client, admin_headers(data), shift="B").json()["id"]
    client.delete(f"/cuadre/cash-sessions/{other_id}", headers=admin_headers(data))
    return session_id


def test_audit_list_newest_first_with_actor_names(client, db_session):
    data = seed_reference_data(db_session)
    _seed_audit_trail(client, data)

    response = client.get("/cuadre/audit", headers=admin_headers(data))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert body["total_pages"] == 1
    assert [row["action"] for row in body["rows"]] == [
        "eliminar_registro",
        "crear_registro",
        "actualizar_registro",
        "crear_registro",
    ]
    assert body["rows"][-1]["actor_name"] == "Ana Cajera"
    assert body["rows"][0]["actor_name"] == "Administrador"


def test_audit_list_filters(client, db_session):
    data = seed_reference_data(db_session)
    session_id = _seed_audit_trail(client, data)
    headers = admin_headers(data)

    by_action = client.get("/cuadre/audit", headers=headers, params={"action": "actualizar_registro"})
    by_actor = client.get("/cuadre/audit", headers=headers, params={"actor_id": data["cashier"].id})
    by_resource = client.get("/cuadre/audit", headers=headers, params={"resource_type": "registro"})
    no_match = client.get("/cuadre/audit", headers=headers, params={"resource_type": "usuarios"})

    rows = by_action.json()["rows"]
    assert len(rows) == 1
    assert rows[0]["resource_id"] == session_id
    assert json.loads(rows[0]["detail"])["changes"] == [{"field": "card_count", "before": 3, "after": 4}]
    assert [row["action"] for row in by_actor.json()["rows"]] == ["crear_registro"]
    assert by_resource.json()["total"] == 4
    assert no_match.json()["total"] == 0


def test_audit_list_pagination(client, db_session):
    data = seed_reference_data(db_session)
    _seed_audit_trail(client, data)

    response = client.get("/cuadre/audit", headers=admin_headers(data), params={"limit": 3, "page": 2})
    clamped = client.get("/cuadre/audit", headers=admin_headers(data), params={"limit": 5000})

    body = response.json()
    assert body["page"] == 2
    assert body["total_pages"] == 2
    assert len(body["rows"]) == 1
    assert clamped.json()["limit"] == 100


def test_audit_actions_are_distinct_and_sorted(client, db_session):
    data = seed_reference_data(db_session)
    _seed_audit_trail(client, data)

    response = client.get("/cuadre/audit/actions", headers=admin_headers(data))

    assert response.status_code == 200
    assert response.json()["actions"] == ["actualizar_registro", "crear_registro", "eliminar_registro"]


def test_audit_endpoints_are_admin_only(client, db_session):
    data = seed_reference_data(db_session)

    assert client.get("/cuadre/audit", headers=cashier_headers(data)).status_code == 403
    assert client.get("/cuadre/audit/actions", headers=cashier_headers(data)).status_code == 403
    assert client.get("/cuadre/audit").status_code == 401
