from tests.cuadre_helpers import admin_headers, cashier_headers, register, seed_reference_data


def _seed_sessions(client, data):
    headers = admin_headers(data)
    branch_id = data["branch"].id
    north_id = data["north"].id
    register(client, headers, branch_name=None, branch_id=branch_id, shift="A", session_time="08:00")
    register(client, headers, branch_name=None, branch_id=branch_id, shift="B", session_time="14:00")
    register(client, headers, branch_name=None, branch_id=north_id, shift="A", session_time="09:00")
    register(
        client,
        headers,
        branch_name=None,
        branch_id=north_id,
        shift="A",
        session_date="2024-05-11",
        session_time="09:00",
    )


def test_list_orders_newest_first_and_paginates(client, db_session):
    data = seed_reference_data(db_session)
    _seed_sessions(client, data)

    first = client.get(
        "/cuadre/cash-sessions",
        headers=admin_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-11", "limit": 3},
    )
    second = client.get(
        "/cuadre/cash-sessions",
        headers=admin_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-11", "limit": 3, "page": 2},
    )

    assert first.status_code == 200
    body = first.json()
    assert body["total"] == 4
    assert [row["session_at"][:16] for row in body["rows"]] == [
        "2024-05-11T09:00",
        "2024-05-10T14:00",
        "2024-05-10T09:00",
    ]
    assert [row["session_at"][:16] for row in second.json()["rows"]] == ["2024-05-10T08:00"]


def test_list_filters_by_day_branch_and_shift(client, db_session):
    data = seed_reference_data(db_session)
    _seed_sessions(client, data)
    headers = admin_headers(data)

    by_day = client.get("/cuadre/cash-sessions", headers=headers, params={"date": "2024-05-10"})
    by_name = client.get(
        "/cuadre/cash-sessions",
        headers=headers,
        params={"from": "2024-05-10", "to": "2024-05-11", "branch_name": "Norte"},
    )
    by_shift = client.get(
        "/cuadre/cash-sessions",
        headers=headers,
        params={"date": "2024-05-10", "shifts": ["b"]},
    )
    by_ids = client.get(
        "/cuadre/cash-sessions",
        headers=headers,
        params={"from": "2024-05-10", "to": "2024-05-11", "branch_ids": f"{data['north'].id},{data['north'].id}"},
    )

    assert by_day.json()["total"] == 3
    assert by_name.json()["total"] == 2
    assert {row["branch_name"] for row in by_name.json()["rows"]} == {"Norte"}
    assert [row["shift"] for row in by_shift.json()["rows"]] == ["B"]
    assert by_ids.json()["total"] == 2


def test_cashier_only_sees_own_branch(client, db_session):
    data = seed_reference_data(db_session)
    _seed_sessions(client, data)

    response = client.get(
        "/cuadre/cash-sessions",
        headers=cashier_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-11", "branch_name": "Norte"},
    )

    assert response.status_code == 200
    assert response.json()["total"] == 2
    assert {row["branch_id"] for row in response.json()["rows"]} == {data["branch"].id}


def test_list_rejects_bad_dates(client, db_session):
    data = seed_reference_data(db_session)

    bad_day = client.get("/cuadre/cash-sessions", headers=admin_headers(data), params={"date": "10/05/2024"})
    inverted = client.get(
        "/cuadre/cash-sessions",
        headers=admin_headers(data),
        params={"from": "2024-05-11", "to": "2024-05-10"},
    )

    assert bad_day.status_code == 422
    assert inverted.status_code == 400
    assert inverted.json()["code"] == "INVALID_DATE_RANGE"


def test_get_session_detail_includes_line_items(client, db_session):
    data = seed_reference_data(db_session)
    session_id = register(
        client,
        admin_headers(data),
        agreement_items=[{"agreement_name": "Sodexo", "quantity": 1, "amount": 10000}],
    ).json()["id"]

    response = client.get(f"/cuadre/cash-sessions/{session_id}", headers=cashier_headers(data))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == session_id
    assert body["cashier_id"] == "1001"
    assert body["line_items"][0]["agreement_name"] == "Sodexo"
    assert body["line_items"][0]["quantity"] == 1
