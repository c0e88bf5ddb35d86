from decimal import Decimal

from tests.cuadre_helpers import admin_headers, cashier_headers, register, seed_reference_data


def _seed_with_line_items(client, data):
    headers = admin_headers(data)
    register(
        client,
        headers,
        shift="A",
        agreement_items=[
            {"agreement_name": "Sodexo", "quantity": 1, "amount": 3000},
            {"agreement_name": "Sodexo", "quantity": 1, "amount": 7000},
        ],
    )
    register(
        client,
        headers,
        shift="B",
        card_count=2,
        agreement_items=[{"agreement_name": "Big Pass", "quantity": 1, "amount": 9500}],
    )
    register(
        client,
        headers,
        shift="B",
        branch_name="Norte",
        agreement_items=[{"quantity": 1, "amount": 500}],
    )


def test_shift_summary_does_not_multiply_session_totals(client, db_session):
    data = seed_reference_data(db_session)
    _seed_with_line_items(client, data)

    response = client.get(
        "/cuadre/reports/shifts",
        headers=admin_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-10"},
    )

    assert response.status_code == 200
    body = response.json()
    shifts = {row["shift"]: row for row in body["shifts"]}
    assert list(shifts) == ["A", "B"]
    assert Decimal(shifts["A"]["declared_total_sales"]) == Decimal("100000")
    assert Decimal(shifts["A"]["agreement_amount"]) == Decimal("10000")
    assert shifts["A"]["agreement_count"] == 2
    assert Decimal(shifts["B"]["declared_total_sales"]) == Decimal("200000")
    assert Decimal(shifts["B"]["agreement_amount"]) == Decimal("10000")
    assert shifts["B"]["card_count"] == 5
    totals = body["totals"]
    assert totals["shift"] == "TOTAL"
    assert Decimal(totals["declared_total_sales"]) == Decimal("300000")
    assert Decimal(totals["agreement_amount"]) == Decimal("20000")
    assert totals["card_count"] == 8


def test_shift_summary_filters_by_branch(client, db_session):
    data = seed_reference_data(db_session)
    _seed_with_line_items(client, data)

    response = client.get(
        "/cuadre/reports/shifts",
        headers=admin_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-10", "branch_name": "Norte"},
    )

    body = response.json()
    assert [row["shift"] for row in body["shifts"]] == ["B"]
    assert Decimal(body["totals"]["agreement_amount"]) == Decimal("500")


def test_shift_summary_empty_range_returns_zero_totals(client, db_session):
    data = seed_reference_data(db_session)

    response = client.get(
        "/cuadre/reports/shifts",
        headers=admin_headers(data),
        params={"from": "2023-01-01", "to": "2023-01-02"},
    )

    assert response.status_code == 200
    assert response.json()["shifts"] == []
    assert Decimal(response.json()["totals"]["variance"]) == Decimal("0")


def test_sales_breakdown_groups_agreements(client, db_session):
    data = seed_reference_data(db_session)
    _seed_with_line_items(client, data)

    response = client.get(
        "/cuadre/reports/sales-breakdown",
        headers=admin_headers(data),
        params={"from": "2024-05-10", "to": "2024-05-10"},
    )

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["declared_total_sales"]) == Decimal("300000")
    assert Decimal(body["cash_on_hand"]) == Decimal("180000")
    assert [(row["name"], Decimal(row["total"])) for row in body["agreements"]] == [
        ("Sodexo", Decimal("10000")),
        ("Big Pass", Decimal("9500")),
        ("Sin nombre", Decimal("500")),
    ]
    assert Decimal(body["agreements_total"]) == Decimal("20000")


def test_sales_breakdown_filters_by_branch_ids(client, db_session):
    data = seed_reference_data(db_session)
    headers = admin_headers(data)
    register(client, headers, branch_name=None, branch_id=data["north"].id, declared_total_sales=42000)
    register(client, headers, shift="B", declared_total_sales=50000)

    response = client.get(
        "/cuadre/reports/sales-breakdown",
        headers=headers,
        params={"from": "2024-05-10", "to": "2024-05-10", "branch_ids": str(data["north"].id)},
    )

    assert Decimal(response.json()["declared_total_sales"]) == Decimal("42000")
    assert response.json()["agreements"] == []


def test_cashiers_read_shift_summary_but_not_sales_breakdown(client, db_session):
    data = seed_reference_data(db_session)

    shifts = client.get("/cuadre/reports/shifts", headers=cashier_headers(data))
    sales = client.get("/cuadre/reports/sales-breakdown", headers=cashier_headers(data))

    assert shifts.status_code == 200
    assert sales.status_code == 403
