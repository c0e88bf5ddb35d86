from datetime import datetime
from decimal import Decimal

from app.cuadre.services.payload import (
    MAX_COUNT,
    LineItemInput,
    has_field,
    parse_count,
    parse_decimal,
    parse_line_items,
    parse_session_timestamp,
    read_count,
    read_decimal,
    read_optional_int,
    read_string,
)


def test_first_present_alias_wins():
    body = {"cashOnHand": "10", "efectivoEnCaja": "20"}
    assert read_decimal(body, "cash_on_hand") == Decimal("10")
    assert read_decimal({"efectivoEnCaja": 20}, "cash_on_hand") == Decimal("20")


def test_legacy_spanish_keys_are_accepted():
    body = {
        "ventaTotalRegistrada": 1000,
        "bonosSodexo_cantidad": 2,
        "cajero_cedula": 123456,
        "restaurante": "Principal",
        "turno": "b",
    }
    assert read_decimal(body, "declared_total_sales") == Decimal("1000")
    assert read_count(body, "voucher_count") == 2
    assert read_string(body, "cashier_id") == "123456"
    assert read_string(body, "branch_name") == "Principal"
    assert read_string(body, "shift") == "b"


def test_lenient_number_parsing():
    assert parse_decimal(None) == Decimal("0")
    assert parse_decimal("12,5") == Decimal("12.5")
    assert parse_decimal("abc") == Decimal("0")
    assert parse_decimal("") == Decimal("0")
    assert parse_decimal(True) == Decimal("0")
    assert parse_decimal("Infinity") == Decimal("0")


def test_strings_and_presence():
    body = {"note": None, "cashier_name": "  Ana  "}
    assert has_field(body, "note")
    assert read_string(body, "note") is None
    assert read_string(body, "cashier_name") == "Ana"
    assert read_string(body, "cashier_id") is None
    assert not has_field(body, "cashier_id")


def test_optional_int_rejects_garbage():
    assert read_optional_int({"sucursal_id": "7"}, "branch_id") == 7
    assert read_optional_int({"branch_id": 3}, "branch_id") == 3
    assert read_optional_int({"branch_id": "x"}, "branch_id") is None
    assert read_optional_int({}, "branch_id") is None
    assert read_optional_int({"branch_id": "9" * 5000}, "branch_id") is None
    assert read_optional_int({"branch_id": 10**12}, "branch_id") is None


def test_session_timestamp_variants():
    assert parse_session_timestamp("2024-05-10", "18:30") == datetime(2024, 5, 10, 18, 30)
    assert parse_session_timestamp("2024-05-10", "18:30:15") == datetime(2024, 5, 10, 18, 30, 15)
    assert parse_session_timestamp("2024-05-10", None) == datetime(2024, 5, 10)
    assert parse_session_timestamp("10/05/2024", None) is None
    assert parse_session_timestamp("2024-05-10", "25:99") is None
    assert parse_session_timestamp(None, "18:30") is None


def test_line_items_drop_empty_rows():
    items = parse_line_items(
        [
            {"convenio_id": 2, "cantidad": 1, "valor": "5000"},
            {"nombre_convenio": "Sodexo"},
            {"nombre": "Big Pass", "valor": 0},
            {"cantidad": 0, "valor": 0},
            "not-a-row",
        ]
    )
    assert items == [
        LineItemInput(agreement_id=2, agreement_name=None, quantity=1, amount=Decimal("5000")),
        LineItemInput(agreement_id=None, agreement_name="Sodexo", quantity=0, amount=Decimal("0")),
        LineItemInput(agreement_id=None, agreement_name="Big Pass", quantity=0, amount=Decimal("0")),
    ]


def test_line_items_require_a_list():
    assert parse_line_items(None) == []
    assert parse_line_items({"cantidad": 1}) == []


def test_counts_saturate_past_the_column_range():
    assert parse_count("12") == 12
    assert parse_count("2.5e3") == 2500
    assert parse_count("1e5000000") == MAX_COUNT + 1
    assert parse_count("-1e5000000") == -(MAX_COUNT + 1)
    assert read_count({"tarjetas_cantidad": "7,9"}, "card_count") == 7
