from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

ZERO = Decimal("0")

# Logical field -> accepted request keys, first present key wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "declared_total_sales": (
        "declared_total_sales",
        "declaredTotalSales",
        "venta_total_registrada",
        "ventaTotalRegistrada",
    ),
    "cash_on_hand": ("cash_on_hand", "cashOnHand", "efectivo_en_caja", "efectivoEnCaja"),
    "card_amount": ("card_amount", "cardAmount", "tarjetas"),
    "card_count": ("card_count", "cardCount", "tarjetas_cantidad", "tarjetasCantidad"),
    "agreement_amount": ("agreement_amount", "agreementAmount", "convenios"),
    "agreement_count": ("agreement_count", "agreementCount", "convenios_cantidad", "conveniosCantidad"),
    "voucher_amount": ("voucher_amount", "voucherAmount", "bonos_sodexo", "bonosSodexo"),
    "voucher_count": (
        "voucher_count",
        "voucherCount",
        "bonos_sodexo_cantidad",
        "bonosSodexo_cantidad",
        "bonosSodexoCantidad",
    ),
    "internal_amount": ("internal_amount", "internalAmount", "pagos_internos", "pagosInternos"),
    "internal_count": (
        "internal_count",
        "internalCount",
        "pagos_internos_cantidad",
        "pagosInternos_cantidad",
        "pagosInternosCantidad",
    ),
    "shift": ("shift", "turno"),
    "branch_id": ("branch_id", "branchId", "sucursal_id", "sucursalId"),
    "branch_name": ("branch_name", "branchName", "restaurante"),
    "cashier_name": ("cashier_name", "cashierName", "cajero_nombre", "cajeroNombre"),
    "cashier_id": ("cashier_id", "cashierId", "cajero_cedula", "cajeroCedula"),
    "note": ("note", "observacion"),
    "session_date": ("session_date", "sessionDate", "fecha_registro", "fechaRegistro"),
    "session_time": ("session_time", "sessionTime", "hora_registro", "horaRegistro"),
    "agreement_items": ("agreement_items", "agreementItems", "convenios_items"),
}

LINE_ITEM_ALIASES: dict[str, tuple[str, ...]] = {
    "agreement_id": ("agreement_id", "agreementId", "convenio_id"),
    "agreement_name": ("agreement_name", "agreementName", "nombre_convenio", "nombre", "name"),
    "quantity": ("quantity", "cantidad"),
    "amount": ("amount", "valor"),
}

MONEY_FIELDS = (
    "declared_total_sales",
    "cash_on_hand",
    "card_amount",
    "agreement_amount",
    "voucher_amount",
    "internal_amount",
)
COUNT_FIELDS = ("card_count", "agreement_count", "voucher_count", "internal_count")

# Largest values the Numeric(14, 2) money columns and INTEGER count columns hold.
MAX_AMOUNT = Decimal("999999999999.99")
MAX_COUNT = 2_147_483_647


@dataclass(frozen=True)
class LineItemInput:
    agreement_id: int | None
    agreement_name: str | None
    quantity: int
    amount: Decimal


def find_key(body: Mapping[str, Any], field: str, aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES) -> str | None:
    for key in aliases.get(field, (field,)):
        if key in body:
            return key
    return None


def has_field(body: Mapping[str, Any], field: str, aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES) -> bool:
    return find_key(body, field, aliases) is not None


def read_raw(body: Mapping[str, Any], field: str, aliases: Mapping[str, tuple[str, ...]] = FIELD_ALIASES) -> Any:
    key = find_key(body, field, aliases)
    return body[key] if key is not None else None


def parse_decimal(value: Any) -> Decimal:
    """Lenient number parsing: ``None``, booleans and garbage read as zero; ``,`` is a decimal separator."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    text = str(value).strip().replace(",", ".", 1)
    if not text or "_" in text:
        return ZERO
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def parse_count(value: Any) -> int:
    """Whole-number count. Magnitudes past the column range saturate one step beyond ``MAX_COUNT``."""
    parsed = parse_decimal(value)
    ceiling = MAX_COUNT + 1
    if parsed > ceiling:
        return ceiling
    if parsed < -ceiling:
        return -ceiling
    return int(parsed)


def parse_optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= MAX_COUNT else None
    text = str(value).strip()
    if not text.isdigit() or len(text) > len(str(MAX_COUNT)):
        return None
    parsed = int(text)
    return parsed if parsed <= MAX_COUNT else None


def parse_string(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


def read_decimal(body: Mapping[str, Any], field: str) -> Decimal:
    return parse_decimal(read_raw(body, field))


def read_count(body: Mapping[str, Any], field: str) -> int:
    return parse_count(read_raw(body, field))


def read_string(body: Mapping[str, Any], field: str) -> str | None:
    return parse_string(read_raw(body, field))


def read_optional_int(body: Mapping[str, Any], field: str) -> int | None:
    return parse_optional_int(read_raw(body, field))


def parse_session_timestamp(date_value: Any, time_value: Any) -> datetime | None:
    """Combine a calendar date and an optional ``HH:MM[:SS]`` clock time.

    A date without time means midnight. Anything unparseable returns ``None``
    so the caller can fall back to its own default.
    """
    day = parse_string(date_value) or ""
    clock = parse_string(time_value) or ""
    if not day:
        return None
    if not clock:
        try:
            return datetime.combine(date.fromisoformat(day), time.min)
        except ValueError:
            return None
    if len(clock) == 5:
        clock = f"{clock}:00"
    try:
        parsed = datetime.fromisoformat(f"{day}T{clock}")
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _keep_line_item(item: LineItemInput) -> bool:
    return item.quantity > 0 or item.amount > 0 or item.agreement_id is not None or bool(item.agreement_name)


def parse_line_items(raw_items: Any) -> list[LineItemInput]:
    """Read agreement line items, dropping rows that carry no information."""
    if not isinstance(raw_items, list):
        return []
    items: list[LineItemInput] = []
    for raw in raw_items:
        if not isinstance(raw, Mapping):
            continue
        name = read_raw(raw, "agreement_name", LINE_ITEM_ALIASES)
        item = LineItemInput(
            agreement_id=parse_optional_int(read_raw(raw, "agreement_id", LINE_ITEM_ALIASES)),
            agreement_name=(name.strip() or None) if isinstance(name, str) else None,
            quantity=parse_count(read_raw(raw, "quantity", LINE_ITEM_ALIASES)),
            amount=parse_decimal(read_raw(raw, "amount", LINE_ITEM_ALIASES)),
        )
        if _keep_line_item(item):
            items.append(item)
    return items
