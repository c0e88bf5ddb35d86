from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

# Business fields worth recording in an amendment change-set. Derived columns
# (registered_total, variance, status, ...) follow their inputs and are left out.
AUDITABLE_FIELDS = frozenset(
    {
        "declared_total_sales",
        "cash_on_hand",
        "card_amount",
        "card_count",
        "agreement_amount",
        "agreement_count",
        "voucher_amount",
        "voucher_count",
        "internal_amount",
        "internal_count",
        "note",
        "cashier_name",
        "cashier_id",
        "shift",
        "session_at",
        "branch_id",
        "branch_name",
    }
)


@dataclass(frozen=True)
class FieldChange:
    field: str
    before: Any
    after: Any

    def as_dict(self) -> dict:
        return {"field": self.field, "before": self.before, "after": self.after}


def _as_number(value: Decimal):
    if not value.is_finite():
        return str(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _parse_number(text: str):
    if not text or "_" in text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return _as_number(parsed)


def normalize(value: Any) -> Any:
    """Bring a stored or incoming value to a comparable canonical form.

    Timestamps become ISO strings, numbers and numeric strings become numbers
    (``int`` when integral), other values become trimmed strings.
    """
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _as_number(Decimal(repr(value)))
    if isinstance(value, Decimal):
        return _as_number(value)
    text = str(value).strip()
    number = _parse_number(text)
    return text if number is None else number


def diff_changes(
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any],
    auditable: Iterable[str] = AUDITABLE_FIELDS,
) -> list[FieldChange]:
    allowed = set(auditable)
    previous = before or {}
    changes: list[FieldChange] = []
    for field, value in after.items():
        if field not in allowed:
            continue
        old = normalize(previous.get(field))
        new = normalize(value)
        if old != new:
            changes.append(FieldChange(field=field, before=old, after=new))
    return changes
