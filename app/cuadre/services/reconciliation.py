from __future__ import annotations

from dataclasses import dataclass
from decimal import MAX_EMAX, MIN_EMIN, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

ZERO = Decimal("0")
SIGNATURE_THRESHOLD = Decimal("-1000")
EXPLANATION_THRESHOLD = Decimal("5000")

STATUS_OK = "Caja OK"
SIGNATURE_NOTICE = " - Por favor, firmar descuento"
EXPLANATION_NOTICE = " - Por favor, explique por qué está pasada la caja"


@dataclass(frozen=True)
class ReconciliationInput:
    declared_total_sales: Decimal = ZERO
    cash_on_hand: Decimal = ZERO
    card_amount: Decimal = ZERO
    agreement_amount: Decimal = ZERO
    voucher_amount: Decimal = ZERO
    internal_amount: Decimal = ZERO


@dataclass(frozen=True)
class ReconciliationResult:
    amount_to_deposit: Decimal
    registered_total: Decimal
    variance: Decimal
    status: str


def _as_decimal(value) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def format_amount(value: Decimal) -> str:
    """Render an amount as a whole number with es-CO thousands grouping (``-1.500``)."""
    value = _as_decimal(value)
    with localcontext() as ctx:
        ctx.Emax, ctx.Emin = MAX_EMAX, MIN_EMIN
        # Room for every integer digit so quantize never exceeds the precision.
        ctx.prec = max(ctx.prec, value.adjusted() + 2)
        rounded = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        grouped = f"{abs(rounded):,}".replace(",", ".")
    return f"-{grouped}" if rounded < 0 else grouped


def status_label(variance: Decimal) -> str:
    variance = _as_decimal(variance)
    if variance == 0:
        return STATUS_OK
    if variance < 0:
        label = f"Caja corta ({format_amount(variance)})"
        if variance < SIGNATURE_THRESHOLD:
            label += SIGNATURE_NOTICE
        return label
    label = f"Caja pasada en ({format_amount(variance)})"
    if variance > EXPLANATION_THRESHOLD:
        label += EXPLANATION_NOTICE
    return label


def reconcile(data: ReconciliationInput) -> ReconciliationResult:
    cash_on_hand = _as_decimal(data.cash_on_hand)
    with localcontext() as ctx:
        ctx.Emax, ctx.Emin = MAX_EMAX, MIN_EMIN
        registered_total = (
            cash_on_hand
            + _as_decimal(data.card_amount)
            + _as_decimal(data.agreement_amount)
            + _as_decimal(data.voucher_amount)
            - _as_decimal(data.internal_amount)
        )
        variance = registered_total - _as_decimal(data.declared_total_sales)
    return ReconciliationResult(
        amount_to_deposit=cash_on_hand,
        registered_total=registered_total,
        variance=variance,
        status=status_label(variance),
    )
