from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field, fields
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import case, func, select

from app.cuadre.core.error_catalog import AppError, ErrorCatalog
from app.cuadre.db.models import AgreementLineItem, CashSession
from app.cuadre.repos.cash_sessions import CashSessionFilters, session_conditions

ZERO = Decimal("0")
UNNAMED_AGREEMENT = "Sin nombre"


@dataclass
class CashierVariance:
    cashier_id: str | None
    cashier_name: str
    total_registros: int
    faltantes_count: int
    faltantes_total: Decimal
    sobrantes_count: int
    sobrantes_total: Decimal
    neto: Decimal


@dataclass
class VarianceReport:
    faltantes: list[CashierVariance]
    sobrantes: list[CashierVariance]


@dataclass
class ShiftTotals:
    shift: str
    declared_total_sales: Decimal = ZERO
    cash_on_hand: Decimal = ZERO
    card_amount: Decimal = ZERO
    card_count: int = 0
    agreement_amount: Decimal = ZERO
    agreement_count: int = 0
    voucher_amount: Decimal = ZERO
    voucher_count: int = 0
    internal_amount: Decimal = ZERO
    internal_count: int = 0
    registered_total: Decimal = ZERO
    amount_to_deposit: Decimal = ZERO
    variance: Decimal = ZERO


@dataclass
class ShiftSummary:
    shifts: list[ShiftTotals]
    totals: ShiftTotals


@dataclass
class AgreementTotal:
    name: str
    total: Decimal


@dataclass
class SalesBreakdown:
    declared_total_sales: Decimal
    cash_on_hand: Decimal
    card_amount: Decimal
    voucher_amount: Decimal
    internal_amount: Decimal
    variance: Decimal
    agreements_total: Decimal
    agreements: list[AgreementTotal] = field(default_factory=list)


def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _int(value) -> int:
    return int(value or 0)


def parse_iso_date(value: str, field_name: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"field": field_name, "message": "use YYYY-MM-DD"},
        ) from exc


def max_to_date(date_from: date, months: int) -> date:
    """Last calendar day of the ``months``-th month counted from ``date_from``'s month."""
    month_index = date_from.month - 1 + months
    year = date_from.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, calendar.monthrange(year, month)[1])


def validate_range(date_from: date, date_to: date, *, max_months: int) -> None:
    if date_to < date_from:
        raise AppError(
            ErrorCatalog.INVALID_DATE_RANGE,
            details={"message": "to must not be before from"},
        )
    if max_months <= 0:
        return
    limit = max_to_date(date_from, max_months)
    if date_to > limit:
        raise AppError(
            ErrorCatalog.INVALID_DATE_RANGE,
            details={
                "message": f"range exceeds {max_months} months",
                "max_to": limit.isoformat(),
            },
        )


def default_range(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today - timedelta(days=1), today


def top_variance_report(
    db,
    *,
    date_from: date,
    date_to: date,
    branch_name: str | None = None,
    branch_ids: list[int] | None = None,
    limit: int = 10,
) -> VarianceReport:
    filters = CashSessionFilters(
        date_from=date_from,
        date_to=date_to,
        branch_name=branch_name,
        branch_ids=list(branch_ids or []),
    )
    is_short = CashSession.variance < 0
    is_over = CashSession.variance > 0
    stmt = (
        select(
            func.coalesce(CashSession.cashier_id, "").label("cashier_id"),
            func.coalesce(CashSession.cashier_name, "").label("cashier_name"),
            func.count(CashSession.id).label("total_registros"),
            func.sum(case((is_short, 1), else_=0)).label("faltantes_count"),
            func.sum(case((is_short, CashSession.variance), else_=0)).label("faltantes_total"),
            func.sum(case((is_over, 1), else_=0)).label("sobrantes_count"),
            func.sum(case((is_over, CashSession.variance), else_=0)).label("sobrantes_total"),
            func.sum(CashSession.variance).label("neto"),
        )
        .where(*session_conditions(filters))
        .group_by(CashSession.cashier_id, CashSession.cashier_name)
    )
    groups = [
        CashierVariance(
            cashier_id=row.cashier_id or None,
            cashier_name=row.cashier_name,
            total_registros=_int(row.total_registros),
            faltantes_count=_int(row.faltantes_count),
            faltantes_total=_decimal(row.faltantes_total),
            sobrantes_count=_int(row.sobrantes_count),
            sobrantes_total=_decimal(row.sobrantes_total),
            neto=_decimal(row.neto),
        )
        for row in db.execute(stmt).all()
    ]
    faltantes = sorted(
        (group for group in groups if group.faltantes_count > 0),
        key=lambda group: (abs(group.faltantes_total), group.faltantes_count),
        reverse=True,
    )
    sobrantes = sorted(
        (group for group in groups if group.sobrantes_count > 0),
        key=lambda group: (group.sobrantes_total, group.sobrantes_count),
        reverse=True,
    )
    return VarianceReport(faltantes=faltantes[:limit], sobrantes=sobrantes[:limit])


def sessions_for_cashiers(
    db,
    *,
    cashier_ids: list[str],
    date_from: date,
    date_to: date,
    branch_name: str | None = None,
    branch_ids: list[int] | None = None,
) -> dict[str, list[CashSession]]:
    if not cashier_ids:
        return {}
    filters = CashSessionFilters(
        date_from=date_from,
        date_to=date_to,
        branch_name=branch_name,
        branch_ids=list(branch_ids or []),
        cashier_ids=list(cashier_ids),
    )
    rows = (
        db.execute(
            select(CashSession)
            .where(*session_conditions(filters))
            .order_by(CashSession.session_at.desc(), CashSession.id.desc())
        )
        .scalars()
        .all()
    )
    grouped: dict[str, list[CashSession]] = defaultdict(list)
    for row in rows:
        grouped[row.cashier_id].append(row)
    return dict(grouped)


def shift_summary(
    db,
    *,
    date_from: date,
    date_to: date,
    branch_name: str | None = None,
    branch_id: int | None = None,
) -> ShiftSummary:
    # Line items are summed per session first so several items never multiply session sums.
    items = (
        select(
            AgreementLineItem.session_id.label("session_id"),
            func.sum(AgreementLineItem.amount).label("amount"),
            func.sum(AgreementLineItem.quantity).label("quantity"),
        )
        .group_by(AgreementLineItem.session_id)
        .subquery()
    )
    filters = CashSessionFilters(date_from=date_from, date_to=date_to, branch_name=branch_name)
    if not branch_name and branch_id is not None:
        filters.branch_ids = [branch_id]
    stmt = (
        select(
            CashSession.shift,
            func.sum(CashSession.declared_total_sales).label("declared_total_sales"),
            func.sum(CashSession.cash_on_hand).label("cash_on_hand"),
            func.sum(CashSession.card_amount).label("card_amount"),
            func.sum(CashSession.card_count).label("card_count"),
            func.sum(func.coalesce(items.c.amount, 0)).label("agreement_amount"),
            func.sum(func.coalesce(items.c.quantity, 0)).label("agreement_count"),
            func.sum(CashSession.voucher_amount).label("voucher_amount"),
            func.sum(CashSession.voucher_count).label("voucher_count"),
            func.sum(CashSession.internal_amount).label("internal_amount"),
            func.sum(CashSession.internal_count).label("internal_count"),
            func.sum(CashSession.registered_total).label("registered_total"),
            func.sum(CashSession.amount_to_deposit).label("amount_to_deposit"),
            func.sum(CashSession.variance).label("variance"),
        )
        .outerjoin(items, items.c.session_id == CashSession.id)
        .where(*session_conditions(filters))
        .group_by(CashSession.shift)
        .order_by(CashSession.shift)
    )
    shifts = [
        ShiftTotals(
            shift=row.shift,
            declared_total_sales=_decimal(row.declared_total_sales),
            cash_on_hand=_decimal(row.cash_on_hand),
            card_amount=_decimal(row.card_amount),
            card_count=_int(row.card_count),
            agreement_amount=_decimal(row.agreement_amount),
            agreement_count=_int(row.agreement_count),
            voucher_amount=_decimal(row.voucher_amount),
            voucher_count=_int(row.voucher_count),
            internal_amount=_decimal(row.internal_amount),
            internal_count=_int(row.internal_count),
            registered_total=_decimal(row.registered_total),
            amount_to_deposit=_decimal(row.amount_to_deposit),
            variance=_decimal(row.variance),
        )
        for row in db.execute(stmt).all()
    ]
    totals = ShiftTotals(shift="TOTAL")
    for row in shifts:
        for column in fields(ShiftTotals):
            if column.name == "shift":
                continue
            setattr(totals, column.name, getattr(totals, column.name) + getattr(row, column.name))
    return ShiftSummary(shifts=shifts, totals=totals)


def sales_breakdown(
    db,
    *,
    date_from: date,
    date_to: date,
    branch_ids: list[int] | None = None,
) -> SalesBreakdown:
    conditions = session_conditions(
        CashSessionFilters(date_from=date_from, date_to=date_to, branch_ids=list(branch_ids or []))
    )
    totals = db.execute(
        select(
            func.sum(CashSession.declared_total_sales).label("declared_total_sales"),
            func.sum(CashSession.cash_on_hand).label("cash_on_hand"),
            func.sum(CashSession.card_amount).label("card_amount"),
            func.sum(CashSession.voucher_amount).label("voucher_amount"),
            func.sum(CashSession.internal_amount).label("internal_amount"),
            func.sum(CashSession.variance).label("variance"),
        ).where(*conditions)
    ).one()
    agreement_total = func.sum(AgreementLineItem.amount)
    agreement_rows = db.execute(
        select(AgreementLineItem.agreement_name, agreement_total.label("total"))
        .join(CashSession, CashSession.id == AgreementLineItem.session_id)
        .where(*conditions)
        .group_by(AgreementLineItem.agreement_name)
        .order_by(agreement_total.desc())
    ).all()
    agreements = [
        AgreementTotal(name=row.agreement_name or UNNAMED_AGREEMENT, total=_decimal(row.total))
        for row in agreement_rows
    ]
    return SalesBreakdown(
        declared_total_sales=_decimal(totals.declared_total_sales),
        cash_on_hand=_decimal(totals.cash_on_hand),
        card_amount=_decimal(totals.card_amount),
        voucher_amount=_decimal(totals.voucher_amount),
        internal_amount=_decimal(totals.internal_amount),
        variance=_decimal(totals.variance),
        agreements_total=sum((item.total for item in agreements), ZERO),
        agreements=agreements,
    )


def parse_branch_ids(values: list[str] | None) -> list[int]:
    """Accept repeated and comma separated ids, ignoring anything that is not a positive integer."""
    branch_ids: list[int] = []
    for value in values or []:
        for part in str(value).split(","):
            part = part.strip()
            if part.isdigit() and int(part) > 0 and int(part) not in branch_ids:
                branch_ids.append(int(part))
    return branch_ids


def resolve_range(
    from_value: str | None,
    to_value: str | None,
    *,
    max_months: int,
    today: date | None = None,
) -> tuple[date, date]:
    default_from, default_to = default_range(today)
    date_from = parse_iso_date(from_value, "from") if from_value else default_from
    date_to = parse_iso_date(to_value, "to") if to_value else default_to
    validate_range(date_from, date_to, max_months=max_months)
    return date_from, date_to
