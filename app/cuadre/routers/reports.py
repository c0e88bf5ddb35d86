from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, Query

from app.cuadre.core.config import settings
from app.cuadre.core.deps import require_roles
from app.cuadre.core.security import ROLE_ADMIN, ROLE_CASHIER
from app.cuadre.db.session import get_db
from app.cuadre.schemas.cash_sessions import CashSessionSummary
from app.cuadre.schemas.errors import error_responses
from app.cuadre.schemas.reports import (
    AgreementTotalRow,
    CashierSessionsResponse,
    CashierVarianceRow,
    SalesBreakdownResponse,
    ShiftSummaryResponse,
    ShiftTotalsRow,
    VarianceReportResponse,
)
from app.cuadre.services.reports import (
    parse_branch_ids,
    parse_iso_date,
    resolve_range,
    sales_breakdown,
    sessions_for_cashiers,
    shift_summary,
    top_variance_report,
    validate_range,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_VARIANCE_LIMIT = 10


def _required_range(from_value: str, to_value: str):
    date_from = parse_iso_date(from_value, "from")
    date_to = parse_iso_date(to_value, "to")
    validate_range(date_from, date_to, max_months=settings.REPORTS_MAX_RANGE_MONTHS)
    return date_from, date_to


def _log_report(name: str, started: float, **filters) -> None:
    logger.info(
        "report served",
        extra={"report": name, "query_ms": round((time.perf_counter() - started) * 1000, 2), **filters},
    )


@router.get(
    "/cuadre/reports/variance/top",
    response_model=VarianceReportResponse,
    responses=error_responses(400, 401, 403, 422),
)
def variance_top(
    from_value: str = Query(..., alias="from"),
    to_value: str = Query(..., alias="to"),
    branch_name: str | None = Query(None),
    branch_ids: list[str] = Query(default=[]),
    limit: int = Query(DEFAULT_VARIANCE_LIMIT),
    _token=Depends(require_roles(ROLE_CASHIER, ROLE_ADMIN)),
    db=Depends(get_db),
):
    date_from, date_to = _required_range(from_value, to_value)
    limit = min(max(1, limit), settings.VARIANCE_REPORT_MAX_LIMIT)
    started = time.perf_counter()
    report = top_variance_report(
        db,
        date_from=date_from,
        date_to=date_to,
        branch_name=branch_name,
        branch_ids=parse_branch_ids(branch_ids),
        limit=limit,
    )
    _log_report("variance_top", started, limit=limit)
    return VarianceReportResponse(
        date_from=date_from,
        date_to=date_to,
        faltantes=[CashierVarianceRow.model_validate(row) for row in report.faltantes],
        sobrantes=[CashierVarianceRow.model_validate(row) for row in report.sobrantes],
    )


@router.get(
    "/cuadre/reports/variance/cashiers",
    response_model=CashierSessionsResponse,
    responses=error_responses(400, 401, 403, 422),
)
def variance_cashier_sessions(
    from_value: str = Query(..., alias="from"),
    to_value: str = Query(..., alias="to"),
    cashier_ids: list[str] = Query(default=[]),
    branch_name: str | None = Query(None),
    branch_ids: list[str] = Query(default=[]),
    _token=Depends(require_roles(ROLE_ADMIN)),
    db=Depends(get_db),
):
    date_from, date_to = _required_range(from_value, to_value)
    ids = [part.strip() for value in cashier_ids for part in value.split(",") if part.strip()]
    started = time.perf_counter()
    grouped = sessions_for_cashiers(
        db,
        cashier_ids=ids,
        date_from=date_from,
        date_to=date_to,
        branch_name=branch_name,
        branch_ids=parse_branch_ids(branch_ids),
    )
    _log_report("variance_cashiers", started, cashiers=len(ids))
    return CashierSessionsResponse(
        date_from=date_from,
        date_to=date_to,
        sessions={
            cashier_id: [CashSessionSummary.model_validate(row) for row in rows]
            for cashier_id, rows in grouped.items()
        },
    )


@router.get(
    "/cuadre/reports/shifts",
    response_model=ShiftSummaryResponse,
    responses=error_responses(400, 401, 403, 422),
)
def shifts_report(
    from_value: str | None = Query(None, alias="from"),
    to_value: str | None = Query(None, alias="to"),
    branch_name: str | None = Query(None),
    branch_id: int | None = Query(None),
    _token=Depends(require_roles(ROLE_CASHIER, ROLE_ADMIN)),
    db=Depends(get_db),
):
    date_from, date_to = resolve_range(from_value, to_value, max_months=settings.REPORTS_MAX_RANGE_MONTHS)
    started = time.perf_counter()
    summary = shift_summary(
        db,
        date_from=date_from,
        date_to=date_to,
        branch_name=branch_name,
        branch_id=branch_id,
    )
    _log_report("shifts", started)
    return ShiftSummaryResponse(
        date_from=date_from,
        date_to=date_to,
        shifts=[ShiftTotalsRow.model_validate(row) for row in summary.shifts],
        totals=ShiftTotalsRow.model_validate(summary.totals),
    )


@router.get(
    "/cuadre/reports/sales-breakdown",
    response_model=SalesBreakdownResponse,
    responses=error_responses(400, 401, 403, 422),
)
def sales_breakdown_report(
    from_value: str | None = Query(None, alias="from"),
    to_value: str | None = Query(None, alias="to"),
    branch_ids: list[str] = Query(default=[]),
    _token=Depends(require_roles(ROLE_ADMIN)),
    db=Depends(get_db),
):
    date_from, date_to = resolve_range(from_value, to_value, max_months=settings.REPORTS_MAX_RANGE_MONTHS)
    started = time.perf_counter()
    breakdown = sales_breakdown(db, date_from=date_from, date_to=date_to, branch_ids=parse_branch_ids(branch_ids))
    _log_report("sales_breakdown", started)
    return SalesBreakdownResponse(
        date_from=date_from,
        date_to=date_to,
        declared_total_sales=breakdown.declared_total_sales,
        cash_on_hand=breakdown.cash_on_hand,
        card_amount=breakdown.card_amount,
        voucher_amount=breakdown.voucher_amount,
        internal_amount=breakdown.internal_amount,
        variance=breakdown.variance,
        agreements_total=breakdown.agreements_total,
        agreements=[AgreementTotalRow.model_validate(item) for item in breakdown.agreements],
    )
