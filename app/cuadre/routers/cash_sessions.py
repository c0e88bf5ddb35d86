from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Request, Response, status
from sqlalchemy.orm import sessionmaker

from app.cuadre.core.config import settings
from app.cuadre.core.deps import require_roles
from app.cuadre.core.security import ROLE_ADMIN, ROLE_CASHIER, TokenData
from app.cuadre.db.session import get_session_factory
from app.cuadre.repos.cash_sessions import CashSessionFilters, CashSessionStore
from app.cuadre.repos.master_data import MasterDataLookup
from app.cuadre.schemas.cash_sessions import (
    CashSessionAmendedResponse,
    CashSessionCreatedResponse,
    CashSessionDetail,
    CashSessionListResponse,
    CashSessionSummary,
    ReconciliationSummary,
)
from app.cuadre.schemas.errors import error_responses
from app.cuadre.services.audit import AuditActor, AuditDispatcher, AuditRecorder
from app.cuadre.services.cash_sessions import CashSessionService
from app.cuadre.services.reconciliation import ReconciliationResult
from app.cuadre.services.reports import parse_branch_ids, parse_iso_date, resolve_range


router = APIRouter()

_any_role = require_roles(ROLE_CASHIER, ROLE_ADMIN)
_admin_only = require_roles(ROLE_ADMIN)


def get_cash_session_service(
    request: Request,
    background_tasks: BackgroundTasks,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> CashSessionService:
    dispatcher = AuditDispatcher(
        AuditRecorder(session_factory),
        AuditActor.from_request(request),
        background_tasks,
    )
    return CashSessionService(
        CashSessionStore(session_factory),
        MasterDataLookup(session_factory),
        dispatcher,
    )


def _reconciliation_summary(result: ReconciliationResult) -> ReconciliationSummary:
    return ReconciliationSummary(
        amount_to_deposit=result.amount_to_deposit,
        registered_total=result.registered_total,
        variance=result.variance,
        status=result.status,
    )


def _token_branch_id(token_data: TokenData) -> int | None:
    if token_data.branch_id and str(token_data.branch_id).isdigit():
        return int(token_data.branch_id)
    return None


@router.post(
    "/cuadre/cash-sessions",
    response_model=CashSessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403, 409, 422),
)
def register_cash_session(
    payload: dict[str, Any] = Body(...),
    _token=Depends(_any_role),
    service: CashSessionService = Depends(get_cash_session_service),
):
    result = service.register(payload)
    return CashSessionCreatedResponse(id=result.id, reconciliation=_reconciliation_summary(result.reconciliation))


@router.get(
    "/cuadre/cash-sessions",
    response_model=CashSessionListResponse,
    responses=error_responses(400, 401, 403, 422),
)
def list_cash_sessions(
    day: str | None = Query(None, alias="date"),
    from_value: str | None = Query(None, alias="from"),
    to_value: str | None = Query(None, alias="to"),
    branch_name: str | None = Query(None),
    branch_ids: list[str] = Query(default=[]),
    shifts: list[str] = Query(default=[]),
    page: int = Query(1),
    limit: int = Query(20),
    token_data: TokenData = Depends(_any_role),
    service: CashSessionService = Depends(get_cash_session_service),
):
    if day:
        date_from = date_to = parse_iso_date(day, "date")
    else:
        date_from, date_to = resolve_range(from_value, to_value, max_months=settings.REPORTS_MAX_RANGE_MONTHS)

    filters = CashSessionFilters(
        date_from=date_from,
        date_to=date_to,
        shifts=[shift.strip().upper() for shift in shifts if shift.strip()],
    )
    own_branch = _token_branch_id(token_data)
    if token_data.role.upper() == ROLE_CASHIER and own_branch is not None:
        filters.branch_ids = [own_branch]
    elif branch_name:
        filters.branch_name = branch_name
    else:
        filters.branch_ids = parse_branch_ids(branch_ids)

    page = max(1, page)
    limit = min(max(1, limit), settings.SESSIONS_LIST_MAX_PAGE_SIZE)
    result = service.list(filters, page=page, limit=limit)
    return CashSessionListResponse(
        page=result.page,
        limit=result.limit,
        total=result.total,
        rows=[CashSessionSummary.model_validate(row) for row in result.rows],
    )


@router.get(
    "/cuadre/cash-sessions/{session_id}",
    response_model=CashSessionDetail,
    responses=error_responses(401, 403, 404),
)
def get_cash_session(
    session_id: int,
    _token=Depends(_any_role),
    service: CashSessionService = Depends(get_cash_session_service),
):
    return CashSessionDetail.model_validate(service.get(session_id))


@router.patch(
    "/cuadre/cash-sessions/{session_id}",
    response_model=CashSessionAmendedResponse,
    responses=error_responses(400, 401, 403, 404, 409, 422),
)
def amend_cash_session(
    session_id: int,
    payload: dict[str, Any] | None = Body(None),
    _token=Depends(_admin_only),
    service: CashSessionService = Depends(get_cash_session_service),
):
    result = service.amend(session_id, payload)
    return CashSessionAmendedResponse(
        reconciliation=_reconciliation_summary(result.reconciliation),
        session=CashSessionDetail.model_validate(result.session),
    )


@router.delete(
    "/cuadre/cash-sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=error_responses(401, 403, 404),
)
def delete_cash_session(
    session_id: int,
    _token=Depends(_admin_only),
    service: CashSessionService = Depends(get_cash_session_service),
):
    service.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
