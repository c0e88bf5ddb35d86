from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError

from app.cuadre.core.error_catalog import AppError, ErrorCatalog
from app.cuadre.core.metrics import metrics
from app.cuadre.db.models import CashSession
from app.cuadre.repos.cash_sessions import CashSessionFilters, CashSessionStore, branch_key_for
from app.cuadre.repos.master_data import MasterDataLookup
from app.cuadre.services.audit import AuditDispatcher, change_set, creation_snapshot
from app.cuadre.services.diffing import AUDITABLE_FIELDS, diff_changes
from app.cuadre.services.payload import (
    COUNT_FIELDS,
    MAX_AMOUNT,
    MAX_COUNT,
    MONEY_FIELDS,
    LineItemInput,
    has_field,
    parse_count,
    parse_decimal,
    parse_line_items,
    parse_optional_int,
    parse_session_timestamp,
    parse_string,
    read_count,
    read_decimal,
    read_optional_int,
    read_raw,
    read_string,
)
from app.cuadre.services.reconciliation import ReconciliationInput, ReconciliationResult, reconcile

logger = logging.getLogger(__name__)

SHIFTS = ("A", "B", "C", "D")
AUDIT_RESOURCE = "registro_caja"
ACTION_CREATE = "crear_registro"
ACTION_UPDATE = "actualizar_registro"
ACTION_DELETE = "eliminar_registro"


@dataclass(frozen=True)
class RegistrationResult:
    id: int
    reconciliation: ReconciliationResult


@dataclass(frozen=True)
class AmendmentResult:
    reconciliation: ReconciliationResult
    session: CashSession


@dataclass(frozen=True)
class SessionPage:
    page: int
    limit: int
    total: int
    rows: list[CashSession]


def _require(value: str | None, field: str) -> str:
    if not value:
        raise AppError(ErrorCatalog.MISSING_REQUIRED_FIELD, details={"field": field})
    return value


def _validate_shift(value: str) -> str:
    shift = value.upper()
    if shift not in SHIFTS:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"field": "shift", "message": "shift must be one of A, B, C, D"},
        )
    return shift


def _ensure_in_range(amounts: Mapping[str, Decimal], counts: Mapping[str, int]) -> None:
    negative = sorted(field for field, value in {**amounts, **counts}.items() if value < 0)
    if negative:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"fields": negative, "message": "amounts and counts must not be negative"},
        )
    too_large = sorted(
        [field for field, value in amounts.items() if value > MAX_AMOUNT]
        + [field for field, value in counts.items() if value > MAX_COUNT]
    )
    if too_large:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"fields": too_large, "message": "amounts and counts exceed the storable maximum"},
        )


def _ensure_storable(result: ReconciliationResult) -> None:
    overflowing = sorted(
        field
        for field, value in (("registered_total", result.registered_total), ("variance", result.variance))
        if abs(value) > MAX_AMOUNT
    )
    if overflowing:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"fields": overflowing, "message": "derived totals exceed the storable maximum"},
        )


def _reconciliation_input(amounts: Mapping[str, Decimal]) -> ReconciliationInput:
    return ReconciliationInput(**{field: amounts[field] for field in MONEY_FIELDS})


def _derived_fields(result: ReconciliationResult) -> dict:
    return {
        "amount_to_deposit": result.amount_to_deposit,
        "registered_total": result.registered_total,
        "variance": result.variance,
        "status": result.status,
    }


def _stored_decimal(value) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


class CashSessionService:
    def __init__(self, store: CashSessionStore, lookup: MasterDataLookup, audit: AuditDispatcher):
        self.store = store
        self.lookup = lookup
        self.audit = audit

    def _resolve_branch_name(self, branch_id: int | None, branch_name: str | None) -> str | None:
        if branch_id is None:
            return branch_name
        known_name = self.lookup.branch_name(branch_id)
        if known_name is None:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"field": "branch_id", "message": "unknown branch"},
            )
        return branch_name or known_name

    def _resolve_line_items(self, items: list[LineItemInput]) -> list[LineItemInput]:
        resolved: list[LineItemInput] = []
        for item in items:
            if item.quantity < 0 or item.amount < 0:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"field": "agreement_items", "message": "amounts and counts must not be negative"},
                )
            if item.quantity > MAX_COUNT or item.amount > MAX_AMOUNT:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"field": "agreement_items", "message": "amounts and counts exceed the storable maximum"},
                )
            name = item.agreement_name
            if item.agreement_id is not None:
                known_name = self.lookup.agreement_name(item.agreement_id)
                if known_name is None:
                    raise AppError(
                        ErrorCatalog.VALIDATION_ERROR,
                        details={"field": "agreement_items", "message": "unknown agreement"},
                    )
                name = name or known_name
            resolved.append(
                LineItemInput(
                    agreement_id=item.agreement_id,
                    agreement_name=name,
                    quantity=item.quantity,
                    amount=item.amount,
                )
            )
        return resolved

    def _line_items_from(self, body: Mapping[str, Any]) -> list[LineItemInput] | None:
        raw_items = read_raw(body, "agreement_items")
        if not isinstance(raw_items, list):
            return None
        return self._resolve_line_items(parse_line_items(raw_items))

    def _duplicate_error(self, source: str, slot: dict) -> AppError:
        metrics.increment_duplicate_session(source)
        logger.info("Rejected duplicate cash session", extra={"source": source, **slot})
        return AppError(ErrorCatalog.DUPLICATE_SESSION, details=slot)

    def register(self, payload: Mapping[str, Any] | None) -> RegistrationResult:
        body = payload or {}
        cashier_name = _require(read_string(body, "cashier_name"), "cashier_name")
        cashier_id = _require(read_string(body, "cashier_id"), "cashier_id")
        branch_id = read_optional_int(body, "branch_id")
        branch_name = _require(
            self._resolve_branch_name(branch_id, read_string(body, "branch_name")),
            "branch_name",
        )
        shift = _validate_shift(_require(read_string(body, "shift"), "shift"))

        amounts = {field: read_decimal(body, field) for field in MONEY_FIELDS}
        counts = {field: read_count(body, field) for field in COUNT_FIELDS}
        _ensure_in_range(amounts, counts)
        line_items = self._line_items_from(body) or []

        reconciliation = reconcile(_reconciliation_input(amounts))
        _ensure_storable(reconciliation)
        session_at = parse_session_timestamp(
            read_raw(body, "session_date"), read_raw(body, "session_time")
        ) or datetime.now()
        branch_key = branch_key_for(branch_id, branch_name)
        slot = {"branch_key": branch_key, "shift": shift, "business_date": session_at.date().isoformat()}
        if self.store.slot_taken(branch_key, shift, session_at.date()):
            raise self._duplicate_error("precheck", slot)

        fields = {
            "branch_id": branch_id,
            "branch_name": branch_name,
            "branch_key": branch_key,
            "shift": shift,
            "session_at": session_at,
            "business_date": session_at.date(),
            **amounts,
            **counts,
            **_derived_fields(reconciliation),
            "note": read_string(body, "note"),
            "cashier_name": cashier_name,
            "cashier_id": cashier_id,
        }
        try:
            session_id = self.store.create(fields, line_items)
        except IntegrityError as exc:
            raise self._duplicate_error("constraint", slot) from exc

        self.audit.submit(
            ACTION_CREATE,
            AUDIT_RESOURCE,
            session_id,
            creation_snapshot(
                {
                    "branch_name": branch_name,
                    "shift": shift,
                    "cashier_name": cashier_name,
                    "cashier_id": cashier_id,
                }
            ),
        )
        return RegistrationResult(id=session_id, reconciliation=reconciliation)

    def amend(self, session_id: int, payload: Mapping[str, Any] | None) -> AmendmentResult:
        existing = self.store.get(session_id)
        if existing is None:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND, details={"id": session_id})
        body = payload or {}

        def merged(field: str, parse, current):
            raw = read_raw(body, field)
            return parse(raw) if raw is not None else current

        amounts = {
            field: merged(field, parse_decimal, _stored_decimal(getattr(existing, field)))
            for field in MONEY_FIELDS
        }
        counts = {field: merged(field, parse_count, int(getattr(existing, field) or 0)) for field in COUNT_FIELDS}
        _ensure_in_range(amounts, counts)

        cashier_name = _require(merged("cashier_name", parse_string, existing.cashier_name), "cashier_name")
        cashier_id = _require(merged("cashier_id", parse_string, existing.cashier_id), "cashier_id")
        shift = _validate_shift(_require(merged("shift", parse_string, existing.shift), "shift"))
        note = parse_string(read_raw(body, "note")) if has_field(body, "note") else existing.note

        branch_id = existing.branch_id
        branch_name = merged("branch_name", parse_string, None)
        if has_field(body, "branch_id"):
            branch_id = parse_optional_int(read_raw(body, "branch_id"))
            if branch_id is not None and branch_id != existing.branch_id:
                branch_name = self._resolve_branch_name(branch_id, branch_name)
        branch_name = _require(branch_name or existing.branch_name, "branch_name")

        session_at = existing.session_at
        if has_field(body, "session_date") or has_field(body, "session_time"):
            session_date = read_raw(body, "session_date") or existing.session_at.date().isoformat()
            session_at = parse_session_timestamp(session_date, read_raw(body, "session_time")) or existing.session_at

        line_items = self._line_items_from(body)
        reconciliation = reconcile(_reconciliation_input(amounts))
        _ensure_storable(reconciliation)
        branch_key = branch_key_for(branch_id, branch_name)

        fields = {
            "branch_id": branch_id,
            "branch_name": branch_name,
            "branch_key": branch_key,
            "shift": shift,
            "session_at": session_at,
            "business_date": session_at.date(),
            **amounts,
            **counts,
            **_derived_fields(reconciliation),
            "note": note,
            "cashier_name": cashier_name,
            "cashier_id": cashier_id,
        }
        slot = {"branch_key": branch_key, "shift": shift, "business_date": session_at.date().isoformat()}
        if self.store.slot_taken(branch_key, shift, session_at.date(), exclude_id=session_id):
            raise self._duplicate_error("precheck", slot)

        before = {field: getattr(existing, field) for field in AUDITABLE_FIELDS}
        try:
            updated = self.store.update(session_id, fields, line_items)
        except IntegrityError as exc:
            raise self._duplicate_error("constraint", slot) from exc
        if not updated:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND, details={"id": session_id})

        self.audit.submit(
            ACTION_UPDATE,
            AUDIT_RESOURCE,
            session_id,
            change_set(fields, diff_changes(before, fields)),
        )
        session = self.store.get(session_id)
        if session is None:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND, details={"id": session_id})
        return AmendmentResult(reconciliation=reconciliation, session=session)

    def delete(self, session_id: int) -> None:
        if not self.store.delete(session_id):
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND, details={"id": session_id})
        self.audit.submit(ACTION_DELETE, AUDIT_RESOURCE, session_id, None)

    def get(self, session_id: int) -> CashSession:
        session = self.store.get(session_id)
        if session is None:
            raise AppError(ErrorCatalog.SESSION_NOT_FOUND, details={"id": session_id})
        return session

    def list(self, filters: CashSessionFilters, *, page: int, limit: int) -> SessionPage:
        rows, total = self.store.list(filters, limit=limit, offset=(page - 1) * limit)
        return SessionPage(page=page, limit=limit, total=total, rows=rows)
