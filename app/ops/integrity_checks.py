from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from app.cuadre.core.metrics import metrics
from app.cuadre.db.models import AgreementLineItem, CashSession
from app.cuadre.services.reconciliation import ReconciliationInput, reconcile


SEVERITY_CRITICAL = "CRITICAL"
SEVERITY_WARN = "WARN"
TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class IntegrityFinding:
    check_id: str
    severity: str
    message: str
    entity: str
    entity_id: int | None
    details: dict


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _date_conditions(date_from: date | None, date_to: date | None) -> list:
    conditions = []
    if date_from is not None:
        conditions.append(CashSession.business_date >= date_from)
    if date_to is not None:
        conditions.append(CashSession.business_date <= date_to)
    return conditions


def check_agreement_items_match_aggregate(
    db, date_from: date | None = None, date_to: date | None = None
) -> list[IntegrityFinding]:
    items = (
        select(
            AgreementLineItem.session_id.label("session_id"),
            func.sum(AgreementLineItem.amount).label("amount"),
            func.sum(AgreementLineItem.quantity).label("quantity"),
        )
        .group_by(AgreementLineItem.session_id)
        .subquery()
    )
    rows = db.execute(
        select(
            CashSession.id,
            CashSession.agreement_amount,
            CashSession.agreement_count,
            items.c.amount,
            items.c.quantity,
        )
        .join(items, items.c.session_id == CashSession.id)
        .where(*_date_conditions(date_from, date_to))
    ).all()
    findings = []
    for row in rows:
        items_amount = _decimal(row.amount)
        items_quantity = int(row.quantity or 0)
        if abs(items_amount - _decimal(row.agreement_amount)) <= TOLERANCE and items_quantity == int(
            row.agreement_count or 0
        ):
            continue
        findings.append(
            IntegrityFinding(
                check_id="agreement_items_match_aggregate",
                severity=SEVERITY_WARN,
                message="Agreement line items do not add up to the session aggregate.",
                entity="cash_sessions",
                entity_id=row.id,
                details={
                    "agreement_amount": str(_decimal(row.agreement_amount)),
                    "items_amount": str(items_amount),
                    "agreement_count": int(row.agreement_count or 0),
                    "items_quantity": items_quantity,
                },
            )
        )
    if findings:
        metrics.increment_invariant_violation("agreement_items_match_aggregate", len(findings))
    return findings


def check_derived_fields_consistent(
    db, date_from: date | None = None, date_to: date | None = None
) -> list[IntegrityFinding]:
    sessions = db.execute(select(CashSession).where(*_date_conditions(date_from, date_to))).scalars().all()
    findings = []
    for session in sessions:
        expected = reconcile(
            ReconciliationInput(
                declared_total_sales=_decimal(session.declared_total_sales),
                cash_on_hand=_decimal(session.cash_on_hand),
                card_amount=_decimal(session.card_amount),
                agreement_amount=_decimal(session.agreement_amount),
                voucher_amount=_decimal(session.voucher_amount),
                internal_amount=_decimal(session.internal_amount),
            )
        )
        mismatched = {
            name: {"stored": str(_decimal(getattr(session, name))), "expected": str(getattr(expected, name))}
            for name in ("amount_to_deposit", "registered_total", "variance")
            if abs(_decimal(getattr(session, name)) - getattr(expected, name)) > TOLERANCE
        }
        if not mismatched:
            continue
        findings.append(
            IntegrityFinding(
                check_id="derived_fields_consistent",
                severity=SEVERITY_CRITICAL,
                message="Stored derived fields disagree with the reconciliation of the stored inputs.",
                entity="cash_sessions",
                entity_id=session.id,
                details=mismatched,
            )
        )
    if findings:
        metrics.increment_invariant_violation("derived_fields_consistent", len(findings))
    return findings


def check_orphan_line_items(db) -> list[IntegrityFinding]:
    rows = db.execute(
        select(AgreementLineItem.id, AgreementLineItem.session_id)
        .outerjoin(CashSession, CashSession.id == AgreementLineItem.session_id)
        .where(CashSession.id.is_(None))
    ).all()
    findings = [
        IntegrityFinding(
            check_id="orphan_line_items",
            severity=SEVERITY_CRITICAL,
            message="Agreement line item references a missing cash session.",
            entity="agreement_line_items",
            entity_id=row.id,
            details={"session_id": row.session_id},
        )
        for row in rows
    ]
    if findings:
        metrics.increment_invariant_violation("orphan_line_items", len(findings))
    return findings


def run_integrity_checks(db, date_from: date | None = None, date_to: date | None = None) -> list[IntegrityFinding]:
    findings: list[IntegrityFinding] = []
    findings.extend(check_agreement_items_match_aggregate(db, date_from, date_to))
    findings.extend(check_derived_fields_consistent(db, date_from, date_to))
    findings.extend(check_orphan_line_items(db))
    return findings
