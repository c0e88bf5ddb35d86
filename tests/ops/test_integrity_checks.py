from datetime import date, datetime
from decimal import Decimal

import pytest

from app.cuadre.db.models import AgreementLineItem, CashSession
from app.ops.integrity_checks import (
    check_agreement_items_match_aggregate,
    check_derived_fields_consistent,
    check_orphan_line_items,
    run_integrity_checks,
)


def _session(**overrides):
    session_at = overrides.pop("session_at", datetime(2024, 5, 10, 18, 30))
    values = {
        "branch_name": "Principal",
        "branch_key": "name:Principal",
        "shift": "A",
        "session_at": session_at,
        "business_date": session_at.date(),
        "declared_total_sales": Decimal("1000"),
        "cash_on_hand": Decimal("600"),
        "card_amount": Decimal("300"),
        "agreement_amount": Decimal("100"),
        "agreement_count": 1,
        "amount_to_deposit": Decimal("600"),
        "registered_total": Decimal("1000"),
        "variance": Decimal("0"),
        "status": "Caja OK",
        "cashier_name": "Ana",
        "cashier_id": "1001",
    }
    values.update(overrides)
    return CashSession(**values)


def _add(db_session, *rows):
    db_session.add_all(rows)
    db_session.commit()


def test_consistent_session_has_no_findings(db_session):
    session = _session()
    _add(db_session, session)
    _add(db_session, AgreementLineItem(session_id=session.id, agreement_name="Sodexo", quantity=1, amount=Decimal("100")))

    assert run_integrity_checks(db_session) == []


def test_agreement_items_mismatch_is_a_warning(db_session):
    session = _session()
    _add(db_session, session)
    _add(db_session, AgreementLineItem(session_id=session.id, agreement_name="Sodexo", quantity=2, amount=Decimal("80")))

    findings = check_agreement_items_match_aggregate(db_session)

    assert len(findings) == 1
    assert findings[0].severity == "WARN"
    assert findings[0].entity_id == session.id
    assert findings[0].details["items_quantity"] == 2


def test_sessions_without_line_items_are_not_compared(db_session):
    _add(db_session, _session(agreement_amount=Decimal("500")))

    assert check_agreement_items_match_aggregate(db_session) == []


def test_derived_fields_mismatch_is_critical(db_session):
    session = _session(variance=Decimal("-50"))
    _add(db_session, session)

    findings = check_derived_fields_consistent(db_session)

    assert len(findings) == 1
    assert findings[0].severity == "CRITICAL"
    assert set(findings[0].details) == {"variance"}
    assert Decimal(findings[0].details["variance"]["stored"]) == Decimal("-50")
    assert Decimal(findings[0].details["variance"]["expected"]) == Decimal("0")


def test_derived_fields_check_honors_date_range(db_session):
    _add(db_session, _session(variance=Decimal("-50"), session_at=datetime(2024, 4, 1, 9, 0)))

    assert check_derived_fields_consistent(db_session, date(2024, 5, 1), date(2024, 5, 31)) == []


def test_orphan_line_items_are_critical(db_session):
    if db_session.get_bind().dialect.name != "sqlite":
        pytest.skip("orphan rows need a database without enforced foreign keys")
    _add(db_session, AgreementLineItem(session_id=9999, agreement_name="Sodexo", quantity=1, amount=Decimal("10")))

    findings = check_orphan_line_items(db_session)

    assert [(finding.severity, finding.details) for finding in findings] == [("CRITICAL", {"session_id": 9999})]
