import json
from datetime import datetime
from decimal import Decimal

from app.cuadre.db.models import CashSession
from app.ops.integrity_scan import main, run_scan


def _database_url(db_session) -> str:
    return db_session.get_bind().url.render_as_string(hide_password=False)


def _tampered_session() -> CashSession:
    return CashSession(
        branch_name="Principal",
        branch_key="name:Principal",
        shift="A",
        session_at=datetime(2024, 5, 10, 18, 30),
        business_date=datetime(2024, 5, 10).date(),
        declared_total_sales=Decimal("1000"),
        cash_on_hand=Decimal("1000"),
        amount_to_deposit=Decimal("1000"),
        registered_total=Decimal("900"),
        variance=Decimal("-100"),
        status="Caja corta (-100)",
        cashier_name="Ana",
        cashier_id="1001",
    )


def test_integrity_scan_no_findings(db_session, capsys):
    exit_code = run_scan("json", False, database_url=_database_url(db_session))
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["summary"] == {"total": 0, "critical": 0, "warn": 0, "by_check": {}}


def test_integrity_scan_critical_exit(db_session, capsys):
    db_session.add(_tampered_session())
    db_session.commit()

    exit_code = run_scan("json", True, database_url=_database_url(db_session))
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload["summary"]["critical"] == 1
    assert payload["summary"]["by_check"] == {"derived_fields_consistent": 1}
    assert payload["findings"][0]["check_id"] == "derived_fields_consistent"


def test_integrity_scan_text_output_and_range(db_session, capsys):
    db_session.add(_tampered_session())
    db_session.commit()

    exit_code = main(
        [
            "--format",
            "text",
            "--fail-on-critical",
            "--from",
            "2024-06-01",
            "--to",
            "2024-06-30",
            "--database-url",
            _database_url(db_session),
        ]
    )
    output = capsys.readouterr().out

    assert exit_code == 0
    assert "Cash Session Integrity Report (2024-06-01 .. 2024-06-30)" in output
    assert "CRITICAL: 0" in output


def test_integrity_scan_can_be_disabled(db_session, monkeypatch, capsys):
    import app.ops.integrity_scan as integrity_scan

    monkeypatch.setattr(integrity_scan.settings, "OPS_ENABLE_INTEGRITY_SCAN", False)

    exit_code = run_scan("json", True, database_url=_database_url(db_session))

    assert exit_code == 2
    assert "disabled" in capsys.readouterr().err
