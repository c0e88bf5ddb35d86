from __future__ import annotations

import argparse
import json
import sys
from collections import Counter
from dataclasses import asdict
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.cuadre.core.config import settings
from app.ops.integrity_checks import SEVERITY_CRITICAL, SEVERITY_WARN, IntegrityFinding, run_integrity_checks

EXIT_OK = 0
EXIT_CRITICAL = 1
EXIT_DISABLED = 2


def summarize(findings: list[IntegrityFinding]) -> dict:
    severities = Counter(finding.severity for finding in findings)
    return {
        "total": len(findings),
        "critical": severities.get(SEVERITY_CRITICAL, 0),
        "warn": severities.get(SEVERITY_WARN, 0),
        "by_check": dict(sorted(Counter(finding.check_id for finding in findings).items())),
    }


def render_text(summary: dict, findings: list[IntegrityFinding], date_from: date | None, date_to: date | None) -> str:
    window = f"{date_from or '*'} .. {date_to or '*'}"
    lines = [
        f"Cash Session Integrity Report ({window})",
        f"Total findings: {summary['total']}",
        f"CRITICAL: {summary['critical']}",
        f"WARN: {summary['warn']}",
    ]
    for check_id, count in summary["by_check"].items():
        lines.append(f"  {check_id}: {count}")
    lines.append("")
    for finding in findings:
        entity_id = finding.entity_id if finding.entity_id is not None else "-"
        lines.append(f"[{finding.severity}] {finding.check_id} {finding.entity}#{entity_id} {finding.message}")
        if finding.details:
            lines.append(f"  details={json.dumps(finding.details, default=str)}")
    return "\n".join(lines)


def collect_findings(database_url: str, date_from: date | None, date_to: date | None) -> list[IntegrityFinding]:
    engine = create_engine(database_url, future=True)
    try:
        with sessionmaker(bind=engine, autoflush=False, future=True)() as db:
            return run_integrity_checks(db, date_from, date_to)
    finally:
        engine.dispose()


def run_scan(
    output_format: str,
    fail_on_critical: bool,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    database_url: str | None = None,
) -> int:
    if not settings.OPS_ENABLE_INTEGRITY_SCAN:
        print("Integrity scan disabled by OPS_ENABLE_INTEGRITY_SCAN.", file=sys.stderr)
        return EXIT_DISABLED
    findings = collect_findings(database_url or settings.DATABASE_URL, date_from, date_to)
    summary = summarize(findings)
    if output_format == "json":
        payload = {"summary": summary, "findings": [asdict(finding) for finding in findings]}
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(render_text(summary, findings, date_from, date_to))
    if fail_on_critical and summary["critical"]:
        return EXIT_CRITICAL
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Read-only consistency scan of stored cash sessions")
    parser.add_argument("--format", choices=["json", "text"], default="text")
    parser.add_argument("--fail-on-critical", action="store_true", help="exit 1 when a CRITICAL finding exists")
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat, help="first business date (YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat, help="last business date (YYYY-MM-DD)")
    parser.add_argument("--database-url", help="defaults to DATABASE_URL")
    args = parser.parse_args(argv)
    return run_scan(
        args.format,
        args.fail_on_critical,
        date_from=args.date_from,
        date_to=args.date_to,
        database_url=args.database_url,
    )


if __name__ == "__main__":
    raise SystemExit(main())
