import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.cuadre.core.db_timing import add_db_time, is_measuring, measure_db_time
from app.cuadre.middleware.observability import build_request_log_payload


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "PATCH",
        "path": "/cuadre/cash-sessions/5",
        "headers": [],
        "route": SimpleNamespace(path="/cuadre/cash-sessions/{session_id}"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.user_id = "3"
    request.state.role = "CASHIER"
    request.state.branch_id = "1"
    request.state.error_code = "DUPLICATE_SESSION"
    response = Response(status_code=409)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "3"
    assert payload["role"] == "CASHIER"
    assert payload["branch_id"] == "1"
    assert payload["route"] == "/cuadre/cash-sessions/{session_id}"
    assert payload["method"] == "PATCH"
    assert payload["status_code"] == 409
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57
    assert payload["error_code"] == "DUPLICATE_SESSION"


def test_db_time_is_only_accumulated_while_measuring():
    add_db_time(5.0)
    assert is_measuring() is False

    with measure_db_time() as timer:
        assert is_measuring() is True
        add_db_time(1.25)
        add_db_time(2.5)

    assert timer.elapsed_ms == 3.75
    assert is_measuring() is False


def test_request_log_line_is_json(client, caplog):
    with caplog.at_level(logging.INFO, logger="cuadre.request"):
        client.get("/health", headers={"X-Trace-ID": "log-trace-1"})

    records = [json.loads(record.getMessage()) for record in caplog.records if record.name == "cuadre.request"]
    assert records
    line = records[-1]
    assert line["service"] == "CUADRE-CAJA"
    assert line["event"] == "http_request"
    assert line["trace_id"] == "log-trace-1"
    assert line["route"] == "/health"
    assert line["status_code"] == 200
