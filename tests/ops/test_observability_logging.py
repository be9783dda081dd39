import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.laptrack.core import logging as laptrack_logging
from app.laptrack.core.db_timing import add_query_time, get_query_time_ms, track_query_time
from app.laptrack.middleware.observability import build_request_log_payload


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/laptrack/shipments/abc/status",
        "headers": [],
        "route": SimpleNamespace(path="/laptrack/shipments/{shipment_id}/status"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.user_id = "user-1"
    request.state.role = "warehouse"
    request.state.error_code = None
    response = Response(status_code=200)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "user-1"
    assert payload["role"] == "warehouse"
    assert payload["route"] == "/laptrack/shipments/{shipment_id}/status"
    assert payload["method"] == "POST"
    assert payload["status_code"] == 200
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57


def test_payload_without_response_reports_server_error():
    request = Request({"type": "http", "method": "GET", "path": "/health", "headers": []})

    payload = build_request_log_payload(request=request, response=None, latency_ms=1.0, db_time_ms=None)

    assert payload["route"] == "/health"
    assert payload["status_code"] == 500
    assert payload["db_time_ms"] is None
    assert payload["trace_id"] == ""


def test_query_time_only_accumulates_while_tracking():
    add_query_time(5.0)
    assert get_query_time_ms() is None

    with track_query_time():
        add_query_time(1.25)
        add_query_time(2.5)
        assert get_query_time_ms() == 3.75


def test_configure_logging_applies_level_to_laptrack_loggers():
    try:
        laptrack_logging.configure_logging("warning")

        assert logging.getLogger("app.laptrack.services.audit").getEffectiveLevel() == logging.WARNING
        assert logging.getLogger("laptrack.request").getEffectiveLevel() == logging.WARNING
    finally:
        laptrack_logging.configure_logging("INFO")


def test_log_json_tags_service_name(caplog):
    logger = logging.getLogger("app.laptrack.shipments")

    with caplog.at_level(logging.INFO, logger="app.laptrack.shipments"):
        laptrack_logging.log_json(logger, {"event": "status_updated", "status": "at_warehouse"})

    assert json.loads(caplog.records[-1].getMessage()) == {
        "service": laptrack_logging.settings.APP_NAME,
        "event": "status_updated",
        "status": "at_warehouse",
    }
