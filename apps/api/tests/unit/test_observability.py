from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from codeer.observability import JsonFormatter, request_id_var


def _record(**fields) -> logging.LogRecord:  # noqa: ANN003
    record = logging.LogRecord("codeer.publishing", logging.INFO, __file__, 1, "publish.stage", None, None)
    record.fields = fields
    return record


def test_json_formatter_merges_fields_and_request_id() -> None:
    token = request_id_var.set("req-42")
    try:
        line = JsonFormatter().format(_record(stage="creating_repo", page_id=7))
    finally:
        request_id_var.reset(token)

    payload = json.loads(line)
    assert payload["event"] == "publish.stage"
    assert payload["request_id"] == "req-42"
    assert payload["stage"] == "creating_repo"
    assert payload["page_id"] == 7
    assert payload["service"] == "codeer-api"


def test_json_formatter_omits_request_id_outside_requests() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert "request_id" not in payload
