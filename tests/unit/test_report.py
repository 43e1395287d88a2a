"""
Unit tests for captured value validation and JSON handoff.
"""

import json
import pytest

from devtools_sniffer.exceptions import EmptyResultError
from devtools_sniffer.report import extract_captured_value, write_report
from devtools_sniffer.runtime import EvaluationResponse


class TestExtractCapturedValue:

    def test_value_returned_unmodified(self):
        report = {"score": 0.9, "audits": {"fcp": {"score": 1}}}
        response = EvaluationResponse({"result": {"type": "object", "value": report}})

        assert extract_captured_value(response) is report

    def test_empty_response_rejected(self):
        """Neither value nor exceptionDetails populated."""
        with pytest.raises(EmptyResultError, match="no value"):
            extract_captured_value(EvaluationResponse({}))

    @pytest.mark.parametrize("result", [
        {"type": "undefined"},
        {"type": "object", "subtype": "null", "value": None},
        {"type": "string", "value": ""},
        {"type": "object", "objectId": "1.2.3"},
    ])
    def test_unusable_values_rejected(self, result):
        with pytest.raises(EmptyResultError):
            extract_captured_value(EvaluationResponse({"result": result}))

    def test_exception_rejected(self):
        response = EvaluationResponse({
            "exceptionDetails": {"text": "Uncaught (in promise)"},
        })

        with pytest.raises(EmptyResultError, match="Problem sniffing report") as exc_info:
            extract_captured_value(response)

        assert exc_info.value.details["error"] == "Uncaught (in promise)"


class TestWriteReport:

    def test_compact_json(self, tmp_path):
        path = write_report({"score": 0.9}, tmp_path / "lhr.json")

        assert path.read_text() == '{"score":0.9}'

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / "latest-run" / "nested" / "lhr.json"

        write_report({"ok": True}, str(target))

        assert json.loads(target.read_text()) == {"ok": True}

    def test_non_ascii_preserved(self, tmp_path):
        path = write_report({"title": "Café"}, tmp_path / "lhr.json")

        assert path.read_text(encoding="utf-8") == '{"title":"Café"}'
