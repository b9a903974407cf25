"""
Parser Tests
============
Revision extraction, error-summary NDJSON and the perf resource union.
"""
import json

import pytest

from treeherder_cli.core.errors import InvalidInput
from treeherder_cli.models.job import LogReference
from treeherder_cli.parser.error_summary import is_error_summary, parse_error_line, parse_error_summary
from treeherder_cli.parser.perf_resource import (
    PerfPayload,
    PerfRedirect,
    decode_perf_payload,
    decode_perf_resource,
)
from treeherder_cli.parser.revision import extract_revision

PERF_PAYLOAD = {
    "framework": {"name": "job_resource_usage"},
    "suites": [
        {"name": "cpu", "subtests": [{"name": "user", "value": 12.5}, {"name": "system", "value": 3.25}]},
        {"name": "io", "subtests": []},
    ],
}


# ---------------------------------------------------------------------------
# Revision
# ---------------------------------------------------------------------------
class TestExtractRevision:

    def test_plain_hash_passthrough(self):
        assert extract_revision("a13b9fc22101") == "a13b9fc22101"

    def test_strips_whitespace(self):
        assert extract_revision("  a13b9fc22101\n") == "a13b9fc22101"

    def test_url_query(self):
        url = "https://treeherder.mozilla.org/jobs?repo=try&revision=a13b9fc22101"
        assert extract_revision(url) == "a13b9fc22101"

    def test_url_fragment_query(self):
        url = "https://treeherder.mozilla.org/#/jobs?repo=autoland&revision=0b7c1e2d4f55"
        assert extract_revision(url) == "0b7c1e2d4f55"

    def test_url_without_revision(self):
        with pytest.raises(InvalidInput):
            extract_revision("https://treeherder.mozilla.org/jobs?repo=try")

    def test_url_with_empty_revision(self):
        with pytest.raises(InvalidInput):
            extract_revision("https://treeherder.mozilla.org/jobs?repo=try&revision=")

    def test_unparsable_url(self):
        with pytest.raises(InvalidInput):
            extract_revision("http:///jobs?revision=abc")

    def test_empty_token(self):
        with pytest.raises(InvalidInput):
            extract_revision("   ")


# ---------------------------------------------------------------------------
# Error summary
# ---------------------------------------------------------------------------
class TestErrorSummary:

    @pytest.mark.parametrize(
        "name,url,expected",
        [
            ("errorsummary_json", "https://logs.test/a/wpt_raw.log", True),
            ("summary", "https://logs.test/a/summary.txt", True),
            ("other", "https://logs.test/a/wpt_errorsummary.log", True),
            ("live_backing_log", "https://logs.test/a/live_backing.log", False),
        ],
    )
    def test_is_error_summary(self, name, url, expected):
        assert is_error_summary(LogReference(name=name, url=url)) is expected

    def test_keeps_only_failing_test_results(self):
        lines = [
            json.dumps({"action": "test_result", "test": "dom/a.html", "status": "FAIL", "message": "boom"}),
            json.dumps({"action": "test_result", "test": "dom/b.html", "status": "PASS"}),
            json.dumps({"action": "log", "level": "ERROR", "message": "noise"}),
            json.dumps({"action": "test_result", "test": "dom/c.html", "subtest": "s1", "status": "FAIL",
                        "stack": "frame0\nframe1", "line": 12}),
        ]
        errors = parse_error_summary("\n".join(lines))
        assert [e.test for e in errors] == ["dom/a.html", "dom/c.html"]
        assert errors[1].subtest == "s1"
        assert errors[1].stack == "frame0\nframe1"
        assert errors[1].line == 12

    def test_malformed_lines_do_not_affect_neighbours(self):
        good = json.dumps({"action": "test_result", "test": "t.js", "status": "FAIL"})
        text = "\n".join([
            "{not json",
            good,
            "[1, 2, 3]",
            json.dumps({"test": "missing-action", "status": "FAIL"}),
            json.dumps({"action": "test_result", "test": "t2.js", "status": "FAIL", "line": "twelve"}),
            "",
            good,
        ])
        errors = parse_error_summary(text)
        assert len(errors) == 2
        assert all(e.test == "t.js" for e in errors)

    def test_parse_error_line_blank(self):
        assert parse_error_line("   ") is None

    def test_empty_text(self):
        assert parse_error_summary("") == []


# ---------------------------------------------------------------------------
# Perf resource
# ---------------------------------------------------------------------------
class TestPerfResource:

    def test_redirect(self):
        resource = decode_perf_resource(json.dumps({"url": "https://storage.test/perf.json"}))
        assert resource == PerfRedirect(url="https://storage.test/perf.json")

    def test_payload(self):
        resource = decode_perf_resource(json.dumps(PERF_PAYLOAD))
        assert isinstance(resource, PerfPayload)
        assert resource.data.framework.name == "job_resource_usage"
        assert [s.name for s in resource.data.suites] == ["cpu", "io"]
        assert resource.data.suites[0].subtests[1].value == 3.25

    @pytest.mark.parametrize("text", ["not json", json.dumps({"foo": 1}), json.dumps({"url": 5}), "[]"])
    def test_neither_shape(self, text):
        with pytest.raises(ValueError):
            decode_perf_resource(text)

    def test_payload_decoder_rejects_redirect(self):
        with pytest.raises(ValueError):
            decode_perf_payload(json.dumps({"url": "https://storage.test/perf.json"}))

    def test_payload_decoder(self):
        data = decode_perf_payload(json.dumps(PERF_PAYLOAD))
        assert data.suites[0].subtests[0].name == "user"
