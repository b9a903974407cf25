"""
Storage Tests
=============
Log store layout/search and the metadata.json cache.
"""
import logging
import re
from unittest.mock import patch

import pytest

from treeherder_cli.core.errors import CacheCorrupt
from treeherder_cli.models.cache import CachedPushMetadata
from treeherder_cli.models.job import Job
from treeherder_cli.services.cache_service import (
    load_cache_metadata,
    metadata_path,
    save_cache_metadata,
    search_cached_logs,
)
from treeherder_cli.services.log_store import (
    LogStorage,
    iter_lines,
    log_filename,
    save_log,
    search_log_file,
    search_text,
)


def _job(job_id, platform="linux64"):
    return Job(
        id=job_id,
        job_type_name="test-linux/opt-mochitest-1",
        job_type_symbol="M1",
        platform=platform,
        result="testfailed",
        state="completed",
        duration=120,
    )


# ---------------------------------------------------------------------------
# Line handling and search
# ---------------------------------------------------------------------------
class TestLineSearch:

    def test_iter_lines_strips_carriage_returns(self):
        assert list(iter_lines("a\r\nb\nc")) == [(1, "a"), (2, "b"), (3, "c")]

    def test_iter_lines_trailing_newline_and_blank_lines(self):
        assert list(iter_lines("a\n\nb\n")) == [(1, "a"), (2, ""), (3, "b")]

    def test_iter_lines_empty(self):
        assert list(iter_lines("")) == []

    def test_search_text_is_one_based(self):
        text = "ok\nASSERTION failed here\nok\nanother ASSERTION\r\n"
        matches = search_text(text, re.compile("ASSERTION"), "live_backing_log")
        assert [(m.line_number, m.line_content) for m in matches] == [
            (2, "ASSERTION failed here"),
            (4, "another ASSERTION"),
        ]
        assert all(m.log_name == "live_backing_log" for m in matches)

    def test_search_keeps_full_line(self):
        long_line = "LEAK " + "x" * 500
        matches = search_text(long_line, re.compile("LEAK"), "log")
        assert matches[0].line_content == long_line

    def test_search_log_file_uses_stem(self, tmp_path):
        path = save_log(tmp_path, "live_backing_log", "one\nTIMEOUT two\n")
        matches = search_log_file(path, re.compile("TIMEOUT"))
        assert matches[0].log_name == "live_backing_log"
        assert matches[0].line_number == 2

    @pytest.mark.parametrize(
        "name,expected",
        [("live_backing_log", "live_backing_log.log"), ("a/b", "a_b.log"), ("..", "__.log"), ("", "unnamed.log")],
    )
    def test_log_filename(self, name, expected):
        assert log_filename(name) == expected


# ---------------------------------------------------------------------------
# LogStorage
# ---------------------------------------------------------------------------
class TestLogStorage:

    def test_ephemeral_cleanup_removes_root(self):
        storage = LogStorage.ephemeral()
        job_dir = storage.job_dir(7)
        assert job_dir.name == "job_7"
        assert job_dir.is_dir()
        storage.cleanup()
        assert not storage.root.exists()

    def test_persistent_survives_cleanup(self, tmp_path):
        storage = LogStorage.persistent(tmp_path / "cache")
        save_log(storage.job_dir(3), "errorsummary_json", "{}")
        storage.cleanup()
        assert (tmp_path / "cache" / "job_3" / "errorsummary_json.log").read_text() == "{}"
        assert storage.is_ephemeral is False


# ---------------------------------------------------------------------------
# Cache metadata
# ---------------------------------------------------------------------------
class TestCacheMetadata:

    def test_round_trip(self, tmp_path):
        metadata = CachedPushMetadata(revision="abc123", push_id=42, repo="try", jobs=[_job(1), _job(2)])
        path = save_cache_metadata(tmp_path, metadata)
        assert path == metadata_path(tmp_path)
        assert load_cache_metadata(tmp_path) == metadata

    def test_missing_metadata(self, tmp_path):
        with pytest.raises(CacheCorrupt):
            load_cache_metadata(tmp_path)

    def test_unparsable_metadata(self, tmp_path):
        metadata_path(tmp_path).write_text("{not json")
        with pytest.raises(CacheCorrupt):
            load_cache_metadata(tmp_path)

    def test_non_utf8_metadata(self, tmp_path):
        metadata_path(tmp_path).write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(CacheCorrupt):
            load_cache_metadata(tmp_path)

    def test_wrong_shape_metadata(self, tmp_path):
        metadata_path(tmp_path).write_text('{"revision": "abc"}')
        with pytest.raises(CacheCorrupt):
            load_cache_metadata(tmp_path)


# ---------------------------------------------------------------------------
# Cached log search
# ---------------------------------------------------------------------------
class TestCachedSearch:

    def _populate(self, root):
        job_dir = root / "job_1"
        job_dir.mkdir(parents=True)
        (job_dir / "live_backing_log.log").write_text("start\nPROCESS-CRASH here\nend\n")
        (job_dir / "errorsummary_json.log").write_text('{"action": "crash"}\n')
        (job_dir / "notes.txt").write_text("PROCESS-CRASH ignored\n")

    def test_search_matches_and_log_dir(self, tmp_path):
        self._populate(tmp_path)
        results = search_cached_logs(tmp_path, [_job(1)], re.compile("CRASH"))
        assert len(results) == 1
        assert results[0].log_dir == str(tmp_path / "job_1")
        assert [(m.log_name, m.line_number) for m in results[0].log_matches] == [("live_backing_log", 2)]

    def test_no_pattern_means_no_matches(self, tmp_path):
        self._populate(tmp_path)
        results = search_cached_logs(tmp_path, [_job(1)])
        assert results[0].log_matches == []

    def test_missing_job_dir_is_skipped_with_warning(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING, logger="treeherder_cli.services.cache_service")
        self._populate(tmp_path)
        results = search_cached_logs(tmp_path, [_job(1), _job(2)], re.compile("CRASH"))
        assert [r.job.id for r in results] == [1]
        assert "job_2" in caplog.text

    def test_unreadable_log_is_cache_corrupt(self, tmp_path):
        self._populate(tmp_path)
        with patch(
            "treeherder_cli.services.cache_service.search_log_file",
            side_effect=OSError("permission denied"),
        ):
            with pytest.raises(CacheCorrupt):
                search_cached_logs(tmp_path, [_job(1)], re.compile("CRASH"))
