"""Tests for UsageLog model and UsageStore."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from job_worth.logging.models import UsageLog
from job_worth.logging.usage_store import UsageStore


# --- UsageLog model tests ---


class TestUsageLog:
    def test_create_minimal(self):
        log = UsageLog()
        assert log.session_id == "anonymous"
        assert log.success is True
        assert log.fallback_reason is None
        assert log.total_input_tokens == 0
        assert log.id  # uuid auto-generated

    def test_unique_ids(self):
        assert UsageLog().id != UsageLog().id

    def test_timestamp_auto(self):
        before = datetime.now()
        log = UsageLog()
        after = datetime.now()
        assert before <= log.timestamp <= after

    def test_fallback_fields(self):
        log = UsageLog(success=False, fallback_reason="missing API key", score=0)
        assert log.success is False
        assert log.fallback_reason == "missing API key"


# --- UsageStore tests ---


@pytest.fixture
def usage_store(tmp_path: Path) -> UsageStore:
    return UsageStore(db_path=tmp_path / "test_usage.db")


class TestUsageStore:
    def test_save_and_get(self, usage_store: UsageStore):
        log = UsageLog(position="产品经理", city="北京", score=72)
        usage_store.save_log(log)
        logs = usage_store.get_logs()
        assert len(logs) == 1
        assert logs[0].id == log.id
        assert logs[0].position == "产品经理"

    def test_get_by_session_id(self, usage_store: UsageStore):
        usage_store.save_log(UsageLog(session_id="s1"))
        usage_store.save_log(UsageLog(session_id="s2"))
        usage_store.save_log(UsageLog(session_id="s1"))

        assert len(usage_store.get_logs(session_id="s1")) == 2
        assert len(usage_store.get_logs(session_id="s2")) == 1

    def test_get_logs_limit(self, usage_store: UsageStore):
        for _ in range(10):
            usage_store.save_log(UsageLog())
        assert len(usage_store.get_logs(limit=3)) == 3

    def test_get_logs_empty(self, usage_store: UsageStore):
        assert usage_store.get_logs() == []

    def test_monthly_stats(self, usage_store: UsageStore):
        usage_store.save_log(UsageLog(total_input_tokens=1000, total_output_tokens=500, score=90))
        usage_store.save_log(UsageLog(total_input_tokens=2000, total_output_tokens=1000, score=80))
        usage_store.save_log(UsageLog(success=False, score=0, fallback_reason="upstream error"))

        stats = usage_store.get_monthly_stats()

        assert stats["total_runs"] == 3
        assert stats["total_input_tokens"] == 3000
        assert stats["total_output_tokens"] == 1500
        assert stats["avg_score"] == 85.0
        assert stats["success_rate"] == pytest.approx(200 / 3)
        assert stats["month"] == datetime.now().strftime("%Y-%m")

    def test_monthly_stats_empty(self, usage_store: UsageStore):
        stats = usage_store.get_monthly_stats()
        assert stats["total_runs"] == 0
        assert stats["avg_score"] is None
        assert stats["success_rate"] == 0.0

    def test_roundtrip_preserves_fields(self, usage_store: UsageStore):
        log = UsageLog(
            session_id="sess-rt",
            model="moonshot-v1-8k",
            position="数据分析师",
            city="上海",
            company_name="RoundTrip Inc",
            score=0,
            success=False,
            fallback_reason="invalid report: missing field 'score'",
            elapsed_seconds=3.25,
            total_input_tokens=800,
            total_output_tokens=400,
        )
        usage_store.save_log(log)
        retrieved = usage_store.get_logs()[0]
        assert retrieved == log

    def test_wal_mode(self, tmp_path: Path):
        UsageStore(db_path=tmp_path / "wal_test.db")

        conn = sqlite3.connect(str(tmp_path / "wal_test.db"))
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        conn.close()
        assert mode == "wal"
