"""Tests for the session controller state machine."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from job_worth.logging.usage_store import UsageStore
from job_worth.models.form import FormInput
from job_worth.pipeline.report_client import Evaluation, ReportClient
from job_worth.pipeline.session import (
    SERVICE_UNAVAILABLE_ALERT,
    InvalidTransitionError,
    SessionController,
    View,
)


def _mock_client(report) -> ReportClient:
    client = AsyncMock(spec=ReportClient)
    client.model = "moonshot-v1-8k"
    client.evaluate_with_usage = AsyncMock(
        return_value=Evaluation(report=report, input_tokens=300, output_tokens=500, elapsed_seconds=1.5)
    )
    return client


@pytest.fixture
def controller(store, sample_report) -> SessionController:
    return SessionController(_mock_client(sample_report), store)


class TestInitialState:
    def test_starts_in_input(self, controller):
        assert controller.view == View.INPUT
        assert controller.busy is False
        assert controller.state.report is None
        assert controller.state.history == []

    def test_loads_existing_history(self, store, sample_form, sample_report):
        store.append(sample_form, sample_report)
        controller = SessionController(_mock_client(sample_report), store)
        assert len(controller.state.history) == 1


class TestSubmit:
    async def test_submit_shows_result_and_saves(self, controller, store, sample_form, sample_report):
        report = await controller.submit(sample_form)

        assert report == sample_report
        assert controller.view == View.RESULT
        assert controller.state.report == sample_report
        assert controller.busy is False
        assert len(store.list()) == 1
        assert controller.state.history == store.list()
        assert controller.state.history[0].form_data == sample_form

    async def test_submit_from_result_is_invalid(self, controller, sample_form):
        await controller.submit(sample_form)
        with pytest.raises(InvalidTransitionError):
            await controller.submit(sample_form)

    async def test_resubmit_while_busy_is_ignored(self, store, sample_form, sample_report):
        gate = asyncio.Event()
        client = _mock_client(sample_report)
        original = client.evaluate_with_usage.return_value

        async def slow_evaluate(form):
            await gate.wait()
            return original

        client.evaluate_with_usage = AsyncMock(side_effect=slow_evaluate)
        controller = SessionController(client, store)

        first = asyncio.create_task(controller.submit(sample_form))
        await asyncio.sleep(0)
        assert controller.busy is True

        assert await controller.submit(sample_form) is None
        with pytest.raises(InvalidTransitionError, match="in progress"):
            controller.open_history()

        gate.set()
        assert await first == sample_report
        assert client.evaluate_with_usage.await_count == 1
        assert len(store.list()) == 1
        assert controller.busy is False

    async def test_unexpected_failure_sets_alert(self, store, sample_form):
        client = AsyncMock(spec=ReportClient)
        client.evaluate_with_usage = AsyncMock(side_effect=RuntimeError("bug"))
        controller = SessionController(client, store)

        assert await controller.submit(sample_form) is None
        assert controller.state.alert == SERVICE_UNAVAILABLE_ALERT
        assert controller.view == View.INPUT
        assert controller.busy is False
        assert store.list() == []

    async def test_alert_cleared_on_next_submit(self, store, sample_form, sample_report):
        controller = SessionController(_mock_client(sample_report), store)
        controller.state.alert = SERVICE_UNAVAILABLE_ALERT

        await controller.submit(sample_form)

        assert controller.state.alert is None

    async def test_end_to_end_without_credential(self, store):
        controller = SessionController(ReportClient(None), store)
        form = FormInput(
            position="产品经理",
            city="北京",
            salary=12000,
            months=13,
            work_days_per_week=5,
            work_hours_per_day=8,
            commute_time=60,
            stress=6,
        )
        before = len(store.list())

        report = await controller.submit(form)

        assert report.score == 0
        assert len(store.list()) == before + 1
        assert controller.view == View.RESULT


class TestUsageLogging:
    async def test_usage_log_written(self, tmp_path, store, sample_form, sample_report):
        usage = UsageStore(db_path=tmp_path / "usage.db")
        controller = SessionController(
            _mock_client(sample_report), store, usage_store=usage, session_id="s1"
        )

        await controller.submit(sample_form)

        logs = usage.get_logs()
        assert len(logs) == 1
        log = logs[0]
        assert log.session_id == "s1"
        assert log.position == "产品经理"
        assert log.score == 72
        assert log.success is True
        assert log.total_input_tokens == 300
        assert log.model == "moonshot-v1-8k"

    async def test_fallback_logged_as_failure(self, tmp_path, store, sample_form):
        usage = UsageStore(db_path=tmp_path / "usage.db")
        controller = SessionController(ReportClient(None), store, usage_store=usage)

        await controller.submit(sample_form)

        log = usage.get_logs()[0]
        assert log.success is False
        assert log.fallback_reason == "missing API key"

    async def test_usage_failure_does_not_break_submit(self, store, sample_form, sample_report):
        usage = MagicMock(spec=UsageStore)
        usage.save_log.side_effect = OSError("disk full")
        controller = SessionController(_mock_client(sample_report), store, usage_store=usage)

        assert await controller.submit(sample_form) == sample_report
        assert controller.view == View.RESULT


class TestNavigation:
    async def test_reset_returns_to_input(self, controller, sample_form):
        await controller.submit(sample_form)
        controller.reset()
        assert controller.view == View.INPUT
        assert controller.state.report is None

    def test_reset_from_input_is_invalid(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.reset()

    def test_history_back_without_report_goes_to_input(self, controller):
        controller.open_history()
        assert controller.view == View.HISTORY
        controller.back()
        assert controller.view == View.INPUT

    async def test_history_back_with_report_goes_to_result(self, controller, sample_form):
        await controller.submit(sample_form)
        controller.open_history()
        controller.back()
        assert controller.view == View.RESULT

    def test_back_outside_history_is_invalid(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.back()

    def test_open_history_twice_is_invalid(self, controller):
        controller.open_history()
        with pytest.raises(InvalidTransitionError):
            controller.open_history()


class TestHistoryOperations:
    async def test_select_loads_report_without_client(self, store, sample_form, sample_report):
        record = store.append(sample_form, sample_report)
        client = _mock_client(sample_report)
        controller = SessionController(client, store)

        controller.open_history()
        report = controller.select(record.id)

        assert report == sample_report
        assert controller.view == View.RESULT
        assert controller.state.report == sample_report
        client.evaluate_with_usage.assert_not_awaited()

    def test_select_unknown_id(self, controller):
        controller.open_history()
        with pytest.raises(KeyError):
            controller.select("missing")
        assert controller.view == View.HISTORY

    def test_select_outside_history_is_invalid(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.select("any")

    async def test_delete_stays_in_history(self, controller, sample_form):
        await controller.submit(sample_form)
        controller.reset()
        await controller.submit(sample_form)
        first_id = controller.state.history[0].id
        second_id = controller.state.history[1].id

        controller.open_history()
        remaining = controller.delete(first_id)

        assert controller.view == View.HISTORY
        assert [r.id for r in remaining] == [second_id]
        assert controller.state.history == remaining
        assert [r.id for r in controller.store.list()] == [second_id]

    async def test_clear_history(self, controller, sample_form):
        await controller.submit(sample_form)
        controller.open_history()
        controller.clear_history()
        assert controller.state.history == []
        assert controller.store.list() == []
        assert controller.view == View.HISTORY
