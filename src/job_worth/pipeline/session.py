"""Session controller: Input / Result / History view state machine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from job_worth.logging.models import UsageLog
from job_worth.logging.usage_store import UsageStore
from job_worth.models.form import FormInput
from job_worth.models.history import HistoryRecord
from job_worth.models.report import AnalysisReport
from job_worth.pipeline.report_client import Evaluation, ReportClient
from job_worth.storage.history_store import HistoryStore

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE_ALERT = "AI 服务暂时不可用，请检查网络或 API Key"


class View(str, Enum):
    INPUT = "input"
    RESULT = "result"
    HISTORY = "history"


class InvalidTransitionError(RuntimeError):
    """Operation not allowed in the current view, or while an evaluation is pending."""


@dataclass
class SessionState:
    view: View = View.INPUT
    busy: bool = False
    report: AnalysisReport | None = None
    history: list[HistoryRecord] = field(default_factory=list)
    alert: str | None = None


class SessionController:
    """Owns the session state and drives the report client and history store.

    Args:
        client: Evaluates forms; never raises by contract.
        store: Persisted history; its ``list()`` is the source of truth
            after every mutation.
        usage_store: Optional sink for one UsageLog per evaluation.
        session_id: Tag written into usage logs.
    """

    def __init__(
        self,
        client: ReportClient,
        store: HistoryStore,
        *,
        usage_store: UsageStore | None = None,
        session_id: str = "anonymous",
    ):
        self.client = client
        self.store = store
        self.usage_store = usage_store
        self.session_id = session_id
        self.state = SessionState(history=store.list())

    @property
    def view(self) -> View:
        return self.state.view

    @property
    def busy(self) -> bool:
        return self.state.busy

    def _require(self, *views: View) -> None:
        if self.state.busy:
            raise InvalidTransitionError("an evaluation is in progress")
        if self.state.view not in views:
            allowed = ", ".join(v.value for v in views)
            raise InvalidTransitionError(
                f"not allowed in view {self.state.view.value!r} (expected {allowed})"
            )

    async def submit(self, form: FormInput) -> AnalysisReport | None:
        """Evaluate a form, save it to history and show the result.

        Returns None when the submit was ignored (already busy) or the flow
        failed unexpectedly; the latter sets ``state.alert``.
        """
        if self.state.busy:
            logger.warning("Submit ignored: an evaluation is already in progress")
            return None
        self._require(View.INPUT)

        self.state.busy = True
        self.state.alert = None
        try:
            evaluation = await self.client.evaluate_with_usage(form)
            self.store.append(form, evaluation.report)
            self.state.history = self.store.list()
            self.state.report = evaluation.report
            self.state.view = View.RESULT
        except Exception:
            logger.exception("Analysis failed")
            self.state.alert = SERVICE_UNAVAILABLE_ALERT
            return None
        finally:
            self.state.busy = False

        self._record_usage(form, evaluation)
        return evaluation.report

    def _record_usage(self, form: FormInput, evaluation: Evaluation) -> None:
        if self.usage_store is None:
            return
        try:
            self.usage_store.save_log(
                UsageLog(
                    session_id=self.session_id,
                    model=self.client.model,
                    position=form.position,
                    city=form.city,
                    company_name=form.company_name or None,
                    score=evaluation.report.score,
                    success=not evaluation.is_fallback,
                    fallback_reason=evaluation.fallback_reason,
                    elapsed_seconds=evaluation.elapsed_seconds,
                    total_input_tokens=evaluation.input_tokens,
                    total_output_tokens=evaluation.output_tokens,
                )
            )
        except Exception:
            logger.exception("Failed to save usage log")

    def reset(self) -> None:
        self._require(View.RESULT)
        self.state.report = None
        self.state.view = View.INPUT

    def open_history(self) -> None:
        self._require(View.INPUT, View.RESULT)
        self.state.view = View.HISTORY

    def back(self) -> None:
        self._require(View.HISTORY)
        self.state.view = View.RESULT if self.state.report is not None else View.INPUT

    def select(self, record_id: str) -> AnalysisReport:
        """Show a stored report without contacting the model."""
        self._require(View.HISTORY)
        for record in self.state.history:
            if record.id == record_id:
                self.state.report = record.result
                self.state.view = View.RESULT
                return record.result
        raise KeyError(record_id)

    def delete(self, record_id: str) -> list[HistoryRecord]:
        self._require(View.HISTORY)
        self.state.history = self.store.remove(record_id)
        return self.state.history

    def clear_history(self) -> None:
        self._require(View.HISTORY)
        self.store.clear()
        self.state.history = []
