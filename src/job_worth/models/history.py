"""Persisted history entry."""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, ConfigDict, Field

from job_worth.models.form import FormInput
from job_worth.models.report import AnalysisReport


def _now_ms() -> int:
    return int(time.time() * 1000)


class HistoryRecord(BaseModel):
    """A (FormInput, AnalysisReport) pair with id and creation time."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = Field(default_factory=_now_ms)  # epoch milliseconds
    form_data: FormInput = Field(alias="formData")
    result: AnalysisReport
