"""Shared test fixtures."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from job_worth.clients.llm_client import LLMClient, LLMResponse
from job_worth.models.form import FormInput
from job_worth.models.report import AnalysisReport
from job_worth.storage.history_store import HistoryStore


@pytest.fixture(autouse=True)
def _no_upstream_env(monkeypatch):
    """Keep a developer's real credentials out of the tests."""
    for key in ("API_KEY", "API_BASE_URL", "API_MODEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_form() -> FormInput:
    return FormInput(
        position="产品经理",
        city="北京",
        salary=12000,
        months=13,
        work_days_per_week=5,
        work_hours_per_day=8,
        commute_time=60,
        stress=6,
        company_name="字节跳动",
        company_type="民营企业",
        job_drawbacks="经常半夜开会",
    )


@pytest.fixture
def sample_report_json() -> dict:
    return {
        "score": 72,
        "tier": "钻石打工人",
        "rankTitle": "还算过得去",
        "percentile": 68,
        "analysis": "薪资在北京属于中等水平，通勤偏长。",
        "sharpAnalysis": "半夜开会？老板是夜猫子吧。",
        "pros": ["平台大", "成长快", "福利齐全"],
        "cons": ["通勤长", "会议多", "压力偏大"],
        "radarData": [
            {"subject": "薪资待遇", "value": 70, "fullMark": 100},
            {"subject": "工作时长", "value": 55, "fullMark": 100},
            {"subject": "通勤体验", "value": 40, "fullMark": 100},
            {"subject": "城市潜力", "value": 90, "fullMark": 100},
            {"subject": "职业发展", "value": 80, "fullMark": 100},
        ],
        "suggestions": ["争取远程办公", "拒绝无效会议", "攒钱买房离公司近一点"],
    }


@pytest.fixture
def sample_report(sample_report_json) -> AnalysisReport:
    return AnalysisReport.model_validate(sample_report_json)


@pytest.fixture
def store(tmp_path) -> HistoryStore:
    return HistoryStore(db_path=tmp_path / "history.db")


def chat_completion(content: str, prompt_tokens: int = 300, completion_tokens: int = 500) -> dict:
    """Body of a successful chat-completion response."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, status_code: int = 200, body: dict | str | None = None):
        self.requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if isinstance(body, str):
                return httpx.Response(status_code, text=body)
            return httpx.Response(status_code, json=body if body is not None else {})

        super().__init__(handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_transport():
    return RecordingTransport


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text="{}", input_tokens=100, output_tokens=50)
    )
    return client


@pytest.fixture
def make_chat_body():
    return chat_completion
