"""Report client: turns a FormInput into an AnalysisReport via the chat model."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

from job_worth.clients.llm_client import LLMClient
from job_worth.config import DEFAULT_MODEL, AppConfig, resolve_api_key
from job_worth.models.form import FormInput
from job_worth.models.report import (
    RADAR_DIMENSIONS,
    AnalysisReport,
    RadarPoint,
    ReportShapeError,
    parse_report,
)
from job_worth.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

MISSING_API_KEY_MESSAGE = "系统未检测到 API Key。请在 .env 文件中配置 API_KEY (推荐使用 Kimi API)。"
UPSTREAM_FAILURE_MESSAGE = "AI 连接失败或解析错误。请检查 API Key 额度或网络设置。"

SYSTEM_PROMPT = """\
你是一位资深职业规划师，也是说话犀利的互联网嘴替。请根据用户提供的工作详情和个人背景，评估这份工作的"性价比"。

只返回纯 JSON，不要使用 markdown 代码块，也不要输出 JSON 以外的任何文字。

JSON 结构如下：
{
  "score": 0-100 的整数，综合各项指标的总分,
  "tier": "段位，例如：青铜搬砖工 / 钻石打工人 / 王者合伙人",
  "rankTitle": "一句话称号，例如：也就是个混口饭吃 / 简直是神仙工作，可自由细化",
  "percentile": 0-99 的整数，表示击败了多少比例的打工人,
  "analysis": "客观理性的评价，400 字左右",
  "sharpAnalysis": "毒舌、幽默、一针见血的吐槽，像脱口秀演员一样，不用给面子",
  "pros": ["3-4 个核心优势"],
  "cons": ["3-4 个主要劣势"],
  "radarData": [
    {"subject": "薪资待遇", "value": 0-100, "fullMark": 100},
    {"subject": "工作时长", "value": 0-100, "fullMark": 100},
    {"subject": "通勤体验", "value": 0-100, "fullMark": 100},
    {"subject": "城市潜力", "value": 0-100, "fullMark": 100},
    {"subject": "职业发展", "value": 0-100, "fullMark": 100}
  ],
  "suggestions": ["3-4 条具体建议"]
}

radarData 必须且只能包含以上 5 个维度，subject 名称保持原样。"""

FALLBACK_SHARP_ANALYSIS = "AI 罢工了，可能是被你的工作吓到了（其实是网络问题）。"


def _num(value: float) -> str:
    """Render 12000.0 as '12000' and 5.5 as '5.5'."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def build_user_prompt(form: FormInput) -> str:
    """Render the form as the grouped user message."""
    return f"""请根据以下信息进行评估：

【个人画像】
- 性别: {form.gender}
- 年龄: {form.age} 岁
- 家庭: {form.family_status}, {form.spouse_status}
- 学历: {form.education}
- 工龄: {form.experience} 年

【工作背景】
- 公司: {form.company_name.strip() or "未填写"} ({form.company_type})
- 岗位: {form.position}
- 城市: {form.city} ({form.area_type})

【薪酬待遇】
- 月薪: {_num(form.salary)} 元 ({form.months}薪)
- 福利: {form.benefits.strip() or "普通"}
- 年假: {form.vacation_days} 天/年

【工作强度与环境】
- 工作时间: 每周 {_num(form.work_days_per_week)} 天, 每天 {_num(form.work_hours_per_day)} 小时
- 通勤(往返): {form.commute_time} 分钟
- 压力指数: {form.stress}/10
- 团队氛围: {form.colleague_environment}

【用户自述槽点】
- {form.job_drawbacks.strip() or "无"} (请重点参考此项进行扣分和吐槽)
"""


def create_fallback_report(message: str) -> AnalysisReport:
    """Degraded report returned whenever the model cannot be used."""
    return AnalysisReport(
        score=0,
        tier="系统故障",
        rank_title="暂停营业",
        percentile=0,
        analysis=message,
        sharp_analysis=FALLBACK_SHARP_ANALYSIS,
        pros=[],
        cons=[],
        suggestions=["检查 API 配置后刷新重试"],
        radar_data=[RadarPoint(subject=d, value=0) for d in RADAR_DIMENSIONS],
    )


@dataclass
class Evaluation:
    """One evaluate call with the data the usage log needs."""

    report: AnalysisReport
    fallback_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    elapsed_seconds: float = 0.0

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None


class ReportClient:
    """Evaluates one form per call. Never raises; failures become a fallback report."""

    def __init__(
        self,
        llm: LLMClient | None,
        *,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ReportClient:
        """Build a client from config; without a credential no LLM client is created."""
        key = api_key or resolve_api_key()
        llm = None
        if key:
            llm = LLMClient(
                key,
                config.llm.base_url,
                timeout=config.llm.timeout,
                max_attempts=config.llm.max_attempts,
                transport=transport,
            )
        else:
            logger.warning("API_KEY is not configured; evaluations will return the fallback report")
        return cls(llm, model=config.llm.model, temperature=config.llm.temperature)

    async def evaluate(self, form: FormInput) -> AnalysisReport:
        return (await self.evaluate_with_usage(form)).report

    async def evaluate_with_usage(self, form: FormInput) -> Evaluation:
        start = time.monotonic()

        def _fallback(message: str, reason: str, tokens: tuple[int, int] = (0, 0)) -> Evaluation:
            logger.warning("Returning fallback report: %s", reason)
            return Evaluation(
                report=create_fallback_report(message),
                fallback_reason=reason,
                input_tokens=tokens[0],
                output_tokens=tokens[1],
                elapsed_seconds=time.monotonic() - start,
            )

        if self.llm is None:
            return _fallback(MISSING_API_KEY_MESSAGE, "missing API key")

        logger.info("Evaluating %s in %s", form.position, form.city)
        try:
            response = await self.llm.generate(
                prompt=build_user_prompt(form),
                system=SYSTEM_PROMPT,
                model=self.model,
                temperature=self.temperature,
            )
        except Exception as exc:
            return _fallback(UPSTREAM_FAILURE_MESSAGE, f"upstream error: {exc}")

        tokens = (response.input_tokens, response.output_tokens)
        try:
            report = parse_report(extract_json(response.text))
        except ReportShapeError as exc:
            return _fallback(UPSTREAM_FAILURE_MESSAGE, f"invalid report: {exc}", tokens)
        except ValueError as exc:
            return _fallback(UPSTREAM_FAILURE_MESSAGE, f"unparseable response: {exc}", tokens)

        return Evaluation(
            report=report,
            input_tokens=tokens[0],
            output_tokens=tokens[1],
            elapsed_seconds=time.monotonic() - start,
        )
