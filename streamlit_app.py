"""Streamlit Web UI for job-worth.

Three views driven by one SessionController per browser session:
  input   : job details form
  result  : score, narratives, per-dimension scores, suggestions
  history : past reports (open / delete / clear)
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from datetime import datetime

logger = logging.getLogger(__name__)

import nest_asyncio
import streamlit as st
from dotenv import load_dotenv

load_dotenv()
nest_asyncio.apply()

# Streamlit Cloud: sync st.secrets → os.environ so backend clients can read them
for key in ("API_KEY", "API_BASE_URL", "API_MODEL"):
    if key not in os.environ:
        try:
            os.environ[key] = st.secrets[key]
        except Exception:
            pass

from pydantic import ValidationError

from job_worth.config import load_config
from job_worth.logging.usage_store import UsageStore
from job_worth.models.form import (
    AREA_TYPES,
    COMPANY_TYPES,
    EDUCATION_LEVELS,
    FAMILY_STATUSES,
    GENDERS,
    SPOUSE_STATUSES,
    TEAM_ATMOSPHERES,
    WORK_DAY_OPTIONS,
    FormInput,
)
from job_worth.models.report import AnalysisReport
from job_worth.pipeline.report_client import ReportClient
from job_worth.pipeline.session import SessionController, View
from job_worth.storage.history_store import HistoryStore

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="工作性价比计算器",
    page_icon=":briefcase:",
    layout="wide",
)

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def _build_controller() -> SessionController:
    config = load_config()
    return SessionController(
        ReportClient.from_config(config),
        HistoryStore(
            db_path=config.storage.resolved_db_path,
            key=config.storage.history_key,
        ),
        usage_store=UsageStore(config.storage.resolved_usage_db_path),
        session_id=st.session_state.setdefault("session_id", str(uuid.uuid4())),
    )


if "controller" not in st.session_state:
    st.session_state.controller = _build_controller()

controller: SessionController = st.session_state.controller

with st.sidebar:
    st.title("工作性价比计算器")
    st.caption("AI 版 · 结果仅供娱乐与参考")
    if controller.view != View.HISTORY:
        if st.button("历史记录", use_container_width=True, disabled=controller.busy):
            controller.open_history()
            st.rerun()
    else:
        if st.button("返回", use_container_width=True):
            controller.back()
            st.rerun()


# ---------------------------------------------------------------------------
# Input view
# ---------------------------------------------------------------------------


def _input_view() -> None:
    st.header("你的工作到底值不值？")
    st.markdown("不只看薪水。结合时薪、通勤、城市和职场压力，AI 为你生成\"打工性价比\"报告。")

    if controller.state.alert:
        st.error(controller.state.alert)

    with st.form("job_form"):
        st.subheader("个人背景")
        c1, c2, c3 = st.columns(3)
        gender = c1.selectbox("性别", GENDERS)
        age = c2.number_input("年龄", min_value=0, value=26, step=1)
        experience = c3.number_input("工龄 (年)", min_value=0, value=3, step=1)
        family_status = c1.selectbox("家庭状况", FAMILY_STATUSES)
        spouse_status = c2.selectbox("配偶情况", SPOUSE_STATUSES)
        education = c3.selectbox("学历", EDUCATION_LEVELS, index=2)

        st.subheader("工作信息")
        c1, c2, c3 = st.columns(3)
        company_name = c1.text_input("公司名称 (选填)")
        position = c2.text_input("岗位", value="产品经理")
        company_type = c3.selectbox("公司性质", COMPANY_TYPES)
        salary = c1.number_input("税前月薪 (元)", min_value=0.0, value=12000.0, step=500.0)
        months = c2.number_input("年薪月数", min_value=0, value=13, step=1)
        city = c3.text_input("城市", value="北京")
        area_type = c1.selectbox("所在区域", AREA_TYPES)
        vacation_days = c2.number_input("年假 (天)", min_value=0, value=5, step=1)
        colleague_environment = c3.selectbox("团队氛围", TEAM_ATMOSPHERES, index=3)
        benefits = st.text_input("福利待遇", value="五险一金")

        st.subheader("工作强度")
        c1, c2, c3 = st.columns(3)
        work_days = c1.selectbox("每周工作天数", WORK_DAY_OPTIONS, index=1)
        work_hours = c2.number_input("每天工作小时", min_value=0.0, max_value=24.0, value=8.0, step=0.5)
        commute = c3.number_input("往返通勤 (分钟)", min_value=0, value=60, step=5)
        stress = st.slider("压力指数", min_value=1, max_value=10, value=6)
        drawbacks = st.text_area("工作槽点 (选填)", placeholder="例如：老板画大饼、经常半夜开会")

        submitted = st.form_submit_button("开始计算", disabled=controller.busy)

    if not submitted:
        return

    try:
        form = FormInput(
            gender=gender,
            age=int(age),
            family_status=family_status,
            spouse_status=spouse_status,
            education=education,
            experience=int(experience),
            company_name=company_name,
            position=position,
            company_type=company_type,
            city=city,
            area_type=area_type,
            salary=salary,
            months=int(months),
            benefits=benefits,
            vacation_days=int(vacation_days),
            colleague_environment=colleague_environment,
            work_days_per_week=work_days,
            work_hours_per_day=work_hours,
            commute_time=int(commute),
            stress=stress,
            job_drawbacks=drawbacks,
        )
    except ValidationError as e:
        for err in e.errors():
            st.error(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
        return

    with st.spinner("AI 正在计算..."):
        asyncio.run(controller.submit(form))
    st.rerun()


# ---------------------------------------------------------------------------
# Result view
# ---------------------------------------------------------------------------


def _render_report(report: AnalysisReport) -> None:
    c1, c2, c3 = st.columns(3)
    c1.metric("性价比得分", f"{report.score} / 100")
    c2.metric("段位", report.tier)
    c3.metric("击败打工人", f"{report.percentile}%")
    st.subheader(report.rank_title)

    tab_plain, tab_sharp = st.tabs(["客观分析", "毒舌点评"])
    tab_plain.write(report.analysis)
    tab_sharp.write(report.sharp_analysis)

    st.subheader("维度评分")
    for point in report.radar_data:
        ratio = max(0.0, min(1.0, point.value / point.full_mark))
        st.progress(ratio, text=f"{point.subject}: {point.value:g}")

    c1, c2 = st.columns(2)
    with c1:
        st.markdown("**优势**")
        for item in report.pros:
            st.markdown(f"- {item}")
    with c2:
        st.markdown("**劣势**")
        for item in report.cons:
            st.markdown(f"- {item}")

    st.markdown("**建议**")
    for item in report.suggestions:
        st.markdown(f"- {item}")


def _result_view() -> None:
    _render_report(controller.state.report)
    if st.button("重新计算"):
        controller.reset()
        st.rerun()


# ---------------------------------------------------------------------------
# History view
# ---------------------------------------------------------------------------


def _history_view() -> None:
    st.header("历史记录")
    records = controller.state.history
    if not records:
        st.info("暂无历史记录")
        return

    for record in records:
        ts = datetime.fromtimestamp(record.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        c1, c2, c3 = st.columns([6, 1, 1])
        c1.markdown(
            f"**{record.form_data.position}** · {record.form_data.city} · "
            f"{record.result.score} 分 · {record.result.tier}  \n{ts}"
        )
        if c2.button("查看", key=f"open_{record.id}"):
            controller.select(record.id)
            st.rerun()
        if c3.button("删除", key=f"del_{record.id}"):
            controller.delete(record.id)
            st.rerun()

    st.divider()
    confirm = st.checkbox("确认清空全部记录")
    if st.button("清空历史", disabled=not confirm):
        controller.clear_history()
        st.rerun()


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

if controller.view == View.INPUT:
    _input_view()
elif controller.view == View.RESULT:
    _result_view()
else:
    _history_view()
