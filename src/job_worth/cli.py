"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from job_worth.config import AppConfig, load_config
from job_worth.logging.usage_store import UsageStore
from job_worth.models.form import FormInput
from job_worth.models.report import AnalysisReport
from job_worth.pipeline.report_client import ReportClient
from job_worth.pipeline.session import SessionController
from job_worth.storage.history_store import HistoryStore

app = typer.Typer(
    name="job-worth",
    help="工作性价比计算器 (AI 版)",
    no_args_is_help=True,
)
history_app = typer.Typer(help="查看和管理历史记录", no_args_is_help=True)
app.add_typer(history_app, name="history")
console = Console()


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj["config"]


def _history_store(config: AppConfig) -> HistoryStore:
    return HistoryStore(
        db_path=config.storage.resolved_db_path,
        key=config.storage.history_key,
    )


def _controller(config: AppConfig) -> SessionController:
    return SessionController(
        ReportClient.from_config(config),
        _history_store(config),
        usage_store=UsageStore(config.storage.resolved_usage_db_path),
        session_id="cli",
    )


def _format_ts(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _print_report(report: AnalysisReport) -> None:
    color = "green" if report.score >= 60 else "yellow" if report.score > 0 else "red"
    console.print(
        Panel(
            f"[bold {color}]{report.score} 分[/bold {color}]  {report.tier} · {report.rank_title}\n"
            f"击败了 {report.percentile}% 的打工人",
            title="工作性价比",
        )
    )
    console.print(Panel(report.analysis, title="客观分析"))
    console.print(Panel(report.sharp_analysis, title="毒舌点评"))

    radar = Table(title="维度评分")
    radar.add_column("维度")
    radar.add_column("得分", justify="right")
    for point in report.radar_data:
        radar.add_row(point.subject, f"{point.value:g}/{point.full_mark}")
    console.print(radar)

    for title, items, style in (
        ("优势", report.pros, "green"),
        ("劣势", report.cons, "red"),
        ("建议", report.suggestions, "cyan"),
    ):
        if items:
            console.print(f"\n[{style}]{title}:[/{style}]")
            for item in items:
                console.print(f"  - {item}")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(None, "--config", help="config.yaml 路径"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        ctx.obj = {"config": load_config(config)}
    except ValueError as e:
        console.print(f"[red]配置无效: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def evaluate(
    ctx: typer.Context,
    position: str = typer.Option(..., "--position", "-p", help="岗位"),
    city: str = typer.Option(..., "--city", help="城市"),
    salary: float = typer.Option(..., "--salary", "-s", help="税前月薪 (元)"),
    months: int = typer.Option(13, "--months", help="年薪月数"),
    company: str = typer.Option("", "--company", "-c", help="公司名称 (选填)"),
    company_type: str = typer.Option("民营企业", "--company-type", help="公司性质"),
    area_type: str = typer.Option("市区", "--area-type", help="所在区域"),
    benefits: str = typer.Option("五险一金", "--benefits", help="福利"),
    vacation_days: int = typer.Option(5, "--vacation-days", help="年假天数"),
    team: str = typer.Option("普通同事", "--team", help="团队氛围"),
    gender: str = typer.Option("男", "--gender", help="性别"),
    age: int = typer.Option(26, "--age", help="年龄"),
    family_status: str = typer.Option("未婚", "--family-status", help="家庭状况"),
    spouse_status: str = typer.Option("无配偶", "--spouse-status", help="配偶情况"),
    education: str = typer.Option("本科", "--education", help="学历"),
    experience: int = typer.Option(3, "--experience", help="工龄 (年)"),
    work_days: float = typer.Option(5.0, "--work-days", help="每周工作天数"),
    work_hours: float = typer.Option(8.0, "--work-hours", help="每天工作小时"),
    commute: int = typer.Option(60, "--commute", help="往返通勤分钟"),
    stress: int = typer.Option(6, "--stress", min=1, max=10, help="压力指数 1-10"),
    drawbacks: str = typer.Option("", "--drawbacks", help="槽点/缺点"),
    as_json: bool = typer.Option(False, "--json", help="以 JSON 输出报告"),
) -> None:
    """评估一份工作的性价比并保存到历史记录。"""
    try:
        form = FormInput(
            position=position,
            city=city,
            salary=salary,
            months=months,
            company_name=company,
            company_type=company_type,
            area_type=area_type,
            benefits=benefits,
            vacation_days=vacation_days,
            colleague_environment=team,
            gender=gender,
            age=age,
            family_status=family_status,
            spouse_status=spouse_status,
            education=education,
            experience=experience,
            work_days_per_week=work_days,
            work_hours_per_day=work_hours,
            commute_time=commute,
            stress=stress,
            job_drawbacks=drawbacks,
        )
    except ValidationError as e:
        console.print("[red]输入有误:[/red]")
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"])
            console.print(f"  - {field}: {err['msg']}")
        raise typer.Exit(1)

    controller = _controller(_config(ctx))
    with console.status("AI 正在计算..."):
        report = asyncio.run(controller.submit(form))

    if report is None:
        console.print(f"[red]{controller.state.alert}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(report.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
    else:
        _print_report(report)


@history_app.command("list")
def history_list(ctx: typer.Context) -> None:
    """列出历史记录 (最新在前)。"""
    records = _history_store(_config(ctx)).list()
    if not records:
        console.print("[yellow]暂无历史记录。[/yellow]")
        return

    table = Table()
    table.add_column("ID", no_wrap=True)
    table.add_column("时间")
    table.add_column("岗位")
    table.add_column("城市")
    table.add_column("得分", justify="right")
    table.add_column("段位")
    for r in records:
        table.add_row(
            r.id,
            _format_ts(r.timestamp),
            r.form_data.position,
            r.form_data.city,
            str(r.result.score),
            r.result.tier,
        )
    console.print(table)


@history_app.command("show")
def history_show(
    ctx: typer.Context,
    record_id: str = typer.Argument(help="记录 ID"),
) -> None:
    """显示一条历史报告 (不会重新调用 AI)。"""
    controller = SessionController(
        ReportClient(None),
        _history_store(_config(ctx)),
    )
    controller.open_history()
    try:
        report = controller.select(record_id)
    except KeyError:
        console.print(f"[red]找不到记录: {record_id}[/red]")
        raise typer.Exit(1)
    _print_report(report)


@history_app.command("delete")
def history_delete(
    ctx: typer.Context,
    record_id: str = typer.Argument(help="记录 ID"),
) -> None:
    """删除一条历史记录。"""
    store = _history_store(_config(ctx))
    if store.get(record_id) is None:
        console.print(f"[red]找不到记录: {record_id}[/red]")
        raise typer.Exit(1)
    controller = SessionController(ReportClient(None), store)
    controller.open_history()
    remaining = controller.delete(record_id)
    console.print(f"[green]已删除，剩余 {len(remaining)} 条记录。[/green]")


@history_app.command("clear")
def history_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="不再确认"),
) -> None:
    """清空全部历史记录。"""
    if not yes and not typer.confirm("确定要清空所有历史记录吗？"):
        raise typer.Abort()
    controller = SessionController(ReportClient(None), _history_store(_config(ctx)))
    controller.open_history()
    controller.clear_history()
    console.print("[green]历史记录已清空。[/green]")


@app.command()
def usage(
    ctx: typer.Context,
    recent: int = typer.Option(5, "--recent", "-n", min=0, help="显示最近 N 次调用"),
    session: str = typer.Option(None, "--session", help="只看某个会话 (cli / web 会话 ID)"),
) -> None:
    """显示本月调用统计和最近的调用记录。"""
    store = UsageStore(_config(ctx).storage.resolved_usage_db_path)
    stats = store.get_monthly_stats()
    avg = stats["avg_score"] if stats["avg_score"] is not None else "-"
    console.print(
        Panel(
            f"评估次数: {stats['total_runs']}\n"
            f"成功率: {stats['success_rate']:.0f}%\n"
            f"平均得分: {avg}\n"
            f"Token: {stats['total_input_tokens']} 输入 / {stats['total_output_tokens']} 输出",
            title=f"{stats['month']} 使用统计",
        )
    )

    if recent == 0:
        return
    logs = store.get_logs(session_id=session, limit=recent)
    if not logs:
        console.print("[yellow]暂无调用记录。[/yellow]")
        return

    table = Table(title="最近调用")
    table.add_column("时间")
    table.add_column("会话")
    table.add_column("岗位")
    table.add_column("城市")
    table.add_column("得分", justify="right")
    table.add_column("状态")
    table.add_column("耗时", justify="right")
    table.add_column("Token", justify="right")
    for log in logs:
        status = "[green]成功[/green]" if log.success else f"[red]{log.fallback_reason or '失败'}[/red]"
        table.add_row(
            log.timestamp.strftime("%Y-%m-%d %H:%M"),
            log.session_id,
            log.position,
            log.city,
            "-" if log.score is None else str(log.score),
            status,
            f"{log.elapsed_seconds:.1f}s",
            f"{log.total_input_tokens}/{log.total_output_tokens}",
        )
    console.print(table)


if __name__ == "__main__":
    app()
