"""Data models for the job value calculator."""

from job_worth.models.form import FormInput
from job_worth.models.history import HistoryRecord
from job_worth.models.report import (
    RADAR_DIMENSIONS,
    AnalysisReport,
    RadarPoint,
    ReportShapeError,
    parse_report,
)

__all__ = [
    "RADAR_DIMENSIONS",
    "AnalysisReport",
    "FormInput",
    "HistoryRecord",
    "RadarPoint",
    "ReportShapeError",
    "parse_report",
]
