"""Pydantic models for the job value report returned by the model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

# Display order of the radar chart. Upstream answers are re-sorted into it.
RADAR_DIMENSIONS = ("薪资待遇", "工作时长", "通勤体验", "城市潜力", "职业发展")
RADAR_FULL_MARK = 100


class ReportShapeError(ValueError):
    """Decoded model output does not have the report shape."""

    def __init__(self, reasons: list[str]):
        self.reasons = reasons
        super().__init__("; ".join(reasons))


class RadarPoint(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject: str
    value: float  # 0-100
    full_mark: int = Field(RADAR_FULL_MARK, alias="fullMark")

    @field_validator("subject")
    @classmethod
    def _strip_subject(cls, v: str) -> str:
        return v.strip()

    @field_validator("full_mark", mode="before")
    @classmethod
    def _fixed_full_mark(cls, v: object) -> int:
        return RADAR_FULL_MARK


class AnalysisReport(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    score: int  # 0-100
    tier: str
    rank_title: str = Field(alias="rankTitle")
    percentile: int  # 0-99
    analysis: str
    sharp_analysis: str = Field(alias="sharpAnalysis")
    pros: list[str]
    cons: list[str]
    radar_data: list[RadarPoint] = Field(alias="radarData")
    suggestions: list[str]

    @field_validator("radar_data")
    @classmethod
    def _canonical_radar(cls, points: list[RadarPoint]) -> list[RadarPoint]:
        by_subject: dict[str, RadarPoint] = {}
        for point in points:
            if point.subject not in RADAR_DIMENSIONS:
                raise ValueError(f"unknown dimension {point.subject!r}")
            if point.subject in by_subject:
                raise ValueError(f"duplicate dimension {point.subject}")
            by_subject[point.subject] = point
        missing = [d for d in RADAR_DIMENSIONS if d not in by_subject]
        if missing:
            raise ValueError(f"missing dimension {', '.join(missing)}")
        return [by_subject[d] for d in RADAR_DIMENSIONS]


def _describe_error(error: dict) -> str:
    loc = ".".join(str(part) for part in error["loc"]) or "report"
    if error["type"] == "missing":
        return f"missing field '{loc}'"
    if error["type"] == "value_error":
        return f"{loc}: {error['msg'].removeprefix('Value error, ')}"
    return f"wrong type for field '{loc}': {error['msg']}"


def parse_report(data: object) -> AnalysisReport:
    """Validate decoded JSON as an AnalysisReport.

    Raises:
        ReportShapeError: with one named reason per problem found.
    """
    if not isinstance(data, dict):
        raise ReportShapeError([f"expected a JSON object, got {type(data).__name__}"])
    try:
        return AnalysisReport.model_validate(data)
    except ValidationError as exc:
        raise ReportShapeError([_describe_error(e) for e in exc.errors()]) from exc
