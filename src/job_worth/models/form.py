"""Pydantic model for the job evaluation form."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

GENDERS = ["男", "女"]
FAMILY_STATUSES = ["未婚", "已婚无娃", "已婚有娃", "离异"]
SPOUSE_STATUSES = ["无配偶", "双职工", "单职工"]
EDUCATION_LEVELS = ["高中及以下", "大专", "本科", "硕士", "博士"]
COMPANY_TYPES = ["民营企业", "国有企业", "外资企业", "事业单位/公务员", "自由职业", "创业公司"]
AREA_TYPES = ["市区", "郊区", "县城", "农村"]
WORK_DAY_OPTIONS = [4.0, 5.0, 5.5, 6.0, 7.0]
TEAM_ATMOSPHERES = ["险恶", "内卷", "冷漠", "普通同事", "融洽", "神仙团队"]


class FormInput(BaseModel):
    """One job to be evaluated, as entered by the user."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Personal
    gender: str = "男"
    age: int = Field(26, ge=0)
    family_status: str = Field("未婚", alias="familyStatus")
    spouse_status: str = Field("无配偶", alias="spouseStatus")
    education: str = "本科"
    experience: int = Field(3, ge=0)  # years

    # Job
    company_name: str = Field("", alias="companyName")
    position: str
    company_type: str = Field("民营企业", alias="companyType")

    # Location & compensation
    city: str
    area_type: str = Field("市区", alias="areaType")
    salary: float = Field(gt=0)  # monthly, pre-tax
    months: int = Field(13, ge=0)
    benefits: str = "五险一金"
    vacation_days: int = Field(5, ge=0, alias="vacationDays")
    colleague_environment: str = Field("普通同事", alias="colleagueEnvironment")

    # Workload
    work_days_per_week: float = Field(5.0, ge=0, le=7, alias="workDaysPerWeek")
    work_hours_per_day: float = Field(8.0, ge=0, le=24, alias="workHoursPerDay")
    commute_time: int = Field(60, ge=0, alias="commuteTime")  # minutes, round trip
    stress: int = Field(6, ge=1, le=10)

    job_drawbacks: str = Field("", alias="jobDrawbacks")

    @field_validator("position", "city")
    @classmethod
    def _required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v
