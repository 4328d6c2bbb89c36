import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DailyAnalyticsCounter(BaseModel):
    """某问卷某一天的统计计数"""
    survey_id: str
    date: datetime.date
    views: int = 0
    starts: int = 0
    completions: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class AnalyticsTotals(BaseModel):
    """一段时间内的统计汇总

    Attributes:
        completion_rate: completions / starts * 100，保留两位小数；任一为0时为0
    """
    survey_id: str
    survey_title: Optional[str] = None
    total_views: int = 0
    total_starts: int = 0
    total_completions: int = 0
    completion_rate: float = 0.0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SurveyAnalyticsReport(BaseModel):
    """单个问卷的统计报表：按天明细 + 汇总"""
    totals: AnalyticsTotals
    daily: List[DailyAnalyticsCounter]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
