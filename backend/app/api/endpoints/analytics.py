from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.config.dependency_injection import get_db
from app.crud.crud_analytics import analytics as crud_analytics
from app.crud.crud_survey import survey as crud_survey
from app.db.database import run_in_transaction
from app.schemas.analytics import AnalyticsTotals, DailyAnalyticsCounter, SurveyAnalyticsReport
from app.schemas.response import StandardResponse
from app.services.response_persistence import analytics_day, utc_now

router = APIRouter()


def _get_survey_or_404(db: Session, survey_id: str):
    survey = crud_survey.get(db, survey_id)
    if survey is None:
        raise HTTPException(status_code=404, detail="Encuesta no encontrada")
    return survey


@router.post("/surveys/{survey_id}/views", response_model=StandardResponse[DailyAnalyticsCounter])
def record_survey_view(survey_id: str, db: Session = Depends(get_db)) -> Any:
    """
    记录一次问卷浏览（公开页面打开时调用）。
    """
    _get_survey_or_404(db, survey_id)
    day = analytics_day(utc_now())
    run_in_transaction(db, lambda session: crud_analytics.record_view(session, survey_id=survey_id, day=day))
    rows = crud_analytics.get_by_survey(db, survey_id=survey_id, date_from=day, date_to=day)
    return StandardResponse(data=DailyAnalyticsCounter.model_validate(rows[0]))


@router.get("/surveys/{survey_id}/analytics", response_model=StandardResponse[SurveyAnalyticsReport])
def get_survey_analytics(
    survey_id: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
) -> Any:
    """
    获取问卷在日期范围内的每日计数和汇总。
    """
    survey = _get_survey_or_404(db, survey_id)
    daily = crud_analytics.get_by_survey(db, survey_id=survey_id, date_from=date_from, date_to=date_to)
    totals = crud_analytics.summarize(db, survey_id=survey_id, date_from=date_from, date_to=date_to)
    totals.survey_title = survey.title
    return StandardResponse(
        data=SurveyAnalyticsReport(
            totals=totals,
            daily=[DailyAnalyticsCounter.model_validate(row) for row in daily],
        )
    )


@router.get("/analytics", response_model=StandardResponse[List[AnalyticsTotals]])
def get_all_analytics(db: Session = Depends(get_db)) -> Any:
    """
    按问卷汇总所有统计数据。
    """
    return StandardResponse(data=crud_analytics.summarize_all(db))
