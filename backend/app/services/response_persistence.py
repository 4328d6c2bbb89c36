import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Sequence

import pytz
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    DuplicateSubmission,
    PersistenceFailure,
    SurveyNotFound,
    SurveyNotPublished,
    SurveyOutsideWindow,
    SurveyResponseError,
)
from app.crud.crud_analytics import analytics as crud_analytics
from app.crud.crud_survey import survey as crud_survey
from app.crud.crud_survey_response import survey_response as crud_survey_response
from app.db.database import run_in_transaction
from app.models.survey import SurveyStatus
from app.models.survey_response import RESPONDENT_UNIQUE_CONSTRAINT, SurveyResponse
from app.schemas.survey import SurveyPublicationState
from app.schemas.survey_response import NormalizedAnswer, RespondentInfo

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite 读回的时间不带时区，按UTC处理
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def analytics_day(now: datetime):
    """事件所属的统计自然日（按 ANALYTICS_TIMEZONE 划分）"""
    return _as_utc(now).astimezone(pytz.timezone(settings.ANALYTICS_TIMEZONE)).date()


def ensure_accepting_responses(
    state: Optional[SurveyPublicationState], now: datetime
) -> SurveyPublicationState:
    """
    检查问卷是否处于可提交状态。

    Raises:
        SurveyNotFound: 问卷不存在
        SurveyNotPublished: 问卷未发布
        SurveyOutsideWindow: 当前时间不在发布窗口内
    """
    if state is None:
        raise SurveyNotFound()
    if state.status != SurveyStatus.PUBLISHED:
        raise SurveyNotPublished()
    now = _as_utc(now)
    if state.start_date is not None and now < _as_utc(state.start_date):
        raise SurveyOutsideWindow("La encuesta aún no ha comenzado.")
    if state.end_date is not None and now > _as_utc(state.end_date):
        raise SurveyOutsideWindow("La encuesta ha finalizado.")
    return state


def counter_increments(is_complete: bool) -> Dict[str, int]:
    """草稿计为一次 start，完成计为一次 completion，二者不会同时增加"""
    return {"starts": 0, "completions": 1} if is_complete else {"starts": 1, "completions": 0}


def _respondent_fields(
    state: SurveyPublicationState, respondent: RespondentInfo
) -> Dict[str, Any]:
    fields = {
        "ip_address": respondent.ip_address,
        "user_agent": respondent.user_agent,
    }
    if state.is_anonymous:
        # 匿名问卷不论提交了什么都不保存身份信息
        return fields
    fields.update(
        email=respondent.email,
        user_id=respondent.user_id,
        full_name=respondent.full_name,
        company=respondent.company,
        position=respondent.position,
        ships=respondent.ships,
    )
    if not state.allow_multiple_responses and respondent.user_id:
        fields["respondent_key"] = respondent.user_id
    return fields


def translate_storage_error(exc: SQLAlchemyError, survey_id: str) -> SurveyResponseError:
    """把存储层异常转换为提交错误"""
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig)
        if RESPONDENT_UNIQUE_CONSTRAINT in detail or "respondent_key" in detail:
            logger.info(f"Duplicate submission for survey {survey_id} rejected by storage constraint")
            return DuplicateSubmission()
    logger.exception(f"Failed to persist response for survey {survey_id}")
    return PersistenceFailure(transient=isinstance(exc, OperationalError))


class ResponsePersistenceCoordinator:
    """答卷持久化协调器

    在同一个事务中完成：复查发布状态 -> 重复提交预检 -> 插入答卷和答案 -> 原子累加当日计数。
    任何一步失败都整体回滚，不做部分提交，也不自动重试。
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def persist(
        self,
        db: Session,
        *,
        survey_id: str,
        answers: Sequence[NormalizedAnswer],
        is_complete: bool,
        respondent: RespondentInfo,
        now: Optional[datetime] = None,
    ) -> SurveyResponse:
        """
        持久化一次已通过校验的提交。

        Args:
            db: 数据库会话
            survey_id: 问卷ID
            answers: 规范化后的答案
            is_complete: 是否完成提交
            respondent: 填写人信息
            now: 当前时间，默认取 clock()

        Returns:
            SurveyResponse: 已提交的答卷

        Raises:
            SurveyNotFound / SurveyNotPublished / SurveyOutsideWindow: 问卷不接受提交
            DuplicateSubmission: 同一身份重复提交
            PersistenceFailure: 其他存储错误
        """
        now = now or self.clock()

        def _write(session: Session) -> SurveyResponse:
            state = ensure_accepting_responses(
                crud_survey.get_publication_state(session, survey_id=survey_id), now
            )

            if not state.allow_multiple_responses and not state.is_anonymous and respondent.user_id:
                existing = crud_survey_response.find_for_respondent(
                    session, survey_id=survey_id, user_id=respondent.user_id
                )
                if existing is not None:
                    raise DuplicateSubmission()

            fields = _respondent_fields(state, respondent)
            fields.update(
                is_complete=is_complete,
                started_at=now,
                completed_at=now if is_complete else None,
            )
            response = crud_survey_response.create_with_answers(
                session, survey_id=survey_id, answers=answers, fields=fields
            )

            crud_analytics.increment(
                session,
                survey_id=survey_id,
                day=analytics_day(now),
                **counter_increments(is_complete),
            )
            return response

        try:
            response = run_in_transaction(db, _write)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, survey_id) from e

        logger.info(
            f"Stored response {response.id} for survey {survey_id} "
            f"({len(answers)} answers, complete={is_complete})"
        )
        return response


# 默认实例
response_persistence = ResponsePersistenceCoordinator()
