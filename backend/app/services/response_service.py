import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AnswerValidationError, ResponseNotFound
from app.crud.crud_analytics import analytics as crud_analytics
from app.crud.crud_question import question as crud_question
from app.crud.crud_survey import survey as crud_survey
from app.crud.crud_survey_response import survey_response as crud_survey_response
from app.db.database import run_in_transaction
from app.models.survey_response import SurveyResponse
from app.schemas.survey_response import (
    NormalizedAnswer,
    RawAnswer,
    RespondentInfo,
    SubmitResponseResult,
)
from app.services.response_persistence import (
    ResponsePersistenceCoordinator,
    analytics_day,
    ensure_accepting_responses,
    translate_storage_error,
    utc_now,
)
from app.services.submission_validator import SubmissionValidator

logger = logging.getLogger(__name__)


def _to_result(response: SurveyResponse, answers: Sequence[NormalizedAnswer]) -> SubmitResponseResult:
    return SubmitResponseResult(
        response_id=response.id,
        answers=list(answers),
        is_complete=response.is_complete,
        completed_at=response.completed_at,
    )


class ResponseService:
    """答卷提交服务

    串联问卷状态检查、问题定义加载、提交校验和事务持久化。
    数据库会话由调用方显式传入。
    """

    def __init__(
        self,
        validator: Optional[SubmissionValidator] = None,
        persistence: Optional[ResponsePersistenceCoordinator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.validator = validator or SubmissionValidator()
        self.clock = clock
        self.persistence = persistence or ResponsePersistenceCoordinator(clock=clock)

    def submit_response(
        self,
        db: Session,
        *,
        survey_id: str,
        respondent: RespondentInfo,
        answers: Sequence[RawAnswer],
        is_complete: bool = False,
    ) -> SubmitResponseResult:
        """
        提交一份答卷。

        Args:
            db: 数据库会话
            survey_id: 问卷ID
            respondent: 填写人及请求信息
            answers: 原始答案
            is_complete: 是否完成提交（否则记为草稿）

        Returns:
            SubmitResponseResult: 答卷ID、规范化答案和完成时间

        Raises:
            SurveyResponseError: 各类拒绝原因，见 app.core.exceptions
        """
        now = self.clock()
        ensure_accepting_responses(crud_survey.get_publication_state(db, survey_id=survey_id), now)

        questions = crud_question.get_questions_for_survey(db, survey_id=survey_id)
        try:
            normalized = self.validator.validate(questions, answers)
        except AnswerValidationError as e:
            logger.info(f"Rejected submission for survey {survey_id}: {e.message}")
            raise

        response = self.persistence.persist(
            db,
            survey_id=survey_id,
            answers=normalized,
            is_complete=is_complete,
            respondent=respondent,
            now=now,
        )
        return _to_result(response, normalized)

    def update_response(
        self,
        db: Session,
        *,
        response_id: str,
        answers: Sequence[RawAnswer],
        is_complete: Optional[bool] = None,
    ) -> SubmitResponseResult:
        """
        更新已有答卷：补充或修改答案，并可标记为完成。

        新答案覆盖同一问题的已存答案，合并后的完整答案集重新校验。
        答卷从草稿变为完成时记录完成时间，并在同一事务中为当天的 completions 加一。

        Raises:
            ResponseNotFound: 答卷不存在
            SurveyNotPublished / SurveyOutsideWindow: 问卷已不接受提交
            RequiredFieldMissing / InvalidAnswerFormat: 合并后的答案未通过校验
            PersistenceFailure: 存储错误
        """
        response = crud_survey_response.get(db, response_id)
        if response is None:
            raise ResponseNotFound()
        survey_id = response.survey_id
        now = self.clock()
        # 问卷关闭或超出发布窗口后，草稿不能再修改或完成
        ensure_accepting_responses(crud_survey.get_publication_state(db, survey_id=survey_id), now)

        merged: List[RawAnswer] = [
            RawAnswer(question_id=stored.question_id, value=stored.value)
            for stored in response.answers
        ]
        merged.extend(answers)

        questions = crud_question.get_questions_for_survey(db, survey_id=survey_id)
        try:
            normalized = self.validator.validate(questions, merged)
        except AnswerValidationError as e:
            logger.info(f"Rejected update for response {response_id}: {e.message}")
            raise

        def _write(session: Session) -> SurveyResponse:
            crud_survey_response.upsert_answers(session, db_obj=response, answers=normalized)
            if is_complete is not None:
                changed = crud_survey_response.set_completion(
                    session, response_id=response_id, is_complete=is_complete, now=now
                )
                # 只有真正把草稿改为完成的那个事务才计一次 completion
                if changed and is_complete:
                    crud_analytics.increment(
                        session, survey_id=survey_id, day=analytics_day(now), completions=1
                    )
            return response

        try:
            response = run_in_transaction(db, _write)
        except SQLAlchemyError as e:
            raise translate_storage_error(e, survey_id) from e

        logger.info(f"Updated response {response_id} (complete={response.is_complete})")
        return _to_result(response, normalized)


# 默认实例
response_service = ResponseService()
