from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.survey_response import Answer, SurveyResponse
from app.schemas.survey_response import NormalizedAnswer, SurveyResponseInDB


class CRUDSurveyResponse(CRUDBase[SurveyResponse, SurveyResponseInDB, SurveyResponseInDB]):
    def create_with_answers(
        self,
        db: Session,
        *,
        survey_id: str,
        answers: Sequence[NormalizedAnswer],
        fields: Dict[str, Any],
    ) -> SurveyResponse:
        """
        插入答卷及其答案，只 flush 不提交。

        Args:
            db: 数据库会话（调用方持有事务）
            survey_id: 问卷ID
            answers: 规范化后的答案
            fields: 答卷的其他列（填写人信息、请求信息、完成状态等）

        Returns:
            SurveyResponse: 新建的答卷（已分配ID）
        """
        db_obj = self.model(survey_id=survey_id, **fields)
        for index, answer in enumerate(answers):
            db_obj.answers.append(
                Answer(question_id=answer.question_id, value=answer.value, position=index)
            )
        db.add(db_obj)
        db.flush()
        return db_obj

    def find_for_respondent(self, db: Session, *, survey_id: str, user_id: str) -> Optional[SurveyResponse]:
        """查找某身份在问卷下已有的答卷"""
        results = self.get_multi(
            db,
            limit=1,
            filter_conditions={"survey_id": survey_id, "user_id": user_id},
        )
        return results[0] if results else None

    def get_by_survey(
        self,
        db: Session,
        *,
        survey_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[SurveyResponse]:
        """
        获取问卷在时间范围内开始的所有答卷（含答案），按开始时间倒序。

        Args:
            db: 数据库会话
            survey_id: 问卷ID
            date_from: 起始时间（含），None 表示不限
            date_to: 截止时间（不含），None 表示不限
        """
        query = self._apply_filters(
            db.query(self.model).options(selectinload(self.model.answers)),
            {
                "survey_id": survey_id,
                "started_at": {"gte": date_from, "lt": date_to},
            },
        )
        return query.order_by(self.model.started_at.desc()).all()

    def upsert_answers(
        self,
        db: Session,
        *,
        db_obj: SurveyResponse,
        answers: Sequence[NormalizedAnswer],
    ) -> None:
        """
        按问题ID覆盖或新增答案，只 flush 不提交。
        """
        existing = {answer.question_id: answer for answer in db_obj.answers}
        next_position = max((a.position for a in db_obj.answers), default=-1) + 1
        for answer in answers:
            stored = existing.get(answer.question_id)
            if stored is not None:
                stored.value = answer.value
                continue
            db_obj.answers.append(
                Answer(question_id=answer.question_id, value=answer.value, position=next_position)
            )
            next_position += 1
        db.flush()

    def set_completion(
        self,
        db: Session,
        *,
        response_id: str,
        is_complete: bool,
        now: datetime,
    ) -> bool:
        """
        条件更新答卷的完成状态，不提交。

        UPDATE 带有 is_complete != 目标值 的条件，并发请求中只有一个能改变状态。

        Returns:
            bool: 本次调用是否真正改变了状态
        """
        table = self.model.__table__
        stmt = (
            update(table)
            .where(table.c.id == response_id, table.c.is_complete != is_complete)
            .values(is_complete=is_complete, completed_at=now if is_complete else None)
        )
        return db.execute(stmt).rowcount == 1


# 实例化并暴露给服务层使用
survey_response = CRUDSurveyResponse(SurveyResponse)
