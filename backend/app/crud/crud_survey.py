from typing import Optional

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.question import Question
from app.models.survey import Survey
from app.schemas.survey import SurveyCreate, SurveyPublicationState, SurveyUpdate


class CRUDSurvey(CRUDBase[Survey, SurveyCreate, SurveyUpdate]):
    def get_publication_state(self, db: Session, *, survey_id: str) -> Optional[SurveyPublicationState]:
        """
        获取问卷的发布状态。

        Args:
            db: 数据库会话
            survey_id: 问卷ID

        Returns:
            Optional[SurveyPublicationState]: 发布状态，问卷不存在时返回None
        """
        survey = self.get(db, survey_id)
        if survey is None:
            return None
        return SurveyPublicationState.model_validate(survey)

    def create_with_questions(self, db: Session, *, obj_in: SurveyCreate) -> Survey:
        """
        创建问卷及其问题。options/validation 按原样存储（对象或JSON字符串均可）。
        """
        survey_data = obj_in.model_dump(exclude={"questions"}, exclude_none=True)
        db_obj = self.model(**survey_data)
        for question_in in obj_in.questions:
            db_obj.questions.append(Question(**question_in.model_dump(exclude_none=True)))
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj


# 实例化并暴露给服务层使用
survey = CRUDSurvey(Survey)
