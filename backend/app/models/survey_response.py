import uuid
from datetime import datetime

import pytz
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base

# 同一问卷下同一身份只能有一份答卷（仅在问卷禁止多次提交时写入 respondent_key）
RESPONDENT_UNIQUE_CONSTRAINT = "uq_survey_responses_survey_respondent"


class SurveyResponse(Base):
    """答卷模型

    每次通过校验的提交生成一条记录，答案随答卷级联创建和删除。

    Attributes:
        id: 答卷唯一ID (UUID)
        survey_id: 关联到 surveys.id
        user_id: 填写人身份ID，匿名问卷为空
        respondent_key: 仅在问卷禁止多次提交时等于 user_id，用于唯一约束
        email / full_name / company / position / ships: 填写人信息，匿名问卷为空
        ip_address / user_agent: 请求来源信息
        is_complete: 是否已完成（否则为草稿）
        started_at / completed_at: 开始和完成时间
    """
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint("survey_id", "respondent_key", name=RESPONDENT_UNIQUE_CONSTRAINT),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    survey_id = Column(String, ForeignKey("surveys.id"), nullable=False, index=True)

    user_id = Column(String, nullable=True, index=True)
    respondent_key = Column(String, nullable=True)
    email = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    company = Column(String, nullable=True)
    position = Column(String, nullable=True)
    ships = Column(Integer, nullable=True)

    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    is_complete = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(pytz.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True)

    answers = relationship(
        "Answer",
        back_populates="response",
        order_by="Answer.position.asc()",
        cascade="all, delete-orphan",
    )


class Answer(Base):
    """答案模型

    value 是规范化后的值：数字、字符串、选项值列表、文件引用对象或 null。
    """
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("question_id", "response_id", name="uq_answers_question_response"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(String, ForeignKey("survey_responses.id"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)
    value = Column(JSON, nullable=True)
    # 提交时的顺序
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.utc))

    response = relationship("SurveyResponse", back_populates="answers")
