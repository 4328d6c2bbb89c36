import enum
import uuid
from datetime import datetime

import pytz
from sqlalchemy import Boolean, Column, DateTime, Enum, String, Text
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class SurveyStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class Survey(Base):
    """问卷模型

    问卷本身的增删改由管理端负责，这里只读取发布状态和问题定义。

    Attributes:
        id: 问卷唯一ID (UUID)
        title: 标题
        custom_link: 对外发布的自定义链接
        status: 发布状态，只有 PUBLISHED 的问卷接受提交
        is_anonymous: 匿名问卷不保存填写人身份信息
        allow_multiple_responses: 是否允许同一身份多次提交
        start_date / end_date: 发布窗口，可为空
    """
    __tablename__ = "surveys"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    custom_link = Column(String, unique=True, nullable=True)
    status = Column(Enum(SurveyStatus), nullable=False, default=SurveyStatus.DRAFT)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    allow_multiple_responses = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(pytz.utc))

    questions = relationship(
        "Question",
        back_populates="survey",
        order_by="Question.order.asc()",
        cascade="all, delete-orphan",
    )
