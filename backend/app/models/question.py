import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from app.db.base_class import Base


class Question(Base):
    """问题模型

    options 和 validation 历史上既可能存成JSON字符串，也可能存成JSON对象，
    读取时统一由 crud_question 规范化，业务代码不直接解析这两列。

    Attributes:
        id: 问题唯一ID
        survey_id: 关联到 surveys.id
        title: 问题标题，出现在校验错误消息中
        type: 问题类型标签，如 'TEXT', 'CHECKBOXES'
        required: 是否必答
        order: 在问卷中的顺序
        options: 选择题选项
        validation: 类型相关的约束（长度、范围、正则、日期范围）
    """
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    survey_id = Column(String, ForeignKey("surveys.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)
    required = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    options = Column(JSON, nullable=True)
    validation = Column(JSON, nullable=True)

    survey = relationship("Survey", back_populates="questions")
