from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.survey import SurveyStatus


class SurveyPublicationState(BaseModel):
    """问卷的发布状态

    由 crud_survey.get_publication_state 提供，提交前用于判断问卷是否接受答卷。
    """
    status: SurveyStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_anonymous: bool = False
    allow_multiple_responses: bool = True

    model_config = ConfigDict(from_attributes=True)


class QuestionCreate(BaseModel):
    """创建问题模型，options/validation 可以是对象，也可以是JSON字符串"""
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    type: str
    required: bool = False
    order: int = 0
    options: Any = None
    validation: Any = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SurveyCreate(BaseModel):
    """创建问卷模型（管理端使用）"""
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    custom_link: Optional[str] = None
    status: SurveyStatus = SurveyStatus.DRAFT
    is_anonymous: bool = False
    allow_multiple_responses: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    questions: List[QuestionCreate] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SurveyUpdate(BaseModel):
    """更新问卷模型"""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[SurveyStatus] = None
    is_anonymous: Optional[bool] = None
    allow_multiple_responses: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
