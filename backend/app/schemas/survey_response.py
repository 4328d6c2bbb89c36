from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.question import QuestionSchema


class CamelModel(BaseModel):
    """接口模型基类：JSON字段使用 camelCase，Python 内部使用 snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawAnswer(CamelModel):
    """提交的原始答案

    Attributes:
        question_id: 问题ID
        value: 未经处理的答案值，可以是标量、数组或对象
    """
    question_id: str
    value: Any = None


class NormalizedAnswer(CamelModel):
    """规范化后的答案，value 为 None 表示可选题留空"""
    question_id: str
    value: Any = None

    model_config = ConfigDict(frozen=True)


class RespondentInfo(CamelModel):
    """填写人信息

    匿名问卷会丢弃 email、user_id 和其他身份字段。
    """
    email: Optional[str] = None
    user_id: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    ships: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class SubmitResponseRequest(CamelModel):
    """提交答卷请求模型"""
    email: Optional[str] = None
    user_id: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    ships: Optional[int] = None
    answers: List[RawAnswer] = Field(default_factory=list)
    is_complete: bool = False


class UpdateResponseRequest(CamelModel):
    """更新答卷请求模型（补充草稿答案或标记完成）"""
    answers: List[RawAnswer] = Field(default_factory=list)
    is_complete: Optional[bool] = None


class SubmitResponseResult(CamelModel):
    """提交成功后的返回数据"""
    response_id: str
    answers: List[NormalizedAnswer]
    is_complete: bool
    completed_at: Optional[datetime] = None


class AnswerInDB(CamelModel):
    """数据库中的答案记录"""
    id: int
    question_id: str
    value: Any = None

    model_config = ConfigDict(from_attributes=True)


class SurveyResponseInDB(CamelModel):
    """数据库中的答卷记录"""
    id: str
    survey_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    ships: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_complete: bool
    started_at: datetime
    completed_at: Optional[datetime] = None
    answers: List[AnswerInDB] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class SurveyResponseListing(CamelModel):
    """问卷答卷列表：问题定义（选项已规范化）+ 答卷"""
    questions: List[QuestionSchema] = Field(default_factory=list)
    responses: List[SurveyResponseInDB] = Field(default_factory=list)
