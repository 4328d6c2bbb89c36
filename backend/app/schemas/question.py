import re
from datetime import date
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QuestionType(str, Enum):
    """问题类型枚举

    选择题分为单选（MULTIPLE_CHOICE、DROPDOWN）和多选（CHECKBOXES）。
    """
    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    URL = "URL"
    DATE = "DATE"
    TIME = "TIME"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    DROPDOWN = "DROPDOWN"
    CHECKBOXES = "CHECKBOXES"
    SCALE = "SCALE"
    RATING = "RATING"
    FILE_UPLOAD = "FILE_UPLOAD"
    SIGNATURE = "SIGNATURE"
    MATRIX = "MATRIX"


CHOICE_TYPES = frozenset({
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.DROPDOWN,
    QuestionType.CHECKBOXES,
})


class QuestionOption(BaseModel):
    """选择题选项"""
    value: str
    label: str

    model_config = ConfigDict(frozen=True)


class QuestionValidation(BaseModel):
    """问题约束

    Attributes:
        min_length / max_length: 文本长度范围
        pattern: 文本需匹配的正则（search语义）
        min / max: 数值范围
        min_date / max_date: 日期范围，格式 YYYY-MM-DD
    """
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    min: Optional[Union[int, float]] = None
    max: Optional[Union[int, float]] = None
    min_date: Optional[str] = None
    max_date: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    @field_validator("pattern")
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid pattern {value!r}: {e}")
        return value

    @field_validator("min_date", "max_date")
    @classmethod
    def _check_date_bound(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"date bound must be YYYY-MM-DD, got {value!r}")
        return value


class QuestionSchema(BaseModel):
    """提交时使用的问题定义（不可变）

    options 和 validation 已经过规范化：options 是去掉空值后的选项列表，
    validation 是解析好的约束对象。type 无法识别时保留原始字符串。
    """
    id: str
    title: str
    # 未知类型保留原始字符串，由规范化器原样放行
    type: Union[QuestionType, str] = Field(union_mode="left_to_right")
    required: bool = False
    order: int = 0
    options: Optional[List[QuestionOption]] = None
    validation: Optional[QuestionValidation] = None

    model_config = ConfigDict(frozen=True)

    @property
    def option_values(self) -> List[str]:
        return [opt.value for opt in self.options or []]

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES
