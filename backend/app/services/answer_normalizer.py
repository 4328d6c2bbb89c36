"""答案规范化

把一条原始答案转换为该问题类型的规范存储形式，或抛出带问题标题的校验错误。

处理顺序：
1. 空值判定：None、全空白字符串、空数组、空对象（文件上传题除外）视为空。
   必答题为空 -> RequiredFieldMissing；选答题为空 -> 规范化为 None，不再做其他检查。
2. 按问题类型分派到对应的处理函数。每个 QuestionType 都必须有处理函数，
   模块导入时会检查；数据库里出现的未知类型原样放行并记录警告。
"""
import copy
import logging
import math
import re
from datetime import date
from typing import Any, Callable, Dict, Optional, Union

from app.core.exceptions import InvalidAnswerFormat, RequiredFieldMissing
from app.schemas.question import QuestionSchema, QuestionType

logger = logging.getLogger(__name__)

Number = Union[int, float]

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIME_PATTERN = re.compile(r"([0-1]?[0-9]|2[0-3]):[0-5][0-9]")
# 十进制数字字面量（仅ASCII），下划线分隔和其他文字的数字都不算数字
NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)

DEFAULT_SCALE_MIN = 1
DEFAULT_SCALE_MAX = 10
MIN_SIGNATURE_LENGTH = 10


def is_empty(value: Any, question_type: Union[QuestionType, str]) -> bool:
    """判断答案是否为空"""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, list):
        return len(value) == 0
    if isinstance(value, dict):
        # 文件上传题的空对象交给类型检查，报"文件无效"而不是"未作答"
        return len(value) == 0 and question_type != QuestionType.FILE_UPLOAD
    return False


def to_number(value: Any) -> Optional[Number]:
    """按 JavaScript Number() 的规则把数字或数字字符串转换为数值，失败返回 None

    整数值返回 int（"7" -> 7），布尔值、容器和非有限数一律视为无效。
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not NUMBER_PATTERN.fullmatch(text):
            return None
        number = float(text)
    else:
        return None
    if isinstance(number, float):
        if not math.isfinite(number):
            return None
        if number.is_integer():
            return int(number)
    return number


def _fmt(number: Number) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def _invalid(question: QuestionSchema, message: str) -> InvalidAnswerFormat:
    return InvalidAnswerFormat(question.id, question.title, message)


# --- 各类型处理函数 ---

def _normalize_text(question: QuestionSchema, value: Any) -> str:
    title = question.title
    if not isinstance(value, str):
        raise _invalid(question, f"La respuesta para '{title}' debe ser texto.")

    if question.type == QuestionType.EMAIL and not EMAIL_PATTERN.fullmatch(value):
        raise _invalid(question, f"El formato de email para '{title}' es inválido.")

    rules = question.validation
    if rules is None:
        return value
    if rules.max_length is not None and len(value) > rules.max_length:
        raise _invalid(question, f"La respuesta para '{title}' excede {rules.max_length} caracteres.")
    if rules.min_length is not None and len(value) < rules.min_length:
        raise _invalid(
            question, f"La respuesta para '{title}' requiere al menos {rules.min_length} caracteres."
        )
    if rules.pattern and not re.search(rules.pattern, value):
        raise _invalid(question, f"La respuesta para '{title}' no coincide con el patrón requerido.")
    return value


def _parse_number(question: QuestionSchema, value: Any) -> Number:
    number = to_number(value)
    if number is None:
        raise _invalid(question, f"La respuesta para '{question.title}' debe ser un número válido.")
    return number


def _normalize_number(question: QuestionSchema, value: Any) -> Number:
    number = _parse_number(question, value)
    rules = question.validation
    if rules is None:
        return number
    if rules.min is not None and number < rules.min:
        raise _invalid(question, f"La respuesta para '{question.title}' debe ser al menos {_fmt(rules.min)}.")
    if rules.max is not None and number > rules.max:
        raise _invalid(question, f"La respuesta para '{question.title}' no debe exceder {_fmt(rules.max)}.")
    return number


def _normalize_scale(question: QuestionSchema, value: Any) -> Number:
    number = _parse_number(question, value)
    rules = question.validation
    low = rules.min if rules is not None and rules.min is not None else DEFAULT_SCALE_MIN
    high = rules.max if rules is not None and rules.max is not None else DEFAULT_SCALE_MAX
    if number < low or number > high:
        raise _invalid(
            question,
            f"La respuesta para '{question.title}' debe estar entre {_fmt(low)} y {_fmt(high)}.",
        )
    return number


def _normalize_date(question: QuestionSchema, value: Any) -> str:
    title = question.title
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        raise _invalid(question, f"La respuesta para '{title}' debe ser fecha válida YYYY-MM-DD.")
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        raise _invalid(question, f"La respuesta para '{title}' debe ser fecha válida YYYY-MM-DD.")

    rules = question.validation
    if rules is not None:
        if rules.min_date and parsed < date.fromisoformat(rules.min_date):
            raise _invalid(question, f"La fecha para '{title}' no puede ser anterior a {rules.min_date}.")
        if rules.max_date and parsed > date.fromisoformat(rules.max_date):
            raise _invalid(question, f"La fecha para '{title}' no puede ser posterior a {rules.max_date}.")
    return value


def _normalize_time(question: QuestionSchema, value: Any) -> str:
    if not isinstance(value, str) or not TIME_PATTERN.fullmatch(value):
        raise _invalid(question, f"La respuesta para '{question.title}' debe ser formato HH:mm.")
    return value


def _normalize_single_choice(question: QuestionSchema, value: Any) -> str:
    if not isinstance(value, str) or value not in question.option_values:
        raise _invalid(question, f"La opción seleccionada para '{question.title}' es inválida.")
    return value


def _normalize_checkboxes(question: QuestionSchema, value: Any) -> list:
    if not isinstance(value, list):
        raise _invalid(question, f"La respuesta para '{question.title}' debe ser array de opciones.")
    valid_values = question.option_values
    # 只要有一个无效值，整个答案都拒绝
    if not all(isinstance(v, str) and v in valid_values for v in value):
        raise _invalid(
            question, f"Una o más opciones seleccionadas para '{question.title}' son inválidas."
        )
    return list(value)


def _normalize_file_upload(question: QuestionSchema, value: Any) -> dict:
    if not isinstance(value, dict) or not value.get("fileName") or not value.get("fileUrl"):
        raise _invalid(question, f"La respuesta de archivo para '{question.title}' es inválida.")
    return copy.deepcopy(value)


def _normalize_signature(question: QuestionSchema, value: Any) -> str:
    # 只检查是否像一段签名数据（data URI 或足够长的字符串）
    if not isinstance(value, str) or len(value) < MIN_SIGNATURE_LENGTH:
        raise _invalid(question, f"La respuesta de firma para '{question.title}' es inválida.")
    return value


def _normalize_matrix(question: QuestionSchema, value: Any) -> dict:
    if not isinstance(value, dict) or len(value) == 0:
        raise _invalid(question, f"La respuesta para '{question.title}' (matriz) es inválida.")
    return copy.deepcopy(value)


_HANDLERS: Dict[QuestionType, Callable[[QuestionSchema, Any], Any]] = {
    QuestionType.TEXT: _normalize_text,
    QuestionType.TEXTAREA: _normalize_text,
    QuestionType.URL: _normalize_text,
    QuestionType.PHONE: _normalize_text,
    QuestionType.EMAIL: _normalize_text,
    QuestionType.NUMBER: _normalize_number,
    QuestionType.SCALE: _normalize_scale,
    QuestionType.RATING: _normalize_scale,
    QuestionType.DATE: _normalize_date,
    QuestionType.TIME: _normalize_time,
    QuestionType.MULTIPLE_CHOICE: _normalize_single_choice,
    QuestionType.DROPDOWN: _normalize_single_choice,
    QuestionType.CHECKBOXES: _normalize_checkboxes,
    QuestionType.FILE_UPLOAD: _normalize_file_upload,
    QuestionType.SIGNATURE: _normalize_signature,
    QuestionType.MATRIX: _normalize_matrix,
}

_unhandled = set(QuestionType) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No normalizer registered for question types: {sorted(_unhandled)}")


def normalize_answer(question: QuestionSchema, value: Any) -> Any:
    """
    规范化一条答案。

    Args:
        question: 问题定义
        value: 原始答案值

    Returns:
        Any: 规范化后的值；选答题留空时为 None

    Raises:
        RequiredFieldMissing: 必答题为空
        InvalidAnswerFormat: 答案不符合类型或约束
    """
    if is_empty(value, question.type):
        if question.required:
            raise RequiredFieldMissing(question.id, question.title)
        return None

    handler = _HANDLERS.get(question.type)
    if handler is None:
        logger.warning(f"Unhandled question type '{question.type}' for question {question.id}, storing value as-is")
        return copy.deepcopy(value)
    return handler(question, value)
