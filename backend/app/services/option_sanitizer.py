import json
from typing import Any, List, Optional

from app.core.exceptions import SurveySchemaError
from app.schemas.question import QuestionOption


def _to_option(entry: Any) -> Optional[QuestionOption]:
    if isinstance(entry, str):
        return QuestionOption(value=entry, label=entry)
    if isinstance(entry, dict) and isinstance(entry.get("value"), str):
        label = entry.get("label")
        return QuestionOption(
            value=entry["value"],
            label=label if isinstance(label, str) else entry["value"],
        )
    return None


def sanitize_options(raw: Any) -> Optional[List[QuestionOption]]:
    """把问题存储的 options 规范化为 [{value, label}] 列表

    raw 可以是 None、JSON字符串、{value, label} 对象数组或纯字符串数组。
    value 为空或无法识别的条目会被丢弃；非数组输入返回 None。

    Raises:
        SurveySchemaError: raw 是无法解析的JSON字符串
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SurveySchemaError(f"Opciones de pregunta con JSON inválido: {e.msg}")
    if not isinstance(raw, list):
        return None

    options = []
    for entry in raw:
        option = _to_option(entry)
        if option is not None and option.value != "":
            options.append(option)
    return options
