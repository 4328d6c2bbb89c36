import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.exceptions import SurveySchemaError
from app.crud.base import CRUDBase
from app.models.question import Question
from app.schemas.question import QuestionSchema, QuestionType, QuestionValidation
from app.schemas.survey import QuestionCreate
from app.services.option_sanitizer import sanitize_options

logger = logging.getLogger(__name__)


def _parse_validation(raw: Any) -> Optional[QuestionValidation]:
    if raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SurveySchemaError(f"Validación de pregunta con JSON inválido: {e.msg}")
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise SurveySchemaError("La validación de la pregunta debe ser un objeto.")
    return QuestionValidation.model_validate(raw)


def _parse_type(raw: str):
    try:
        return QuestionType(raw)
    except ValueError:
        return raw


def build_question_schema(question: Question) -> QuestionSchema:
    """把一条 Question 记录转换成不可变的 QuestionSchema

    options/validation 的 JSON 字符串与对象两种存储形式在这里统一解析，
    之后的校验流程只接触解析好的结构。

    Raises:
        SurveySchemaError: options/validation 损坏，或选择题没有任何有效选项
    """
    try:
        options = sanitize_options(question.options)
        schema = QuestionSchema(
            id=question.id,
            title=question.title,
            type=_parse_type(question.type),
            required=bool(question.required),
            order=question.order or 0,
            options=options,
            validation=_parse_validation(question.validation),
        )
    except ValidationError as e:
        logger.error(f"Question {question.id} has an invalid definition: {e}")
        raise SurveySchemaError(f"La pregunta '{question.title}' tiene una configuración inválida.")
    except SurveySchemaError as e:
        logger.error(f"Question {question.id} has an invalid definition: {e.message}")
        raise

    if schema.is_choice and not schema.options:
        logger.error(f"Choice question {question.id} ({question.type}) has no usable options")
        raise SurveySchemaError(f"La pregunta '{question.title}' no tiene opciones válidas.")
    return schema


class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionCreate]):
    def get_questions_for_survey(self, db: Session, *, survey_id: str) -> List[QuestionSchema]:
        """
        获取问卷的全部问题定义（按顺序），options/validation 已规范化。

        Args:
            db: 数据库会话
            survey_id: 问卷ID

        Returns:
            List[QuestionSchema]: 问题定义列表
        """
        questions = (
            db.query(self.model)
            .filter(self.model.survey_id == survey_id)
            .order_by(self.model.order.asc())
            .all()
        )
        return [build_question_schema(q) for q in questions]


# 实例化并暴露给服务层使用
question = CRUDQuestion(Question)
