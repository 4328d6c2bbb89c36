import logging
from typing import Dict, Iterable, List, Sequence

from app.schemas.question import QuestionSchema
from app.schemas.survey_response import NormalizedAnswer, RawAnswer
from app.services.answer_normalizer import normalize_answer

logger = logging.getLogger(__name__)


class SubmissionValidator:
    """提交校验器

    对一次提交的全部答案逐条规范化，遇到第一个无效答案立即抛错（fail-fast），
    整个提交被拒绝，只返回一条错误消息。
    纯函数式：不持有状态、不访问数据库，同样的输入总是得到同样的输出。
    """

    def validate(
        self,
        questions: Iterable[QuestionSchema],
        raw_answers: Sequence[RawAnswer],
    ) -> List[NormalizedAnswer]:
        """
        校验并规范化一次提交。

        Args:
            questions: 问卷的全部问题定义（已规范化）
            raw_answers: 提交的原始答案

        Returns:
            List[NormalizedAnswer]: 按提交顺序排列的规范化答案；
            同一问题重复提交时以最后一次为准

        Raises:
            RequiredFieldMissing: 必答题未作答（包括提交中缺失的必答题）
            InvalidAnswerFormat: 答案不符合类型或约束
        """
        question_map: Dict[str, QuestionSchema] = {q.id: q for q in questions}
        normalized: Dict[str, NormalizedAnswer] = {}

        for answer in raw_answers:
            question = question_map.get(answer.question_id)
            if question is None:
                # 问题可能已被删除，忽略该答案
                logger.warning(f"Skipping answer for unknown question {answer.question_id}")
                continue
            value = normalize_answer(question, answer.value)
            # 先删除再插入，使重复提交的问题排在最后一次出现的位置
            normalized.pop(question.id, None)
            normalized[question.id] = NormalizedAnswer(question_id=question.id, value=value)

        # 提交中缺失的问题按空答案处理：必答题报错，选答题不存储
        for question in sorted(question_map.values(), key=lambda q: q.order):
            if question.id not in normalized:
                normalize_answer(question, None)

        return list(normalized.values())


# 默认实例
submission_validator = SubmissionValidator()
