"""问卷提交流程的错误类型

每种错误都带有一条面向用户的（西班牙语）消息和建议的HTTP状态码，
由路由层统一映射为 HTTPException。
"""
from typing import Optional


class SurveyResponseError(Exception):
    """所有提交相关错误的基类"""
    status_code: int = 500
    default_message: str = "Error interno del servidor."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- 问卷状态 ---

class SurveyNotFound(SurveyResponseError):
    status_code = 404
    default_message = "Encuesta no encontrada o no válida."


class SurveyNotAcceptingResponses(SurveyResponseError):
    """问卷当前不接受提交（未发布或不在发布窗口内）"""
    status_code = 403
    default_message = "Esta encuesta no está activa para recibir respuestas."


class SurveyNotPublished(SurveyNotAcceptingResponses):
    pass


class SurveyOutsideWindow(SurveyNotAcceptingResponses):
    default_message = "La encuesta no está disponible en este momento."


class DuplicateSubmission(SurveyResponseError):
    status_code = 409
    default_message = (
        "Ya has enviado una respuesta para esta encuesta. "
        "No se permiten múltiples respuestas."
    )


class ResponseNotFound(SurveyResponseError):
    status_code = 404
    default_message = "Respuesta de encuesta no encontrada para actualizar"


# --- 答案校验 ---

class AnswerValidationError(SurveyResponseError):
    """单个问题的答案未通过校验

    Attributes:
        question_id: 出错问题的ID
        question_title: 出错问题的标题
    """
    status_code = 400

    def __init__(self, question_id: str, question_title: str, message: str):
        self.question_id = question_id
        self.question_title = question_title
        super().__init__(message)


class RequiredFieldMissing(AnswerValidationError):
    def __init__(self, question_id: str, question_title: str):
        super().__init__(
            question_id,
            question_title,
            f"La pregunta '{question_title}' es requerida y no fue respondida.",
        )


class InvalidAnswerFormat(AnswerValidationError):
    pass


# --- 服务端问题 ---

class SurveySchemaError(SurveyResponseError):
    """问卷定义本身有问题（选项JSON损坏、选择题没有选项等），属于服务端配置错误"""
    status_code = 500
    default_message = "La configuración de la encuesta es inválida."


class PersistenceFailure(SurveyResponseError):
    """存储层错误。transient=True 表示超时/锁等待等可重试的瞬时故障，重试由调用方决定。"""
    default_message = "Error interno del servidor al guardar la respuesta."

    def __init__(self, message: Optional[str] = None, transient: bool = False):
        self.transient = transient
        super().__init__(message)

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 503 if self.transient else 500
