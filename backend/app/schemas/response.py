from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar('T')


class StandardResponse(BaseModel, Generic[T]):
    """统一响应包装

    所有接口都返回 {code, message, data}。出错时由 HTTPException 返回 {detail}，不走这个模型。

    Attributes:
        code: 业务状态码，与HTTP状态码一致（提交成功为201）
        message: 响应消息
        data: 数据载荷
    """
    code: int = 200
    message: str = 'success'
    data: Optional[T] = None
