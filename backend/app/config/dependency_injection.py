from app.db.database import get_db
from app.services.response_service import ResponseService, response_service


# --- 服务依赖注入 ---

def get_response_service() -> ResponseService:
    """
    获取答卷提交服务实例
    """
    return response_service


__all__ = ["get_db", "get_response_service"]
