import logging
from typing import Any, Callable, Dict, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _engine_kwargs(database_url: str, timeout: float) -> Dict[str, Any]:
    if database_url.startswith("sqlite"):
        # check_same_thread 是SQLite特有的，用于允许多线程访问；
        # timeout 为等待写锁的最长秒数
        return {"connect_args": {"check_same_thread": False, "timeout": timeout}}
    return {"pool_pre_ping": True, "pool_timeout": timeout}


def build_engine(database_url: str, timeout: float = settings.DATABASE_TIMEOUT_SECONDS) -> Engine:
    """根据数据库URL创建引擎"""
    return create_engine(database_url, **_engine_kwargs(database_url, timeout))


# 进程内唯一的数据库引擎，由应用入口持有
engine = build_engine(settings.DATABASE_URL)

# 创建一个Session工厂
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# FastAPI 依赖项，用于在每个请求中获取数据库会话
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_in_transaction(db: Session, fn: Callable[[Session], T]) -> T:
    """在单个事务中执行 fn(db)

    fn 内部只能 flush，不能 commit。fn 正常返回则提交；
    fn 或提交过程抛出任何异常都会整体回滚，并把原始异常抛给调用方。
    """
    try:
        result = fn(db)
        db.commit()
    except BaseException as e:
        db.rollback()
        logger.debug(f"Transaction rolled back after {type(e).__name__}")
        raise
    return result
